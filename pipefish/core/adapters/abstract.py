from typing import Dict, Any, Tuple

from pipefish.exceptions import PipefishError


class Adapter:
    """
    Given a dict of data from a data source, convert it to appropriate data structures to be used
    to initialize a pipefish model.

    Minimally this means translating the source data into the data structure we'd get back from the
    appropriate AWS API call, or that the model otherwise expects as its ``data``.
    """

    NONE: str = 'pipefish:required'

    class SchemaException(PipefishError):
        """
        Raise this if data in the source does not validate properly.
        """
        pass

    def __init__(self, data: Dict[str, Any], **kwargs) -> None:
        """
        ``data`` is the raw data from our source.
        """
        self.data: Dict[str, Any] = data

    def set(
        self,
        data: Dict[str, Any],
        source_key: str,
        dest_key: str = None,
        default: Any = NONE,
        optional: bool = False
    ) -> None:
        """
        Copy ``self.data[source_key]`` into ``data[dest_key]``.  A missing key is skipped if ``optional``,
        replaced by ``default`` if one is given, and a ``SchemaException`` otherwise.
        """
        if dest_key is None:
            dest_key = source_key
        if source_key in self.data:
            data[dest_key] = self.data[source_key]
        elif optional:
            return
        elif default != self.NONE:
            data[dest_key] = default
        else:
            raise self.SchemaException(f'missing required key "{source_key}"')

    def convert(self) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """
        This method is the meat of the adapter -- it is what takes ``self.data`` and returns the
        data structures needed to initialize our model.

        The return type varies by what the model needs.
        """
        raise NotImplementedError
