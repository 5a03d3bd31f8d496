from typing import Dict, Tuple, Type, TYPE_CHECKING

if TYPE_CHECKING:
    from .core.adapters.abstract import Adapter  # noqa:F401


class AdapterRegistry:
    """
    Which :py:class:`pipefish.core.adapters.abstract.Adapter` turns data from a given source (the Lambda
    event, an ``imagedefinitions.json`` entry) into the data for a given model.
    """

    def __init__(self) -> None:
        self.adapters: Dict[Tuple[str, str], Type["Adapter"]] = {}

    def register(self, model_name: str, source: str, adapter_class: Type["Adapter"]) -> None:
        self.adapters[(model_name, source)] = adapter_class

    def get(self, model_name: str, source: str) -> Type["Adapter"]:
        try:
            return self.adapters[(model_name, source)]
        except KeyError:
            raise LookupError(f'no adapter registered for {model_name} from "{source}"')


importer_registry: AdapterRegistry = AdapterRegistry()
