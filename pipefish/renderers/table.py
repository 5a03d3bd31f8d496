from typing import Any, Dict, List, Optional, Union, cast

from tabulate import tabulate

from pipefish.exceptions import PipefishError


class RenderException(PipefishError):
    pass


class TableRenderer:
    """
    Render a list of results as an ASCII table.
    """

    def __init__(
        self,
        columns: Dict[str, Any],
        ordering: str = None,
        tablefmt: str = 'simple',
        show_headers: bool = True
    ):
        """
        `columns` is a dict that determines the structure of the table, like so:

            {
                'Service': 'service',
                'Container': 'container',
            }

        The keys of `columns` will be used as the column header in the table, and the values in `columns`
        are the names of the attributes or keys on our result objects that contain the data we want to
        render for that column.

        You can configure per column configuration by setting the value of the column to a dict, like so::

            {
                'Current image': {
                    'key': 'current_image',
                    'default': '-',
                }
            }

        ``default`` is what to render when the object has no such attribute or key, or its value is ``None``.

        :param columns dict(str, str): a dict that determines the structure of the table
        :param ordering Union[str, None]: the header of the column to sort by; prefix with "-" to reverse
        :param tablefmt str: provide this to tabulate() to determine the table format
        """
        assert isinstance(columns, dict), 'TableRenderer: `columns` parameter to __init__ should be a dict'

        self.columns: List[Union[Dict[str, Any], str]] = list(columns.values())
        self.headers: List[str] = list(columns.keys())
        self.ordering: Optional[str] = ordering
        self.tablefmt: str = tablefmt
        self.show_headers: bool = show_headers

    def get_value(self, obj: Any, column: Union[Dict[str, Any], str]) -> Any:
        if isinstance(column, dict):
            data_key = column['key']
        else:
            data_key = column
        try:
            value = getattr(obj, data_key)
        except AttributeError:
            try:
                value = obj[data_key]
            except (KeyError, TypeError):
                if isinstance(column, dict) and 'default' in column:
                    return column['default']
                raise RenderException(
                    '{our_name}: Could not dereference "{key}"'.format(our_name=self.__class__.__name__, key=data_key)
                )
        if value is None and isinstance(column, dict) and 'default' in column:
            return column['default']
        return value

    def render_column(self, obj: Any, column: Union[Dict[str, Any], str]) -> Any:
        """
        Return the value to put in the table for `column` on `obj`.  If we have a method named
        `render_{key}_value`, use that instead.
        """
        key = column['key'] if isinstance(column, dict) else column
        if hasattr(self, f'render_{key}_value'):
            return getattr(self, f'render_{key}_value')(obj, key, column)
        return self.get_value(obj, column)

    def render(self, data: Any, **_) -> str:
        data = cast(List[Any], data)
        table = []
        for obj in data:
            table.append([self.render_column(obj, column) for column in self.columns])
        if self.ordering:
            reverse = False
            order_column = self.ordering
            if order_column.startswith('-'):
                reverse = True
                order_column = order_column[1:]
            order_index = self.headers.index(order_column)
            table = sorted(table, key=lambda x: x[order_index], reverse=reverse)
        if self.show_headers:
            return tabulate(table, headers=self.headers, tablefmt=self.tablefmt)
        return tabulate(table, tablefmt=self.tablefmt)
