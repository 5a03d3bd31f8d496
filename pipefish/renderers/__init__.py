from .table import TableRenderer  # noqa:F401
