from .erase import erase_skip_serializing_if
from .expand import expand, rewrite_source
from .parse import parse_definition
from .writer import write_definition

__all__ = [
    "__version__",
    "erase_skip_serializing_if",
    "expand",
    "parse_definition",
    "rewrite_source",
    "write_definition",
]

__version__ = "0.1.0"
