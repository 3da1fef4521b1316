from .errors import FormatError, LexError, ParseError, ReadError
from .formatter import format_file, format_text
from .parser import Tree, parse, parse_file
from .printer import Printer
from .types import FormatConfig, IndentStyle, ParseOpts, ThreadFirstStyle

__all__ = [
    "parse", "parse_file", "Tree", "ParseOpts", "Printer", "FormatConfig",
    "IndentStyle", "ThreadFirstStyle", "format_text", "format_file",
    "ReadError", "LexError", "ParseError", "FormatError",
]
