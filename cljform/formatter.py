"""Top-level format API for Clojure source."""

import io
import logging
from pathlib import Path
from typing import Optional, Union

from .parser import parse, parse_file
from .printer import Printer
from .types import FormatConfig, ParseOpts

logger = logging.getLogger(__name__)


def format_text(text: str, name: str = "<input>",
                config: Optional[FormatConfig] = None) -> str:
    """Format Clojure source text.

    Args:
        text: Source text.
        name: Source name used in error positions.
        config: Printer configuration; defaults to FormatConfig().

    Returns:
        The formatted source. Already formatted input comes back unchanged.

    Raises:
        LexError, ParseError: The input could not be read.
    """
    tree = parse(text, name, ParseOpts.INCLUDE_NON_SEMANTIC)
    return _print(tree, name, config)


def format_file(path: Union[str, Path], config: Optional[FormatConfig] = None) -> str:
    """Format the Clojure file at path and return the result."""
    tree = parse_file(path, ParseOpts.INCLUDE_NON_SEMANTIC)
    return _print(tree, str(path), config)


def _print(tree, name: str, config: Optional[FormatConfig]) -> str:
    buf = io.StringIO()
    Printer(buf, config).print_tree(tree)
    out = buf.getvalue()
    logger.debug("formatted %s (%d bytes)", name, len(out.encode("utf-8")))
    return out
