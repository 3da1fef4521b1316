"""Exceptions raised while reading and printing Clojure source."""

from .types import Pos


class ReadError(SyntaxError):
    """A scan or parse failure. str() gives the position-tagged message."""

    tag = "read"

    def __init__(self, pos: Pos, message: str):
        super().__init__(pos.format_error(self.tag, message))
        self.pos = pos
        self.message = message


class LexError(ReadError):
    tag = "lex"


class ParseError(ReadError):
    tag = "parse"


class FormatError(RuntimeError):
    pass
