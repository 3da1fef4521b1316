"""Lexical tokens produced by the scanner."""

from dataclasses import dataclass
from enum import Enum

from .types import Pos


class TokenType(Enum):
    EOF = "eof"
    APOSTROPHE = "apostrophe"        # '
    AT_SIGN = "at-sign"              # @
    BACKTICK = "backtick"            # `
    CHAR_LITERAL = "char-literal"    # \c, \newline, etc
    CIRCUMFLEX = "circumflex"        # ^
    COMMENT = "comment"              # ; foobar
    DISPATCH = "dispatch"            # #{, #(, #_, etc. Does not include tags.
    KEYWORD = "keyword"              # :foo
    LEFT_BRACE = "left-brace"        # {
    LEFT_BRACKET = "left-bracket"    # [
    LEFT_PAREN = "left-paren"        # (
    NUMBER = "number"                # any numeric literal; may be invalid
    OCTOTHORPE = "octothorpe"        # # (only used for tags)
    RIGHT_BRACE = "right-brace"      # }
    RIGHT_BRACKET = "right-bracket"  # ]
    RIGHT_PAREN = "right-paren"      # )
    STRING = "string"                # string literal (java escapes)
    SYMBOL = "symbol"                # foo, also fn literal args (%, %N)
    TILDE = "tilde"                  # ~
    NEWLINE = "newline"
    ERROR = "error"                  # val is the error text

    def __str__(self) -> str:
        return self.value


_SHOW_VALUE = frozenset({
    TokenType.ERROR,
    TokenType.CHAR_LITERAL,
    TokenType.COMMENT,
    TokenType.KEYWORD,
    TokenType.NUMBER,
    TokenType.DISPATCH,
    TokenType.STRING,
    TokenType.SYMBOL,
})


@dataclass(frozen=True)
class Token:
    type: TokenType
    pos: Pos
    val: str = ""

    def __str__(self) -> str:
        if self.type in _SHOW_VALUE:
            return f'<{self.type}@{self.pos}>("{self.val}")'
        return f"<{self.type}@{self.pos}>"
