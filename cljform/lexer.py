"""Scanner for Clojure source text.

Iterating a Lexer yields tokens in source order. Whitespace (commas included)
is skipped, but newlines are kept as tokens because the printer needs them.
Iteration stops after the EOF token or the first ERROR token.
"""

from typing import IO, Callable, Iterator, Optional

from .token import Token, TokenType
from .types import Pos

_SINGLES = {
    "'": TokenType.APOSTROPHE,
    "@": TokenType.AT_SIGN,
    "`": TokenType.BACKTICK,
    "^": TokenType.CIRCUMFLEX,
    "{": TokenType.LEFT_BRACE,
    "[": TokenType.LEFT_BRACKET,
    "(": TokenType.LEFT_PAREN,
    "}": TokenType.RIGHT_BRACE,
    "]": TokenType.RIGHT_BRACKET,
    ")": TokenType.RIGHT_PAREN,
    "~": TokenType.TILDE,
    "\n": TokenType.NEWLINE,
}

_NON_SYMBOL = frozenset('";@^~()[]{}\\')


def is_whitespace(ch: str) -> bool:
    return ch.isspace() or ch == ","


def is_whitespace_not_nl(ch: str) -> bool:
    return ch != "\n" and is_whitespace(ch)


def is_symbol_char(ch: str) -> bool:
    """Report whether ch is allowable in a Clojure symbol."""
    return not is_whitespace(ch) and ch not in _NON_SYMBOL


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


class Lexer:
    """Scanner state. A single character of backup is supported."""

    def __init__(self, text: str, name: str = "<input>"):
        self.name = name
        self._text = text
        self._i = 0
        self._pos = Pos(name)
        self._last: Optional[Pos] = None  # position before the latest _next()
        self._start = self._pos           # start of the token being scanned
        self._start_i = 0

    @classmethod
    def from_stream(cls, stream: IO[str], name: Optional[str] = None) -> "Lexer":
        if name is None:
            name = getattr(stream, "name", "<input>")
        return cls(stream.read(), name)

    def __iter__(self) -> Iterator[Token]:
        while True:
            for tok in self._lex_outer():
                yield tok
                if tok.type in (TokenType.EOF, TokenType.ERROR):
                    return

    # --- character primitives ---

    def _next(self) -> Optional[str]:
        if self._i >= len(self._text):
            return None
        ch = self._text[self._i]
        self._i += 1
        self._last = self._pos
        self._pos = self._pos.advance(ch)
        return ch

    def _back(self) -> None:
        if self._last is None:
            raise RuntimeError("back() call not preceded by a next()")
        self._i -= 1
        self._pos = self._last
        self._last = None

    def _scan_while(self, pred: Callable[[str], bool]) -> None:
        # Stops before the first character for which pred is false.
        while True:
            ch = self._next()
            if ch is None:
                return
            if not pred(ch):
                self._back()
                return

    def _scan_until(self, chars: str) -> None:
        self._scan_while(lambda ch: ch not in chars)

    @property
    def _val(self) -> str:
        return self._text[self._start_i:self._i]

    def _skip(self) -> None:
        self._start = self._pos
        self._start_i = self._i

    def _emit(self, typ: TokenType) -> Token:
        tok = Token(typ, self._start, self._val)
        self._skip()
        return tok

    def _synth(self, typ: TokenType, val: str) -> Token:
        return Token(typ, self._start, val)

    def _error(self, msg: str) -> Token:
        return Token(TokenType.ERROR, self._start, msg)

    # --- states ---

    def _lex_outer(self) -> list[Token]:
        ch = self._next()
        if ch is None:
            return [self._emit(TokenType.EOF)]

        if ch == ";":
            return [self._lex_comment()]
        if ch == '"':
            return [self._lex_string()]
        if ch == "\\":
            return [self._lex_char_literal()]
        if ch == ":":
            return [self._lex_keyword()]
        if ch == "%":
            return [self._lex_symbol()]
        if ch == "#":
            return self._lex_dispatch()
        if ch in ("+", "-"):
            nxt = self._next()
            if nxt is None:
                return [self._emit(TokenType.SYMBOL)]
            self._back()
            if _is_digit(nxt):
                return [self._lex_number()]
            return [self._lex_symbol()]

        typ = _SINGLES.get(ch)
        if typ is not None:
            return [self._emit(typ)]

        if is_whitespace(ch):
            self._scan_while(is_whitespace_not_nl)
            self._skip()
            return []
        if _is_digit(ch):
            return [self._lex_number()]
        if is_symbol_char(ch):
            return [self._lex_symbol()]
        return [self._error(f"unrecognized token starting with {ch}")]

    def _lex_comment(self) -> Token:
        self._scan_until("\r\n")
        return self._emit(TokenType.COMMENT)

    def _lex_string(self) -> Token:
        escaped = False
        while True:
            ch = self._next()
            if ch is None:
                return self._error("reached EOF before string closing quote")
            if ch == '"':
                if not escaped:
                    return self._emit(TokenType.STRING)
                escaped = False
            elif ch == "\\":
                escaped = not escaped
            else:
                escaped = False

    def _lex_char_literal(self) -> Token:
        if self._next() is None:
            return self._error("invalid character literal")
        # Named literals (\newline) and escapes (\u00e9) run on; the parser
        # decides whether the text is valid.
        self._scan_while(is_symbol_char)
        return self._emit(TokenType.CHAR_LITERAL)

    def _lex_keyword(self) -> Token:
        self._scan_while(is_symbol_char)
        return self._emit(TokenType.KEYWORD)

    def _lex_number(self) -> Token:
        # Numbers use a subset of the symbol chars, but we scan the whole run
        # the way the clojure reader does: '(+ 3foo)' yields the invalid
        # number '3foo' rather than '3' followed by 'foo'.
        self._scan_while(is_symbol_char)
        return self._emit(TokenType.NUMBER)

    def _lex_symbol(self) -> Token:
        self._scan_while(is_symbol_char)
        return self._emit(TokenType.SYMBOL)

    def _lex_dispatch(self) -> list[Token]:
        # '#foo' and '# foo' are both the tag 'foo', but '# _' is the tag '_'
        # and not the discard macro, so whitespace matters here.
        #
        # Tags produce an octothorpe token; the following symbol is the tag.
        #
        # Paired-delimiter forms #{...}, #(...) and #"..." produce a two-char
        # dispatch token and the delimiter is scanned again on its own, so
        # "#{1}" is "#{", "{", "1", "}".
        #
        # Reader conditionals produce "#?" or "#?@"; the ( follows as usual.
        #
        # A namespaced map produces "#:" and then the namespace as a keyword
        # token, so "#:foo{:bar 1}" is "#:", ":foo", "{", ":bar", "1", "}".
        #
        # Everything else is a two-char dispatch token.
        ch = self._next()
        if ch is None:
            return [self._emit(TokenType.OCTOTHORPE)]
        val = self._val
        if ch in ("{", "(", '"'):
            tok = self._synth(TokenType.DISPATCH, val)
            self._back()
            self._skip()
            return [tok]
        if ch == "?":
            ch = self._next()
            if ch is not None and ch != "@":
                self._back()
            return [self._emit(TokenType.DISPATCH)]
        if ch == ":":
            tok = self._synth(TokenType.DISPATCH, val)
            self._back()
            self._skip()
            self._next()
            return [tok, self._lex_keyword()]
        if ch in ("'", "_", "^", "="):
            return [self._emit(TokenType.DISPATCH)]
        if ch == "!":
            # #! starts a comment (shebang lines).
            return [self._lex_comment()]
        if ch == "<":
            return [self._error("unreadable dispatch macro")]
        self._back()
        return [self._emit(TokenType.OCTOTHORPE)]
