from dataclasses import dataclass, field
from enum import Enum, IntFlag
from typing import Any, Callable, Union


@dataclass(frozen=True)
class Pos:
    """A position in source text. Lines and columns start at 1."""

    name: str
    offset: int = 0
    line: int = 1
    col: int = 1

    def __str__(self) -> str:
        return f"{self.name}:{self.line}:{self.col}"

    def advance(self, ch: str) -> "Pos":
        if ch == "\n":
            return Pos(self.name, self.offset + len(ch.encode("utf-8")), self.line + 1, 1)
        return Pos(self.name, self.offset + len(ch.encode("utf-8")), self.line, self.col + 1)

    def format_error(self, tag: str, msg: str) -> str:
        return f"{tag} error at {self}: {msg}"


class ParseOpts(IntFlag):
    # Keep CommentNodes and NewlineNodes in the tree.
    INCLUDE_NON_SEMANTIC = 1
    # Drop (comment ...) forms.
    IGNORE_COMMENT_FORMS = 2
    # Drop forms preceded by #_.
    IGNORE_READER_DISCARD = 4


class IndentStyle(Enum):
    NORMAL = "normal"        # [1\n2] ; 2 is below 1
    LIST = "list"            # (foo bar\nbaz) ; baz is below bar
    LIST_BODY = "list-body"  # (defn foo []\nbar) ; bar is indented 2
    LET = "let"              # list-body, and the first vector holds bindings
    LETFN = "letfn"          # list-body, fns in the first vector are list-body
    DEFTYPE = "deftype"      # list-body, every inner list is list-body
    COND0 = "cond0"          # (cond a\nb) ; b is indented 2 beyond a
    COND1 = "cond1"          # like cond0 after one leading argument
    COND2 = "cond2"          # like cond0 after two leading arguments
    BINDINGS = "bindings"    # [foo\nbar] ; bar is indented two beyond foo

    @classmethod
    def from_keyword(cls, kw: str) -> "IndentStyle":
        return cls(kw[1:] if kw.startswith(":") else kw)


class ThreadFirstStyle(Enum):
    NORMAL = "normal"          # (-> x (f) (g))
    COND_ARROW = "cond->"      # (cond-> x test (f)) ; only the second of each pair


Transform = Callable[[Any], None]


@dataclass
class FormatConfig:
    """Printer settings.

    Override tables map a bare or qualified symbol to a style. Styles may be
    given by keyword name (":list-body", "cond->") as they appear in a
    config file; they are converted to enum members on construction.
    """

    indent_char: str = " "
    indent_overrides: dict[str, Union[IndentStyle, str]] = field(default_factory=dict)
    thread_first_overrides: dict[str, Union[ThreadFirstStyle, str]] = field(default_factory=dict)
    transforms: list[Transform] = field(default_factory=list)

    def __post_init__(self):
        self.indent_overrides = {
            sym: s if isinstance(s, IndentStyle) else IndentStyle.from_keyword(s)
            for sym, s in self.indent_overrides.items()}
        self.thread_first_overrides = {
            sym: s if isinstance(s, ThreadFirstStyle) else ThreadFirstStyle(s.lstrip(":"))
            for sym, s in self.thread_first_overrides.items()}
