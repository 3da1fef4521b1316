"""Syntax tree nodes.

Every node records its source position. Composite nodes own an ordered list
of children; wrapper nodes own exactly one child. Each child holds a weak
reference back to its parent, which the parser sets as nodes are built.
"""

import json
import sys
import weakref
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Iterator, Optional

from .types import Pos


class NodeKind(Enum):
    BOOL = "bool"
    CHARACTER = "character"
    COMMENT = "comment"
    DEREF = "deref"
    FN_LITERAL = "fn-literal"
    KEYWORD = "keyword"
    LIST = "list"
    MAP = "map"
    METADATA = "metadata"
    NEWLINE = "newline"
    NIL = "nil"
    NUMBER = "number"
    QUOTE = "quote"
    READER_COND = "reader-cond"
    READER_COND_SPLICE = "reader-cond-splice"
    READER_DISCARD = "reader-discard"
    READER_EVAL = "reader-eval"
    REGEX = "regex"
    SET = "set"
    STRING = "string"
    SYMBOL = "symbol"
    SYNTAX_QUOTE = "syntax-quote"
    TAG = "tag"
    UNQUOTE = "unquote"
    UNQUOTE_SPLICE = "unquote-splice"
    VAR_QUOTE = "var-quote"
    VECTOR = "vector"


class Node:
    kind: ClassVar[NodeKind]
    pos: Pos

    _parent_ref: Optional["weakref.ReferenceType[Node]"] = None

    @property
    def parent(self) -> Optional["Node"]:
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @parent.setter
    def parent(self, node: Optional["Node"]) -> None:
        self._parent_ref = None if node is None else weakref.ref(node)

    def children(self) -> list["Node"]:
        return []

    def set_children(self, nodes: list["Node"]) -> None:
        raise TypeError(f"set_children called on {type(self).__name__}")

    def describe(self) -> str:
        """A short, non-recursive description (not valid Clojure)."""
        raise NotImplementedError

    def __str__(self) -> str:
        return self.describe()


# --- leaves ---

@dataclass(eq=False)
class BoolNode(Node):
    kind = NodeKind.BOOL
    pos: Pos
    val: bool

    def describe(self) -> str:
        return "true" if self.val else "false"


@dataclass(eq=False)
class CharacterNode(Node):
    kind = NodeKind.CHARACTER
    pos: Pos
    val: str   # the decoded character
    text: str  # the source text, including the backslash

    def describe(self) -> str:
        return f"char({quote_rune(self.val)})"


@dataclass(eq=False)
class CommentNode(Node):
    kind = NodeKind.COMMENT
    pos: Pos
    text: str

    def describe(self) -> str:
        return f"comment({quote_string(self.text)})"


@dataclass(eq=False)
class KeywordNode(Node):
    kind = NodeKind.KEYWORD
    pos: Pos
    val: str

    def describe(self) -> str:
        return f"keyword({self.val})"


@dataclass(eq=False)
class NewlineNode(Node):
    kind = NodeKind.NEWLINE
    pos: Pos

    def describe(self) -> str:
        return "newline"


@dataclass(eq=False)
class NilNode(Node):
    kind = NodeKind.NIL
    pos: Pos

    def describe(self) -> str:
        return "nil"


@dataclass(eq=False)
class NumberNode(Node):
    kind = NodeKind.NUMBER
    pos: Pos
    val: str  # unvalidated source text

    def describe(self) -> str:
        return f"num({self.val})"


@dataclass(eq=False)
class RegexNode(Node):
    kind = NodeKind.REGEX
    pos: Pos
    val: str

    def describe(self) -> str:
        return f"regex({quote_string(self.val)})"


@dataclass(eq=False)
class StringNode(Node):
    kind = NodeKind.STRING
    pos: Pos
    val: str  # without the quotes; escapes are left as written

    def describe(self) -> str:
        return f"string({quote_string(self.val)})"


@dataclass(eq=False)
class SymbolNode(Node):
    kind = NodeKind.SYMBOL
    pos: Pos
    val: str

    def describe(self) -> str:
        return f"sym({self.val})"


@dataclass(eq=False)
class TagNode(Node):
    kind = NodeKind.TAG
    pos: Pos
    val: str

    def describe(self) -> str:
        return f"tag({self.val})"


@dataclass(eq=False)
class VarQuoteNode(Node):
    kind = NodeKind.VAR_QUOTE
    pos: Pos
    val: str

    def describe(self) -> str:
        return f"varquote({self.val})"


# --- wrappers ---

@dataclass(eq=False)
class WrapperNode(Node):
    """A node that wraps exactly one following form."""

    label: ClassVar[str]
    pos: Pos
    node: Node

    def children(self) -> list[Node]:
        return [self.node]

    def set_children(self, nodes: list[Node]) -> None:
        if len(nodes) != 1:
            raise ValueError(
                f"set_children called on {type(self).__name__} with {len(nodes)} nodes"
            )
        self.node = nodes[0]

    def describe(self) -> str:
        return self.label


@dataclass(eq=False)
class DerefNode(WrapperNode):
    kind = NodeKind.DEREF
    label = "deref"


@dataclass(eq=False)
class MetadataNode(WrapperNode):
    kind = NodeKind.METADATA
    label = "metadata"
    prefix: str = "^"  # or the older "#^"


@dataclass(eq=False)
class QuoteNode(WrapperNode):
    kind = NodeKind.QUOTE
    label = "quote"


@dataclass(eq=False)
class ReaderDiscardNode(WrapperNode):
    kind = NodeKind.READER_DISCARD
    label = "discard"


@dataclass(eq=False)
class ReaderEvalNode(WrapperNode):
    kind = NodeKind.READER_EVAL
    label = "eval"


@dataclass(eq=False)
class SyntaxQuoteNode(WrapperNode):
    kind = NodeKind.SYNTAX_QUOTE
    label = "syntax quote"


@dataclass(eq=False)
class UnquoteNode(WrapperNode):
    kind = NodeKind.UNQUOTE
    label = "unquote"


@dataclass(eq=False)
class UnquoteSpliceNode(WrapperNode):
    kind = NodeKind.UNQUOTE_SPLICE
    label = "unquote splice"


# --- sequences ---

@dataclass(eq=False)
class SequenceNode(Node):
    """A node that owns an ordered list of children."""

    label: ClassVar[str]
    pos: Pos
    nodes: list[Node] = field(default_factory=list)

    def children(self) -> list[Node]:
        return self.nodes

    def set_children(self, nodes: list[Node]) -> None:
        # Re-linking parents is up to the caller (see link_parents).
        self.nodes = nodes

    def describe(self) -> str:
        return f"{self.label}(length={count_semantic(self.nodes)})"


@dataclass(eq=False)
class FnLiteralNode(SequenceNode):
    kind = NodeKind.FN_LITERAL
    label = "lambda"


@dataclass(eq=False)
class ListNode(SequenceNode):
    kind = NodeKind.LIST
    label = "list"


@dataclass(eq=False)
class MapNode(SequenceNode):
    kind = NodeKind.MAP
    label = "map"
    namespace: str = ""  # ":foo" for #:foo{...}, "::" for #::{...}

    def describe(self) -> str:
        length = count_semantic(self.nodes) // 2
        if self.namespace:
            return f"map(ns={self.namespace}, length={length})"
        return f"map(length={length})"


@dataclass(eq=False)
class ReaderCondNode(SequenceNode):
    kind = NodeKind.READER_COND
    label = "reader-cond"


@dataclass(eq=False)
class ReaderCondSpliceNode(SequenceNode):
    kind = NodeKind.READER_COND_SPLICE
    label = "reader-cond-splice"


@dataclass(eq=False)
class SetNode(SequenceNode):
    kind = NodeKind.SET
    label = "set"


@dataclass(eq=False)
class VectorNode(SequenceNode):
    kind = NodeKind.VECTOR
    label = "vector"


# --- helpers ---

def is_semantic(node: Node) -> bool:
    """Report whether node affects program meaning (not a comment or newline)."""
    return not isinstance(node, (CommentNode, NewlineNode))


def count_semantic(nodes: list[Node]) -> int:
    return sum(1 for n in nodes if is_semantic(n))


def is_newline(node: Node) -> bool:
    return isinstance(node, NewlineNode)


def fn_form_symbol(node: Node, *names: str) -> bool:
    """Report whether node is a list headed by a symbol (one of names, if given)."""
    if not isinstance(node, ListNode) or not node.nodes:
        return False
    head = node.nodes[0]
    if not isinstance(head, SymbolNode):
        return False
    return not names or head.val in names


def fn_form_keyword(node: Node, *names: str) -> bool:
    """Report whether node is a list headed by a keyword (one of names, if given)."""
    if not isinstance(node, ListNode) or not node.nodes:
        return False
    head = node.nodes[0]
    if not isinstance(head, KeywordNode):
        return False
    return not names or head.val in names


def link_parents(node: Node) -> None:
    """Point every child in node's subtree at its parent."""
    for child in node.children():
        child.parent = node
        link_parents(child)


# Forms may nest at most this deep. Reading and printing recurse a few
# frames per level, so nesting_room() lifts the interpreter's limit to fit.
MAX_DEPTH = 500
_FRAMES_PER_LEVEL = 6


@contextmanager
def nesting_room() -> Iterator[None]:
    old = sys.getrecursionlimit()
    sys.setrecursionlimit(max(old, MAX_DEPTH * _FRAMES_PER_LEVEL + 1000))
    try:
        yield
    finally:
        sys.setrecursionlimit(old)


_RUNE_ESCAPES = {
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
    "\\": "\\\\",
    "'": "\\'",
}


def quote_rune(ch: str) -> str:
    """Single-quote a character, escaping it if it isn't printable."""
    if ch in _RUNE_ESCAPES:
        return f"'{_RUNE_ESCAPES[ch]}'"
    if ch.isprintable():
        return f"'{ch}'"
    n = ord(ch)
    if n < 0x80:
        return f"'\\x{n:02x}'"
    if n <= 0xFFFF:
        return f"'\\u{n:04x}'"
    return f"'\\U{n:08x}'"


def quote_string(s: str) -> str:
    return json.dumps(s, ensure_ascii=False)
