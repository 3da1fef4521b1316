"""Tree printer with form-aware indentation.

The printer walks the tree keeping track of the current column. Newline nodes
already in the tree decide where lines break; the indent style of the
enclosing form decides how far each new line is indented.
"""

import logging
from typing import Callable, Optional, TextIO

from .errors import FormatError
from .nodes import (
    MAX_DEPTH,
    BoolNode,
    CharacterNode,
    CommentNode,
    KeywordNode,
    ListNode,
    MapNode,
    MetadataNode,
    Node,
    NodeKind,
    NumberNode,
    ReaderDiscardNode,
    RegexNode,
    SequenceNode,
    StringNode,
    SymbolNode,
    TagNode,
    VarQuoteNode,
    VectorNode,
    WrapperNode,
    fn_form_symbol,
    is_newline,
    is_semantic,
    nesting_room,
)
from .parser import Tree
from .styles import (
    BODY_STYLES,
    COND_SKIP,
    THREAD_FIRST_DEMOTIONS,
    Resolver,
)
from .types import FormatConfig, IndentStyle, ThreadFirstStyle

logger = logging.getLogger(__name__)

# A list whose first element is a comment wider than this indents its body
# by one instead of lining up after the comment.
LONG_COMMENT_WIDTH = 12

DOCSTRING_FORMS = ("ns", "defmulti", "def", "defmacro", "defn")

_WRAPPER_PREFIXES = {
    NodeKind.DEREF: "@",
    NodeKind.QUOTE: "'",
    NodeKind.READER_DISCARD: "#_",
    NodeKind.READER_EVAL: "#=",
    NodeKind.SYNTAX_QUOTE: "`",
    NodeKind.UNQUOTE: "~",
    NodeKind.UNQUOTE_SPLICE: "~@",
}

_SEQUENCE_DELIMS = {
    NodeKind.FN_LITERAL: ("#(", ")"),
    NodeKind.LIST: ("(", ")"),
    NodeKind.READER_COND: ("#?(", ")"),
    NodeKind.READER_COND_SPLICE: ("#?@(", ")"),
    NodeKind.SET: ("#{", "}"),
    NodeKind.VECTOR: ("[", "]"),
}


def _pairing(node: Node) -> bool:
    """Report whether node counts toward binding and clause pairs."""
    return is_semantic(node) and not isinstance(node, (MetadataNode, ReaderDiscardNode))


def _check_depth(node: Node, depth: int) -> None:
    if depth > MAX_DEPTH and isinstance(node, (SequenceNode, WrapperNode)):
        raise FormatError(f"{node.pos}: forms nested more than {MAX_DEPTH} deep")


class Printer:
    """Writes a parse tree to out with canonical indentation."""

    def __init__(self, out: TextIO, config: Optional[FormatConfig] = None):
        self.out = out
        self.config = config if config is not None else FormatConfig()
        self.indent_char = self.config.indent_char
        self._resolver = Resolver(self.config.indent_overrides,
                                  self.config.thread_first_overrides)
        self._special: dict[Node, IndentStyle] = {}
        self._thread_first: set[Node] = set()
        self._docstrings: set[Node] = set()
        self._depth = 0
        self._printers: dict[NodeKind, Callable[[Node, int], int]] = {
            NodeKind.BOOL: self._print_bool,
            NodeKind.CHARACTER: self._print_character,
            NodeKind.COMMENT: self._print_comment,
            NodeKind.DEREF: self._print_wrapper,
            NodeKind.FN_LITERAL: self._print_fn_literal,
            NodeKind.KEYWORD: self._print_keyword,
            NodeKind.LIST: self._print_list,
            NodeKind.MAP: self._print_map,
            NodeKind.METADATA: self._print_metadata,
            NodeKind.NEWLINE: self._print_newline,
            NodeKind.NIL: self._print_nil,
            NodeKind.NUMBER: self._print_number,
            NodeKind.QUOTE: self._print_wrapper,
            NodeKind.READER_COND: self._print_normal_sequence,
            NodeKind.READER_COND_SPLICE: self._print_normal_sequence,
            NodeKind.READER_DISCARD: self._print_wrapper,
            NodeKind.READER_EVAL: self._print_wrapper,
            NodeKind.REGEX: self._print_regex,
            NodeKind.SET: self._print_normal_sequence,
            NodeKind.STRING: self._print_string,
            NodeKind.SYMBOL: self._print_symbol,
            NodeKind.SYNTAX_QUOTE: self._print_wrapper,
            NodeKind.TAG: self._print_tag,
            NodeKind.UNQUOTE: self._print_wrapper,
            NodeKind.UNQUOTE_SPLICE: self._print_wrapper,
            NodeKind.VAR_QUOTE: self._print_var_quote,
            NodeKind.VECTOR: self._print_vector,
        }

    def print_tree(self, tree: Tree) -> None:
        for transform in self.config.transforms:
            logger.debug("applying transform %s", getattr(transform, "__name__", transform))
            transform(tree)
        # Aliases and referred names are per file.
        self._resolver = Resolver(self.config.indent_overrides,
                                  self.config.thread_first_overrides)
        self._special.clear()
        self._thread_first.clear()
        self._docstrings.clear()
        self._depth = 0
        with nesting_room():
            for root in tree.roots:
                self._resolver.add_ns(root)
                self._mark(root)
            self.print_sequence(tree.roots, 0, IndentStyle.NORMAL)

    def _write(self, s: str) -> int:
        self.out.write(s)
        return len(s)

    def _indent(self, col: int) -> None:
        self.out.write(self.indent_char * col)

    # --- marking passes ---

    def _mark(self, node: Node, depth: int = 1) -> None:
        """Find docstrings and thread-first forms in node's subtree."""
        _check_depth(node, depth)
        self._mark_docstring(node)
        if fn_form_symbol(node):
            style = self._resolver.thread_first_style(node.children()[0].val)
            if style is not None:
                self._mark_thread_first(node, style)
        for child in node.children():
            self._mark(child, depth + 1)

    def _mark_docstring(self, node: Node) -> None:
        if not fn_form_symbol(node, *DOCSTRING_FORMS):
            return
        nodes = node.children()
        if len(nodes) < 3 or not isinstance(nodes[1], SymbolNode):
            return
        for i, n in enumerate(nodes[2:], 2):
            if isinstance(n, StringNode):
                if nodes[0].val == "def" and not any(is_semantic(m) for m in nodes[i + 1:]):
                    return  # (def x "value")
                self._docstrings.add(n)
                return
            if not is_newline(n):
                return

    def _mark_thread_first(self, form: Node, style: ThreadFirstStyle) -> None:
        # Skip the operator and the threaded value; if this form is itself
        # threaded, its value is implicit.
        begin = 1 if form in self._thread_first else 2
        idx = 0
        for n in form.children():
            if not is_semantic(n):
                continue
            if isinstance(n, ListNode) and idx >= begin:
                if style is ThreadFirstStyle.NORMAL or (idx - begin) % 2 == 1:
                    self._thread_first.add(n)
            idx += 1

    # --- printing ---

    def print_node(self, node: Node, col: int) -> int:
        """Print node starting at col and return the column after it."""
        printer = self._printers.get(node.kind)
        if printer is None:
            raise FormatError(f"{node.pos}: unhandled node type {type(node).__name__}")
        if not isinstance(node, (SequenceNode, WrapperNode)):
            return printer(node, col)
        self._depth += 1
        try:
            _check_depth(node, self._depth)
            return printer(node, col)
        finally:
            self._depth -= 1

    def _print_bool(self, node: BoolNode, col: int) -> int:
        return col + self._write("true" if node.val else "false")

    def _print_character(self, node: CharacterNode, col: int) -> int:
        return col + self._write(node.text)

    def _print_comment(self, node: CommentNode, col: int) -> int:
        return col + self._write(node.text)

    def _print_keyword(self, node: KeywordNode, col: int) -> int:
        return col + self._write(node.val)

    def _print_newline(self, node: Node, col: int) -> int:
        raise FormatError(f"{node.pos}: newline outside of a sequence")

    def _print_nil(self, node: Node, col: int) -> int:
        return col + self._write("nil")

    def _print_number(self, node: NumberNode, col: int) -> int:
        return col + self._write(node.val)

    def _print_regex(self, node: RegexNode, col: int) -> int:
        return col + self._write(f'#"{node.val}"')

    def _print_string(self, node: StringNode, col: int) -> int:
        val = node.val
        if node in self._docstrings:
            val = self.align_docstring(val, col)
        return col + self._write(f'"{val}"')

    def _print_symbol(self, node: SymbolNode, col: int) -> int:
        return col + self._write(node.val)

    def _print_tag(self, node: TagNode, col: int) -> int:
        return col + self._write("#" + node.val)

    def _print_var_quote(self, node: VarQuoteNode, col: int) -> int:
        return col + self._write("#'" + node.val)

    def _print_wrapper(self, node: WrapperNode, col: int) -> int:
        col += self._write(_WRAPPER_PREFIXES[node.kind])
        return self.print_node(node.node, col)

    def _print_metadata(self, node: MetadataNode, col: int) -> int:
        col += self._write(node.prefix)
        return self.print_node(node.node, col)

    def _print_delimited(self, node: SequenceNode, col: int, style: IndentStyle,
                         open_: Optional[str] = None, close: Optional[str] = None) -> int:
        if open_ is None:
            open_, close = _SEQUENCE_DELIMS[node.kind]
        col += self._write(open_)
        col = self.print_sequence(node.nodes, col, style)
        return col + self._write(close)

    def _print_normal_sequence(self, node: SequenceNode, col: int) -> int:
        return self._print_delimited(node, col, IndentStyle.NORMAL)

    def _print_map(self, node: MapNode, col: int) -> int:
        return self._print_delimited(node, col, IndentStyle.NORMAL,
                                     "#" + node.namespace + "{" if node.namespace else "{", "}")

    def _print_vector(self, node: VectorNode, col: int) -> int:
        style = self._special.pop(node, IndentStyle.NORMAL)
        return self._print_delimited(node, col, style)

    def _print_fn_literal(self, node: SequenceNode, col: int) -> int:
        return self._print_delimited(node, col, self._choose_style(node.nodes))

    def _print_list(self, node: ListNode, col: int) -> int:
        style = self._special.pop(node, None)
        if style is None:
            style = self._choose_style(node.nodes)
        if node in self._thread_first:
            style = THREAD_FIRST_DEMOTIONS.get(style, style)
        self._apply_special_rules(node, style)
        return self._print_delimited(node, col, style)

    def _choose_style(self, nodes: list[Node]) -> IndentStyle:
        # (;; comment
        #  f x)
        head = next((n for n in nodes if is_semantic(n)), None)
        if isinstance(head, KeywordNode):
            return IndentStyle.LIST
        if isinstance(head, SymbolNode):
            return self._resolver.style(head.val)
        return IndentStyle.NORMAL

    def _apply_special_rules(self, node: ListNode, style: IndentStyle) -> None:
        # Styles that reach into the form's children are set up here, before
        # the children are printed.
        args = [n for n in node.nodes if is_semantic(n)][1:]
        if style is IndentStyle.LET:
            if args and isinstance(args[0], VectorNode):
                self._mark_bindings(args[0])
        elif style is IndentStyle.LETFN:
            if args and isinstance(args[0], VectorNode):
                for fn in args[0].nodes:
                    if isinstance(fn, ListNode):
                        self._special[fn] = IndentStyle.LIST_BODY
        elif style is IndentStyle.DEFTYPE:
            for n in args:
                if isinstance(n, ListNode):
                    self._special[n] = IndentStyle.LIST_BODY

    def _mark_bindings(self, vec: VectorNode) -> None:
        self._special[vec] = IndentStyle.BINDINGS
        # (for [x xs :let [y (f x)]] ...)
        prev: Optional[Node] = None
        for n in vec.nodes:
            if not _pairing(n):
                continue
            if (isinstance(n, VectorNode) and isinstance(prev, KeywordNode)
                    and prev.val == ":let"):
                self._special[n] = IndentStyle.BINDINGS
            prev = n

    def print_sequence(self, nodes: list[Node], w: int, style: IndentStyle) -> int:
        """Print nodes separated by spaces and the newlines among them.

        w is the column just inside the opening delimiter. The return value is
        the column after the last node, or after the indent written for the
        closing delimiter when the sequence ends with a newline.
        """
        col = w
        indent = w + 1 if style in BODY_STYLES else w
        need_space = False
        need_indent = False
        first_end = w

        skip = COND_SKIP.get(style)
        pairs = 0   # pairing nodes seen so far (for lists, the head counts)
        clause = 0  # position within the cond clauses, after the skipped args
        for i, n in enumerate(nodes):
            if is_newline(n):
                if i == 1 and style is IndentStyle.LIST:
                    if (isinstance(nodes[0], CommentNode)
                            and first_end - w <= LONG_COMMENT_WIDTH):
                        indent = first_end + 1
                    else:
                        indent = w + 1
                self._write("\n")
                col = indent
                need_indent = True
                need_space = False
                continue

            if i == 1 and (style is IndentStyle.LIST or skip == 0):
                # (foo bar
                #      baz)
                indent = first_end + 1

            pairing = _pairing(n)
            value = False
            if pairing and style is IndentStyle.BINDINGS:
                value = pairs % 2 == 1
            elif pairing and skip is not None:
                value = pairs > skip and clause % 2 == 1

            if need_indent:
                col = indent + 2 if value else indent
                self._indent(col)
            elif need_space:
                col += self._write(" ")
            col = self.print_node(n, col)
            if i == 0:
                first_end = col
            need_indent = False
            need_space = True

            if not pairing:
                continue
            if skip is not None and pairs > skip:
                # condp clauses of the form "test :>> result-fn" have three parts.
                if not (style is IndentStyle.COND2 and value
                        and isinstance(n, KeywordNode) and n.val == ":>>"):
                    clause += 1
            pairs += 1

        if need_indent:
            # The next thing written is the closing delimiter.
            self._indent(indent)
        return col

    def align_docstring(self, docstring: str, w: int) -> str:
        """Re-indent the continuation lines of a docstring whose opening quote
        is at column w. Indentation beyond w is kept; blank lines are emptied."""
        lines = docstring.split("\n")
        indent = self.indent_char * w
        aligned = [lines[0]]
        for line in lines[1:]:
            stripped = line.strip()
            if not stripped:
                aligned.append("")
                continue
            n = len(line) - len(line.lstrip(" "))
            prefix = indent + " " * (n - w) if n > w else indent
            aligned.append(prefix + stripped)
        return "\n".join(aligned)
