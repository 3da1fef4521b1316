"""Recursive-descent parser that builds a full-fidelity Clojure syntax tree."""

import logging
import re
from pathlib import Path
from typing import IO, Iterator, Optional, Union

from .errors import LexError, ParseError
from .lexer import Lexer
from .nodes import (
    MAX_DEPTH,
    BoolNode,
    CharacterNode,
    CommentNode,
    DerefNode,
    FnLiteralNode,
    KeywordNode,
    ListNode,
    MapNode,
    MetadataNode,
    NewlineNode,
    NilNode,
    Node,
    NumberNode,
    QuoteNode,
    ReaderCondNode,
    ReaderCondSpliceNode,
    ReaderDiscardNode,
    ReaderEvalNode,
    RegexNode,
    SequenceNode,
    SetNode,
    StringNode,
    SymbolNode,
    SyntaxQuoteNode,
    TagNode,
    UnquoteNode,
    UnquoteSpliceNode,
    VarQuoteNode,
    VectorNode,
    WrapperNode,
    is_semantic,
    nesting_room,
)
from .token import Token, TokenType
from .types import ParseOpts, Pos

logger = logging.getLogger(__name__)

_NAMED_CHARS = {
    "newline": "\n",
    "space": " ",
    "tab": "\t",
    "formfeed": "\f",
    "backspace": "\b",
    "return": "\r",
}

_OCTAL_CHAR = re.compile(r"o([0-7]{3})")
_UNICODE_CHAR = re.compile(r"u([0-9A-Fa-f]{4})")


class Tree:
    """The parsed roots of one source, plus the options used to parse it."""

    def __init__(self, roots: Optional[list[Node]] = None, opts: ParseOpts = ParseOpts(0)):
        self.roots: list[Node] = roots if roots is not None else []
        self.opts = opts

    def __str__(self) -> str:
        return _nodes_to_string(self.roots, 0)

    def flatten(self) -> list[Node]:
        """All nodes in a depth-first, pre-order walk."""
        out: list[Node] = []

        def visit(node: Node) -> None:
            out.append(node)
            for child in node.children():
                visit(child)

        for root in self.roots:
            visit(root)
        return out


def _nodes_to_string(nodes: list[Node], depth: int) -> str:
    parts = []
    for node in nodes:
        parts.append("  " * depth + node.describe() + "\n")
        parts.append(_nodes_to_string(node.children(), depth + 1))
    return "".join(parts)


class Parser:
    """Builds a Tree from a token stream with one token of lookahead."""

    def __init__(self, tokens: Iterator[Token], opts: ParseOpts = ParseOpts(0)):
        self._tokens = tokens
        self._opts = opts
        self._tok: Optional[Token] = None
        self._peek_count = 0
        self._in_fn_literal = False
        self._depth = 0

    def parse(self) -> Tree:
        tree = Tree(opts=self._opts)
        with nesting_room():
            while True:
                node = self._parse_next()
                if node is None:
                    break
                if self._include(node):
                    tree.roots.append(node)
        return tree

    # --- token stream ---

    def _next_token(self) -> Token:
        tok = next(self._tokens)
        if tok.type is TokenType.ERROR:
            raise LexError(tok.pos, tok.val)
        return tok

    def _next(self) -> Token:
        if self._peek_count > 0:
            self._peek_count -= 1
        else:
            self._tok = self._next_token()
        return self._tok

    def _backup(self) -> None:
        self._peek_count += 1
        if self._peek_count > 1:
            raise RuntimeError("backup() called twice consecutively")

    def _unexpected(self, tok: Token):
        raise ParseError(tok.pos, f'unexpected token "{tok.val}"')

    def _unexpected_eof(self, pos: Pos):
        raise ParseError(pos, "unexpected EOF")

    def _descend(self, pos: Pos) -> None:
        self._depth += 1
        if self._depth > MAX_DEPTH:
            raise ParseError(pos, f"forms nested more than {MAX_DEPTH} deep")

    # --- grammar ---

    def _parse_next(self) -> Optional[Node]:
        """Parse the next form. Returns None at EOF."""
        tok = self._next()
        typ = tok.type
        if typ is TokenType.SYMBOL:
            if tok.val == "nil":
                return NilNode(tok.pos)
            if tok.val in ("true", "false"):
                return BoolNode(tok.pos, tok.val == "true")
            return SymbolNode(tok.pos, tok.val)
        if typ is TokenType.CHAR_LITERAL:
            return self._parse_char_literal(tok)
        if typ is TokenType.COMMENT:
            return CommentNode(tok.pos, tok.val)
        if typ is TokenType.KEYWORD:
            return KeywordNode(tok.pos, tok.val)
        if typ is TokenType.NEWLINE:
            return NewlineNode(tok.pos)
        if typ is TokenType.NUMBER:
            # The token may not be a valid number; it is kept as written.
            return NumberNode(tok.pos, tok.val)
        if typ is TokenType.STRING:
            return StringNode(tok.pos, tok.val[1:-1])
        if typ is TokenType.LEFT_PAREN:
            return self._parse_sequence(ListNode(tok.pos), TokenType.RIGHT_PAREN)
        if typ is TokenType.LEFT_BRACKET:
            return self._parse_sequence(VectorNode(tok.pos), TokenType.RIGHT_BRACKET)
        if typ is TokenType.LEFT_BRACE:
            return self._parse_map(MapNode(tok.pos))
        if typ is TokenType.AT_SIGN:
            return self._wrap(DerefNode, tok)
        if typ is TokenType.APOSTROPHE:
            return self._wrap(QuoteNode, tok)
        if typ is TokenType.BACKTICK:
            return self._wrap(SyntaxQuoteNode, tok)
        if typ is TokenType.CIRCUMFLEX:
            return self._wrap(MetadataNode, tok)
        if typ is TokenType.TILDE:
            nxt = self._next()
            if nxt.type is TokenType.AT_SIGN:
                return self._wrap(UnquoteSpliceNode, tok)
            if nxt.type is TokenType.EOF:
                self._unexpected_eof(tok.pos)
            self._backup()
            return self._wrap(UnquoteNode, tok)
        if typ is TokenType.DISPATCH:
            return self._parse_dispatch(tok)
        if typ is TokenType.OCTOTHORPE:
            return self._parse_tag(tok)
        if typ is TokenType.EOF:
            return None
        self._unexpected(tok)

    def _parse_next_semantic(self, start: Pos) -> Node:
        """Parse the next semantically meaningful form, dropping any comments
        and newlines in front of it. EOF is an error reported at start."""
        while True:
            tok = self._next()
            if tok.type is TokenType.EOF:
                self._unexpected_eof(start)
            self._backup()
            node = self._parse_next()
            if is_semantic(node):
                return node

    def _wrap(self, cls: type, start: Token) -> WrapperNode:
        self._descend(start.pos)
        node = cls(start.pos, self._parse_next_semantic(start.pos))
        self._depth -= 1
        if isinstance(node, MetadataNode) and start.val == "#^":
            node.prefix = "#^"
        node.node.parent = node
        return node

    def _parse_sequence(self, node: SequenceNode, closer: TokenType) -> SequenceNode:
        self._descend(node.pos)
        while True:
            tok = self._next()
            if tok.type is closer:
                break
            if tok.type is TokenType.EOF:
                # Report the unclosed delimiter rather than the end of input.
                self._unexpected_eof(node.pos)
            self._backup()
            child = self._parse_next()
            if self._include(child):
                child.parent = node
                node.nodes.append(child)
        self._depth -= 1
        return node

    def _parse_map(self, node: MapNode) -> MapNode:
        self._parse_sequence(node, TokenType.RIGHT_BRACE)
        if any(isinstance(n, ReaderCondSpliceNode) for n in node.nodes):
            # A splice may contribute any number of forms.
            return node
        pairs = [n for n in node.nodes if is_semantic(n)
                 and not isinstance(n, (MetadataNode, ReaderDiscardNode))]
        if len(pairs) % 2 != 0:
            raise ParseError(node.pos, "map literal must contain an even number of forms")
        return node

    def _parse_char_literal(self, tok: Token) -> CharacterNode:
        val = tok.val[1:]
        if len(val) == 1:
            return CharacterNode(tok.pos, val, tok.val)
        if not val:
            raise ParseError(tok.pos, "invalid character literal")
        if val in _NAMED_CHARS:
            return CharacterNode(tok.pos, _NAMED_CHARS[val], tok.val)
        if val[0] == "o":
            m = _OCTAL_CHAR.fullmatch(val)
            if m is None:
                raise ParseError(tok.pos, "invalid octal literal")
            return CharacterNode(tok.pos, chr(int(m.group(1), 8)), tok.val)
        if val[0] == "u":
            m = _UNICODE_CHAR.fullmatch(val)
            if m is None:
                raise ParseError(tok.pos, "invalid unicode literal")
            return CharacterNode(tok.pos, chr(int(m.group(1), 16)), tok.val)
        raise ParseError(tok.pos, "invalid character literal")

    def _parse_dispatch(self, tok: Token) -> Node:
        val = tok.val
        if val == "#(":
            return self._parse_fn_literal(tok)
        if val in ("#?", "#?@"):
            return self._parse_reader_cond(tok)
        if val == "#:":
            return self._parse_namespaced_map(tok)
        if val == "#_":
            return self._wrap(ReaderDiscardNode, tok)
        if val == "#=":
            return self._wrap(ReaderEvalNode, tok)
        if val == '#"':
            return self._parse_regex(tok)
        if val == "#{":
            return self._parse_set(tok)
        if val == "#'":
            return self._parse_var_quote(tok)
        if val == "#^":
            return self._wrap(MetadataNode, tok)
        if val == "#<":
            raise ParseError(tok.pos, "unreadable dispatch macro")
        self._unexpected(tok)

    def _expect(self, start: Token, typ: TokenType, what: str) -> Token:
        tok = self._next()
        if tok.type is TokenType.EOF:
            self._unexpected_eof(start.pos)
        if tok.type is not typ:
            raise ParseError(tok.pos, what)
        return tok

    def _parse_tag(self, start: Token) -> TagNode:
        tok = self._next()
        if tok.type is TokenType.SYMBOL:
            return TagNode(start.pos, tok.val)
        if tok.type is TokenType.EOF:
            self._unexpected_eof(start.pos)
        self._unexpected(tok)

    def _parse_fn_literal(self, start: Token) -> FnLiteralNode:
        if self._in_fn_literal:
            raise ParseError(start.pos, "cannot nest fn literals")
        self._expect(start, TokenType.LEFT_PAREN, "fn literal must be a list")
        self._in_fn_literal = True
        node = self._parse_sequence(FnLiteralNode(start.pos), TokenType.RIGHT_PAREN)
        self._in_fn_literal = False
        return node

    def _parse_reader_cond(self, start: Token) -> Node:
        self._expect(start, TokenType.LEFT_PAREN, "reader conditional body must be a list")
        body = self._parse_sequence(ListNode(start.pos), TokenType.RIGHT_PAREN)
        cls = ReaderCondNode if start.val == "#?" else ReaderCondSpliceNode
        node = cls(start.pos, body.nodes)
        for child in node.nodes:
            child.parent = node
        return node

    def _parse_namespaced_map(self, start: Token) -> MapNode:
        ns = self._expect(start, TokenType.KEYWORD, "namespaced map must have a namespace")
        self._expect(start, TokenType.LEFT_BRACE, "namespaced map must have a map")
        return self._parse_map(MapNode(start.pos, namespace=ns.val))

    def _parse_regex(self, start: Token) -> RegexNode:
        tok = self._expect(start, TokenType.STRING, "regex must be a string")
        return RegexNode(start.pos, tok.val[1:-1])

    def _parse_set(self, start: Token) -> SetNode:
        self._expect(start, TokenType.LEFT_BRACE, "set literal must open with {")
        return self._parse_sequence(SetNode(start.pos), TokenType.RIGHT_BRACE)

    def _parse_var_quote(self, start: Token) -> VarQuoteNode:
        tok = self._next()
        if tok.type is TokenType.SYMBOL:
            return VarQuoteNode(start.pos, tok.val)
        if tok.type is TokenType.EOF:
            self._unexpected_eof(start.pos)
        self._unexpected(tok)

    def _include(self, node: Node) -> bool:
        opts = self._opts
        if (opts & ParseOpts.IGNORE_COMMENT_FORMS and isinstance(node, ListNode)
                and node.nodes and isinstance(node.nodes[0], SymbolNode)
                and node.nodes[0].val == "comment"):
            return False
        if opts & ParseOpts.IGNORE_READER_DISCARD and isinstance(node, ReaderDiscardNode):
            return False
        if not opts & ParseOpts.INCLUDE_NON_SEMANTIC and not is_semantic(node):
            return False
        return True


def parse(text: str, name: str = "<input>", opts: ParseOpts = ParseOpts(0)) -> Tree:
    """Parse Clojure source text into a Tree.

    Raises LexError or ParseError on malformed input.
    """
    tree = Parser(iter(Lexer(text, name)), opts).parse()
    logger.debug("parsed %d roots from %s", len(tree.roots), name)
    return tree


def parse_stream(stream: IO[str], name: Optional[str] = None,
                 opts: ParseOpts = ParseOpts(0)) -> Tree:
    lexer = Lexer.from_stream(stream, name)
    tree = Parser(iter(lexer), opts).parse()
    logger.debug("parsed %d roots from %s", len(tree.roots), lexer.name)
    return tree


def parse_file(path: Union[str, Path], opts: ParseOpts = ParseOpts(0)) -> Tree:
    with open(path, encoding="utf-8", newline="") as f:
        return parse_stream(f, str(path), opts)
