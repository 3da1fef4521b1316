"""Indentation style tables and symbol-to-style resolution.

The module-level tables are read-only. A Resolver layers per-invocation
overrides on a fresh copy and learns require aliases and referred names from
the file's ns form.
"""

import logging
from types import MappingProxyType
from typing import Mapping, Optional

from .nodes import (
    KeywordNode,
    ListNode,
    Node,
    StringNode,
    SymbolNode,
    VectorNode,
    fn_form_keyword,
    fn_form_symbol,
    is_semantic,
)
from .types import IndentStyle, ThreadFirstStyle

logger = logging.getLogger(__name__)


def _table(styles: dict[IndentStyle, tuple[str, ...]]) -> Mapping[str, IndentStyle]:
    m: dict[str, IndentStyle] = {}
    for style, names in styles.items():
        for name in names:
            m[name] = style
    return MappingProxyType(m)


DEFAULT_INDENT_STYLES = _table({
    IndentStyle.LIST_BODY: (
        "as->", "bound-fn", "catch", "comment", "def", "definline",
        "defmacro", "defmethod", "defmulti", "defn", "defn-", "defonce",
        "defprotocol", "defstruct", "deftest", "deftest-", "do", "doto",
        "extend", "finally", "fn", "future", "if", "if-not", "locking", "ns",
        "set-test", "testing", "try", "when", "when-not", "while",
        "with-bindings", "with-in-str", "with-out-str", "with-precision",
        "with-redefs-fn", "with-test",
    ),
    IndentStyle.LET: (
        "binding", "doseq", "dotimes", "for", "if-let", "if-some", "let",
        "loop", "when-first", "when-let", "when-some", "with-local-vars",
        "with-open", "with-redefs",
    ),
    IndentStyle.LETFN: ("letfn",),
    IndentStyle.DEFTYPE: (
        "definterface", "defrecord", "deftype", "extend-protocol",
        "extend-type", "proxy", "reify",
    ),
    IndentStyle.COND0: ("cond",),
    IndentStyle.COND1: ("assoc", "case", "cond->", "cond->>"),
    IndentStyle.COND2: ("condp",),
})

# Names with these prefixes take bodies unless a table says otherwise.
BODY_PREFIXES = ("def", "let", "send", "with-", "when-")

DEFAULT_THREAD_FIRST_STYLES: Mapping[str, ThreadFirstStyle] = MappingProxyType({
    "->": ThreadFirstStyle.NORMAL,
    "some->": ThreadFirstStyle.NORMAL,
    "cond->": ThreadFirstStyle.COND_ARROW,
})

# Inside a thread-first form a list has an implicit first argument, so a
# cond-style form skips one fewer leading argument.
THREAD_FIRST_DEMOTIONS: Mapping[IndentStyle, IndentStyle] = MappingProxyType({
    IndentStyle.COND1: IndentStyle.COND0,
    IndentStyle.COND2: IndentStyle.COND1,
})

# Number of leading, unpaired arguments for the cond-style forms.
COND_SKIP: Mapping[IndentStyle, int] = MappingProxyType({
    IndentStyle.COND0: 0,
    IndentStyle.COND1: 1,
    IndentStyle.COND2: 2,
})

BODY_STYLES = frozenset({
    IndentStyle.LIST_BODY,
    IndentStyle.LET,
    IndentStyle.LETFN,
    IndentStyle.DEFTYPE,
    IndentStyle.COND0,
    IndentStyle.COND1,
    IndentStyle.COND2,
})


def split_symbol(name: str) -> tuple[Optional[str], str]:
    """Split "ns/name" into its parts. "/" alone is an unqualified name."""
    i = name.find("/")
    if i <= 0 or i == len(name) - 1:
        return None, name
    return name[:i], name[i + 1:]


class Resolver:
    """Maps the head symbol of a list to an IndentStyle."""

    def __init__(self, overrides: Optional[Mapping[str, IndentStyle]] = None,
                 thread_first_overrides: Optional[Mapping[str, ThreadFirstStyle]] = None):
        self.styles: dict[str, IndentStyle] = dict(DEFAULT_INDENT_STYLES)
        self.styles.update(overrides or {})
        self.thread_first: dict[str, ThreadFirstStyle] = dict(DEFAULT_THREAD_FIRST_STYLES)
        self.thread_first.update(thread_first_overrides or {})
        if overrides or thread_first_overrides:
            logger.debug("indent overrides %s, thread-first overrides %s",
                         dict(overrides or {}), dict(thread_first_overrides or {}))
        self.requires: dict[str, str] = {}  # alias -> namespace
        self.refers: dict[str, str] = {}    # referred name -> namespace

    def style(self, sym: str) -> IndentStyle:
        style = self.lookup(sym)
        if style is not None:
            return style
        _, name = split_symbol(sym)
        if name.startswith(BODY_PREFIXES):
            return IndentStyle.LIST_BODY
        return IndentStyle.LIST

    def lookup(self, sym: str) -> Optional[IndentStyle]:
        """Find an explicit style for sym: exactly as written, then through a
        require alias or :refer, then by its unqualified name."""
        styles = self.styles
        if sym in styles:
            return styles[sym]
        ns, name = split_symbol(sym)
        if ns is not None:
            full = self.requires.get(ns)
            if full is not None and f"{full}/{name}" in styles:
                return styles[f"{full}/{name}"]
        else:
            full = self.refers.get(sym)
            if full is not None and f"{full}/{sym}" in styles:
                return styles[f"{full}/{sym}"]
        return styles.get(name)

    def thread_first_style(self, sym: str) -> Optional[ThreadFirstStyle]:
        if sym in self.thread_first:
            return self.thread_first[sym]
        _, name = split_symbol(sym)
        return self.thread_first.get(name)

    def add_ns(self, ns: Node) -> None:
        """Record aliases and referred names from an (ns ...) form."""
        if not fn_form_symbol(ns, "ns"):
            return
        for clause in ns.children():
            if not fn_form_keyword(clause, ":require", ":require-macros"):
                continue
            for spec in _semantic(clause.children()[1:]):
                self._add_libspec(spec, "")
        logger.debug("ns aliases %s, refers %s", self.requires, self.refers)

    def _add_libspec(self, spec: Node, prefix: str) -> None:
        name = _lib_name(spec)
        if name is not None:
            # A bare lib name: nothing to record.
            return
        if not isinstance(spec, (VectorNode, ListNode)):
            return
        parts = _semantic(spec.children())
        if not parts:
            return
        name = _lib_name(parts[0])
        if name is None:
            return
        name = prefix + name
        rest = parts[1:]
        if rest and not isinstance(rest[0], KeywordNode):
            # Prefix list: [clojure [set :as s] [string :as str]]
            for sub in rest:
                self._add_libspec(sub, name + ".")
            return
        for i in range(0, len(rest) - 1, 2):
            opt, val = rest[i], rest[i + 1]
            if not isinstance(opt, KeywordNode):
                continue
            if opt.val in (":as", ":as-alias") and isinstance(val, SymbolNode):
                self.requires[val.val] = name
            elif opt.val in (":refer", ":refer-macros") and isinstance(val, (VectorNode, ListNode)):
                for ref in _semantic(val.children()):
                    if isinstance(ref, SymbolNode):
                        self.refers[ref.val] = name


def _semantic(nodes: list[Node]) -> list[Node]:
    return [n for n in nodes if is_semantic(n)]


def _lib_name(node: Node) -> Optional[str]:
    if isinstance(node, SymbolNode):
        return node.val
    if isinstance(node, StringNode):
        return node.val
    return None
