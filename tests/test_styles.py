import pytest

from cljform.parser import parse
from cljform.styles import (
    DEFAULT_INDENT_STYLES,
    DEFAULT_THREAD_FIRST_STYLES,
    Resolver,
    split_symbol,
)
from cljform.types import FormatConfig, IndentStyle, ThreadFirstStyle


def ns_resolver(src, **kw):
    r = Resolver(**kw)
    for root in parse(src, "temp").roots:
        r.add_ns(root)
    return r


@pytest.mark.parametrize("sym, want", [
    ("defn", IndentStyle.LIST_BODY),
    ("let", IndentStyle.LET),
    ("letfn", IndentStyle.LETFN),
    ("reify", IndentStyle.DEFTYPE),
    ("cond", IndentStyle.COND0),
    ("case", IndentStyle.COND1),
    ("condp", IndentStyle.COND2),
    ("clojure.core/let", IndentStyle.LET),
    ("defschema", IndentStyle.LIST_BODY),
    ("with-connection", IndentStyle.LIST_BODY),
    ("when-valid", IndentStyle.LIST_BODY),
    ("let-flow", IndentStyle.LIST_BODY),
    ("foo", IndentStyle.LIST),
    ("/", IndentStyle.LIST),
])
def test_default_styles(sym, want):
    assert Resolver().style(sym) is want


def test_split_symbol():
    assert split_symbol("a/b") == ("a", "b")
    assert split_symbol("b") == (None, "b")
    assert split_symbol("/") == (None, "/")
    assert split_symbol("clojure.core//") == ("clojure.core", "/")


def test_defaults_are_read_only():
    with pytest.raises(TypeError):
        DEFAULT_INDENT_STYLES["foo"] = IndentStyle.LIST
    with pytest.raises(TypeError):
        DEFAULT_THREAD_FIRST_STYLES["foo"] = ThreadFirstStyle.NORMAL


def test_overrides_do_not_touch_defaults():
    r = Resolver({"foo": IndentStyle.LIST_BODY, "let": IndentStyle.LIST})
    assert r.style("foo") is IndentStyle.LIST_BODY
    assert r.style("let") is IndentStyle.LIST
    assert "foo" not in DEFAULT_INDENT_STYLES
    assert DEFAULT_INDENT_STYLES["let"] is IndentStyle.LET
    assert Resolver().style("foo") is IndentStyle.LIST


def test_qualified_override_through_alias():
    r = ns_resolver(
        "(ns a (:require [org.lib1 :as lib] [org.lib2 :refer [up]]))",
        overrides={"org.lib1/f": IndentStyle.LIST_BODY, "org.lib2/up": IndentStyle.COND0},
    )
    assert r.requires == {"lib": "org.lib1"}
    assert r.refers == {"up": "org.lib2"}
    assert r.style("lib/f") is IndentStyle.LIST_BODY
    assert r.style("org.lib1/f") is IndentStyle.LIST_BODY
    assert r.style("up") is IndentStyle.COND0
    assert r.style("f") is IndentStyle.LIST
    assert r.style("other/f") is IndentStyle.LIST


def test_bare_override_matches_qualified_use():
    r = Resolver({"up": IndentStyle.LIST_BODY})
    assert r.style("x/up") is IndentStyle.LIST_BODY


def test_prefix_lists_and_string_libs():
    r = ns_resolver(
        '(ns a (:require [clojure [set :as s] [string :as str]]'
        ' ["react" :as react] clojure.walk))'
    )
    assert r.requires == {"s": "clojure.set", "str": "clojure.string", "react": "react"}


def test_require_macros_clause():
    r = ns_resolver("(ns a (:require-macros [m.core :as m :refer [mac]]))")
    assert r.requires == {"m": "m.core"}
    assert r.refers == {"mac": "m.core"}


def test_non_ns_forms_are_ignored():
    r = ns_resolver("(require '[a.b :as ab])")
    assert r.requires == {}


def test_thread_first_styles():
    r = Resolver(thread_first_overrides={"my->": ThreadFirstStyle.NORMAL})
    assert r.thread_first_style("->") is ThreadFirstStyle.NORMAL
    assert r.thread_first_style("some->") is ThreadFirstStyle.NORMAL
    assert r.thread_first_style("cond->") is ThreadFirstStyle.COND_ARROW
    assert r.thread_first_style("my->") is ThreadFirstStyle.NORMAL
    assert r.thread_first_style("clojure.core/->") is ThreadFirstStyle.NORMAL
    assert r.thread_first_style("->>") is None


def test_from_keyword():
    assert IndentStyle.from_keyword(":list-body") is IndentStyle.LIST_BODY
    assert IndentStyle.from_keyword("cond2") is IndentStyle.COND2
    with pytest.raises(ValueError):
        IndentStyle.from_keyword(":nope")


def test_config_accepts_keyword_names():
    cfg = FormatConfig(indent_overrides={"foo": ":list-body", "bar": IndentStyle.LET},
                       thread_first_overrides={"my->": ":normal"})
    assert cfg.indent_overrides == {"foo": IndentStyle.LIST_BODY, "bar": IndentStyle.LET}
    assert cfg.thread_first_overrides == {"my->": ThreadFirstStyle.NORMAL}
    with pytest.raises(ValueError):
        FormatConfig(indent_overrides={"foo": "sideways"})
