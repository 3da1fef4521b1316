import pytest

from cljform.errors import LexError, ParseError, ReadError
from cljform.lexer import Lexer
from cljform.nodes import (
    CharacterNode,
    MetadataNode,
    ReaderDiscardNode,
    TagNode,
)
from cljform.parser import Parser, parse, parse_file
from cljform.types import ParseOpts, Pos

ALL = ParseOpts.INCLUDE_NON_SEMANTIC


@pytest.mark.parametrize("src, want", [
    ("true", "true"),
    (r"\s", "char('s')"),
    ("; comment!", 'comment("; comment!")'),
    ("@foo", "deref"),
    ("#(+ % 3)", "lambda(length=3)"),
    ("#_(a b c)", "discard"),
    (":foobar", "keyword(:foobar)"),
    ("(foo bar baz)", "list(length=3)"),
    ("{:a b :c d}", "map(length=2)"),
    ("#:foo{:a 1}", "map(ns=:foo, length=1)"),
    ("#::{:b 1234}", "map(ns=::, length=1)"),
    ("^String", "metadata"),
    ("nil", "nil"),
    ("123.456", "num(123.456)"),
    ("foo", "sym(foo)"),
    ("'(foobar)", "quote"),
    ('#"^asdf"', 'regex("^asdf")'),
    ("#{1 2 3}", "set(length=3)"),
    ("#?(:clj 1)", "reader-cond(length=2)"),
    ("#?@(:clj :a :default :b)", "reader-cond-splice(length=4)"),
    ('"foo"', 'string("foo")'),
    ("`(1 2 3)", "syntax quote"),
    ("#foo", "tag(foo)"),
    ("~foo", "unquote"),
    ("~@foo", "unquote splice"),
    ("#'asdf", "varquote(asdf)"),
    ("[a b c]", "vector(length=3)"),
    ("#_foobar", "discard"),
    ("#=foo", "eval"),
    ("#^foo", "metadata"),
    ("#! hello!", 'comment("#! hello!")'),
    ("a%b%", "sym(a%b%)"),
    (":100%>50%", "keyword(:100%>50%)"),
    ("3foo", "num(3foo)"),
    (r"\newline", "char('\\n')"),
])
def test_single_form(src, want):
    tree = parse(src, "temp", ALL)
    assert len(tree.roots) == 1
    assert tree.roots[0].describe() == want
    assert str(tree.roots[0]) == want


def find(nodes, target):
    for n in nodes:
        if n.describe() == target:
            return n
        m = find(n.children(), target)
        if m is not None:
            return m
    return None


@pytest.mark.parametrize("src, child, want", [
    ("(a b)", "sym(b)", "list(length=2)"),
    ("(a {b c})", "sym(b)", "map(length=1)"),
    ("'a", "sym(a)", "quote"),
    ("#?(:clj a)", "sym(a)", "reader-cond(length=2)"),
    ("[#(f %)]", "sym(%)", "lambda(length=2)"),
])
def test_parent_pointers(src, child, want):
    tree = parse(src, "temp", ALL)
    node = find(tree.roots, child)
    assert node is not None
    assert node.parent.describe() == want


def test_root_has_no_parent():
    tree = parse("a", "temp", ALL)
    assert tree.roots[0].parent is None


def test_discard_and_tag_are_whitespace_sensitive():
    discard = parse("#_foobar", "temp", ALL).roots[0]
    tag = parse("# _", "temp", ALL).roots[0]
    assert isinstance(discard, ReaderDiscardNode)
    assert discard.node.describe() == "sym(foobar)"
    assert isinstance(tag, TagNode)
    assert tag.val == "_"


def test_unreadable():
    with pytest.raises(ReadError, match="unreadable"):
        parse("#<X Y Z>", "temp", ALL)


def test_comment_carriage_return():
    tree = parse("3;a\r4", "temp", ALL)
    assert [n.describe() for n in tree.flatten()] == ["num(3)", 'comment(";a")', "num(4)"]


def test_internal_newlines():
    tree = parse("[3\n4]", "temp", ALL)
    assert [n.describe() for n in tree.flatten()] == [
        "vector(length=2)", "num(3)", "newline", "num(4)",
    ]


@pytest.mark.parametrize("src", ["@", "'", "`", "~", "~@", "^", "#_", "#="])
def test_unterminated_wrappers(src):
    with pytest.raises(ParseError) as exc:
        parse(src, "temp", ALL)
    assert str(exc.value).endswith("unexpected EOF")
    assert exc.value.pos.col == 1


def test_quote_skips_comment():
    tree = parse("';hello\na", "temp")
    assert [n.describe() for n in tree.flatten()] == ["quote", "sym(a)"]


def test_semantic_only_drops_comments_and_newlines():
    tree = parse("a ; note\n\nb", "temp")
    assert [n.describe() for n in tree.roots] == ["sym(a)", "sym(b)"]


def test_ignore_comment_forms():
    tree = parse("(comment (boom)) [(comment 1) 2]", "temp", ParseOpts.IGNORE_COMMENT_FORMS)
    assert [n.describe() for n in tree.flatten()] == ["vector(length=1)", "num(2)"]


def test_ignore_reader_discard():
    tree = parse("#_1 (a #_b c)", "temp", ParseOpts.IGNORE_READER_DISCARD)
    assert [n.describe() for n in tree.flatten()] == ["list(length=2)", "sym(a)", "sym(c)"]


def test_unclosed_list_reports_opening_position():
    with pytest.raises(ParseError) as exc:
        parse("(a\n  [b c", "temp")
    assert str(exc.value) == "parse error at temp:2:3: unexpected EOF"
    assert exc.value.pos == Pos("temp", offset=5, line=2, col=3)
    assert exc.value.message == "unexpected EOF"


def test_unexpected_closer():
    with pytest.raises(ParseError, match='unexpected token "\\)"'):
        parse("(a))", "temp")


def test_mismatched_closer():
    with pytest.raises(ParseError, match='unexpected token "]"'):
        parse("(a]", "temp")


def test_nested_fn_literal():
    with pytest.raises(ParseError, match="cannot nest fn literals") as exc:
        parse("#(a #(b))", "temp")
    assert exc.value.pos.col == 5


def test_fn_literals_may_follow_each_other():
    tree = parse("#(a) #(b)", "temp")
    assert [n.describe() for n in tree.roots] == ["lambda(length=1)", "lambda(length=1)"]


def test_map_needs_even_forms():
    with pytest.raises(ParseError, match="even number of forms"):
        parse("{:a 1 :b}", "temp")


def test_map_parity_ignores_discards_and_splices():
    parse("{:a 1 #_:b}", "temp", ALL)
    parse("{:a 1 #?@(:clj [:b 2])}", "temp", ALL)


def test_reader_conditional_needs_list():
    with pytest.raises(ParseError, match="reader conditional body must be a list"):
        parse("#?[:clj 1]", "temp")


def test_namespaced_map_needs_map():
    with pytest.raises(ParseError, match="namespaced map must have a map"):
        parse("#:foo[1]", "temp")


def test_set_literal():
    tree = parse("#{a #{b}}", "temp")
    assert [n.describe() for n in tree.flatten()] == ["set(length=2)", "sym(a)", "set(length=1)", "sym(b)"]


@pytest.mark.parametrize("src, want", [
    (r"\a", "a"),
    (r"\newline", "\n"),
    (r"\space", " "),
    (r"\tab", "\t"),
    (r"\formfeed", "\f"),
    (r"\backspace", "\b"),
    (r"\return", "\r"),
    (r"\o101", "A"),
    ("\\é", "é"),
    (r"\(", "("),
])
def test_character_literals(src, want):
    node = parse(src, "temp").roots[0]
    assert isinstance(node, CharacterNode)
    assert node.val == want
    assert node.text == src


@pytest.mark.parametrize("src, msg", [
    (r"\o8", "invalid octal literal"),
    (r"\o1234", "invalid octal literal"),
    (r"\uzzzz", "invalid unicode literal"),
    (r"\u12", "invalid unicode literal"),
    (r"\foo", "invalid character literal"),
])
def test_bad_character_literals(src, msg):
    with pytest.raises(ParseError, match=msg):
        parse(src, "temp")


def test_lex_errors_surface_as_lex_error():
    with pytest.raises(LexError) as exc:
        parse('(a "b', "temp")
    assert str(exc.value) == "lex error at temp:1:4: reached EOF before string closing quote"


def test_read_errors_are_syntax_errors():
    with pytest.raises(SyntaxError):
        parse("(", "temp")


def test_old_metadata_prefix_is_kept():
    node = parse("#^foo", "temp").roots[0]
    assert isinstance(node, MetadataNode)
    assert node.prefix == "#^"
    assert parse("^foo", "temp").roots[0].prefix == "^"


def test_tree_str():
    tree = parse("(a [b]) c", "temp")
    assert str(tree) == "list(length=2)\n  sym(a)\n  vector(length=1)\n    sym(b)\nsym(c)\n"


def test_tree_records_opts():
    assert parse("a", "temp", ALL).opts == ALL


def test_parse_file(tmp_path):
    path = tmp_path / "core.clj"
    path.write_text("(ns core)\n", encoding="utf-8")
    tree = parse_file(path, ALL)
    assert [n.describe() for n in tree.roots] == ["list(length=2)", "newline"]
    assert tree.roots[0].pos.name == str(path)


def test_double_backup_is_a_bug():
    p = Parser(iter(Lexer("a b", "temp")))
    p._next()
    p._backup()
    with pytest.raises(RuntimeError):
        p._backup()


def test_deep_nesting():
    tree = parse("(" * 400 + ")" * 400)
    assert len(tree.flatten()) == 400
    tree = parse("#{" * 100 + "}" * 100 + " " + "'" * 400 + "x")
    assert len(tree.flatten()) == 100 + 401


def test_nesting_limit():
    with pytest.raises(ParseError) as exc:
        parse("[" * 501 + "]" * 501, "temp")
    assert str(exc.value) == "parse error at temp:1:501: forms nested more than 500 deep"
    with pytest.raises(ParseError, match="nested more than 500"):
        parse("@" * 501 + "x")
