import pytest

from duet.errors import ParseFailure
from duet.lexer import Lexer
from duet.nodes import (
    Array,
    Assign,
    BinaryOp,
    Boolean,
    Comparison,
    Float,
    ForLoop,
    FunctionCall,
    FunctionDef,
    Identifier,
    If,
    Increment,
    Number,
    Print,
    Random,
    Sequence,
    String,
    dump,
)
from duet.parser import parse


def types(source):
    return [t.type for t in Lexer(source).tokenize()]


def test_lexer_operators_and_numbers():
    assert types("x++ <= 3.5") == ['IDENTIFIER', 'PLUSPLUS', 'LTE', 'FLOAT']
    assert types("a != b == c") == ['IDENTIFIER', 'NEQ', 'IDENTIFIER', 'EQEQ', 'IDENTIFIER']
    assert types("i--") == ['IDENTIFIER', 'MINUSMINUS']


def test_lexer_keywords_and_comments():
    assert types("if else for def print random true false # ignored\nfoo") == [
        'IF', 'ELSE', 'FOR', 'DEF', 'PRINT', 'RANDOM', 'TRUE', 'FALSE', 'IDENTIFIER',
    ]


def test_lexer_string_escapes():
    tokens = Lexer(r'"a\n\"b\""').tokenize()
    assert tokens[0].type == 'STRING'
    assert tokens[0].value == 'a\n"b"'


def test_lexer_errors_carry_position():
    with pytest.raises(ParseFailure) as info:
        Lexer("x = 1\ny = @").tokenize()
    assert info.value.line == 2
    assert info.value.column == 5

    with pytest.raises(ParseFailure):
        Lexer('"never closed').tokenize()


def test_submission_is_a_sequence():
    assert parse("") == Sequence(())
    assert parse("x = 1; x") == Sequence((Assign("x", Number(1)), Identifier("x")))
    # separators are optional
    assert parse("x = 1 x").statements[1] == Identifier("x")


def test_precedence():
    assert parse("1 + 2 * 3").statements[0] == BinaryOp(Number(1), '+', BinaryOp(Number(2), '*', Number(3)))
    assert parse("(1 + 2) * 3").statements[0] == BinaryOp(BinaryOp(Number(1), '+', Number(2)), '*', Number(3))
    assert parse("1 + 2 < 4").statements[0] == Comparison(BinaryOp(Number(1), '+', Number(2)), '<', Number(4))


def test_negative_literals_fold():
    assert parse("-5").statements[0] == Number(-5)
    assert parse("-2.5").statements[0] == Float(-2.5)
    assert parse("-7 / 2").statements[0] == BinaryOp(Number(-7), '/', Number(2))
    assert parse("-x").statements[0] == BinaryOp(Number(0), '-', Identifier("x"))


def test_literals():
    node = parse('"hi"; true; false; [1, 2]; []').statements
    assert node == (String("hi"), Boolean(True), Boolean(False), Array((Number(1), Number(2))), Array(()))


def test_if_else():
    node = parse("if (x > 1) { 1 } else 2").statements[0]
    assert node == If(
        Comparison(Identifier("x"), '>', Number(1)),
        Sequence((Number(1),)),
        Number(2),
    )
    assert parse("if (false) 1").statements[0].else_part is None


def test_for_loop_parts_are_optional():
    node = parse("for(;x<5;x++) x").statements[0]
    assert node == ForLoop(None, Comparison(Identifier("x"), '<', Number(5)), Increment("x"), Identifier("x"))

    node = parse("for(i = 0;;) { }").statements[0]
    assert node == ForLoop(Assign("i", Number(0)), None, None, Sequence(()))


def test_functions_and_calls():
    node = parse("def add(a, b) { a + b }").statements[0]
    assert node == FunctionDef("add", ("a", "b"), Sequence((BinaryOp(Identifier("a"), '+', Identifier("b")),)))
    assert parse("add(1, 2.5)").statements[0] == FunctionCall("add", (Number(1), Float(2.5)))
    assert parse("f()").statements[0] == FunctionCall("f", ())


def test_builtins():
    assert parse("print(1)").statements[0] == Print(Number(1))
    assert parse("random()").statements[0] == Random()
    assert parse("random(1, 6)").statements[0] == Random(Number(1), Number(6))


def test_duplicate_parameters_rejected():
    with pytest.raises(ParseFailure) as info:
        parse("def f(a, a) { a }")
    assert "Duplicate parameter" in str(info.value)


def test_parse_errors():
    with pytest.raises(ParseFailure) as info:
        parse("x = 1\ny = )")
    assert info.value.line == 2
    assert info.value.stage == "parse"

    for bad in ("(1 + 2", "if 1 { 2 }", "random(1)", "{ 1 }", "def (a) { a }"):
        with pytest.raises(ParseFailure):
            parse(bad)


def test_dump_renders_tree():
    text = dump(parse("x = 1 + 2"))
    assert text.splitlines()[0] == "Sequence"
    assert "Assign name='x'" in text
    assert "BinaryOp op='+'" in text
