from __future__ import annotations

import unittest

from vecmap.ast import Argument, Call, Formula, Index, Infix, Member, Name, Number, Placeholder, Prefix, String
from vecmap.errors import MapperResolutionError
from vecmap.lexer import LexError, tokenize
from vecmap.parser import ParseError, describe_span, parse, parse_formula


class LexerTests(unittest.TestCase):
    def _tokens(self, source: str, *, with_spans: bool = False):
        if with_spans:
            return [(tok.kind, tok.text, tok.pos, tok.end) for tok in tokenize(source) if tok.kind != "EOF"]
        return [(tok.kind, tok.text) for tok in tokenize(source) if tok.kind != "EOF"]

    def test_token_golden_formula_with_spans(self) -> None:
        self.assertEqual(
            self._tokens("~ .x * 2", with_spans=True),
            [
                ("TILDE", "~", 0, 1),
                ("PLACEHOLDER", ".x", 2, 4),
                ("OP", "*", 5, 6),
                ("INTEGER", "2", 7, 8),
            ],
        )

    def test_token_golden_calls_operators_and_numbers(self) -> None:
        self.assertEqual(
            self._tokens('paste0("a", ..2) %/% 1.5e2'),
            [
                ("NAME", "paste0"),
                ("LPAREN", "("),
                ("STRING", "a"),
                ("COMMA", ","),
                ("PLACEHOLDER", "..2"),
                ("RPAREN", ")"),
                ("OP", "%/%"),
                ("NUMBER", "1.5e2"),
            ],
        )

    def test_member_index_and_dotted_names(self) -> None:
        self.assertEqual(
            self._tokens(".x$name[[0]] + is.na(.)"),
            [
                ("PLACEHOLDER", ".x"),
                ("DOLLAR", "$"),
                ("NAME", "name"),
                ("LBRACK2", "[["),
                ("INTEGER", "0"),
                ("RBRACK2", "]]"),
                ("OP", "+"),
                ("NAME", "is.na"),
                ("LPAREN", "("),
                ("PLACEHOLDER", "."),
                ("RPAREN", ")"),
            ],
        )

    def test_keywords_aliases_and_integer_suffix(self) -> None:
        self.assertEqual(
            self._tokens("TRUE & !NA | NULL == FALSE"),
            [("TRUE", "TRUE"), ("OP", "&"), ("OP", "!"), ("NA", "NA"), ("OP", "|"), ("NULL", "NULL"), ("OP", "=="), ("FALSE", "FALSE")],
        )
        self.assertEqual(self._tokens("2 ** 3"), [("INTEGER", "2"), ("OP", "^"), ("INTEGER", "3")])
        self.assertEqual(self._tokens("5L", with_spans=True), [("INTEGER", "5", 0, 2)])
        self.assertEqual(self._tokens(".5"), [("NUMBER", ".5")])

    def test_string_escapes_and_both_quotes(self) -> None:
        self.assertEqual(self._tokens(r'"a\tb" ' + r"'it\'s'"), [("STRING", "a\tb"), ("STRING", "it's")])
        self.assertEqual(self._tokens(r'"é"'), [("STRING", "é")])

    def test_comments_are_skipped(self) -> None:
        self.assertEqual(self._tokens(".x # trailing\n+ 1"), [("PLACEHOLDER", ".x"), ("OP", "+"), ("INTEGER", "1")])

    def test_lexical_errors_carry_positions(self) -> None:
        cases = {
            "~ .z": 2,
            "~ 2x": 2,
            "~ 'abc": 2,
            "~ a % b": 4,
            '"\\q"': 1,
        }
        for source, pos in cases.items():
            with self.subTest(source=source):
                with self.assertRaises(LexError) as ctx:
                    tokenize(source)
                self.assertEqual(ctx.exception.pos, pos)


class ParserTests(unittest.TestCase):
    def test_arithmetic_precedence_and_associativity(self) -> None:
        self.assertEqual(parse("1 + 2 * 3"), Infix("+", Number(1), Infix("*", Number(2), Number(3))))
        self.assertEqual(parse("1 - 2 - 3"), Infix("-", Infix("-", Number(1), Number(2)), Number(3)))
        self.assertEqual(parse("2 ^ 3 ^ 2"), Infix("^", Number(2), Infix("^", Number(3), Number(2))))
        self.assertEqual(parse("-2 ^ 2"), Prefix("-", Infix("^", Number(2), Number(2))))
        self.assertEqual(parse("(1 + 2) * 3"), Infix("*", Infix("+", Number(1), Number(2)), Number(3)))

    def test_logical_precedence(self) -> None:
        x = Placeholder(0, ".x")
        self.assertEqual(parse("!.x == 1"), Prefix("!", Infix("==", x, Number(1))))
        self.assertEqual(parse("a | b & c"), Infix("|", Name("a"), Infix("&", Name("b"), Name("c"))))

    def test_placeholders_map_to_argument_positions(self) -> None:
        self.assertEqual(parse("."), Placeholder(0, "."))
        self.assertEqual(parse(".y"), Placeholder(1, ".y"))
        self.assertEqual(parse("..3"), Placeholder(2, "..3"))
        self.assertEqual(parse_formula("~ .y"), Formula(Placeholder(1, ".y")))

    def test_calls_with_named_arguments(self) -> None:
        self.assertEqual(
            parse('list(a = .x, "b c" = 2)'),
            Call("list", (Argument(Placeholder(0, ".x"), "a"), Argument(Number(2), "b c"))),
        )
        self.assertEqual(parse("f()"), Call("f", ()))
        self.assertEqual(parse('paste("x", .x)'), Call("paste", (Argument(String("x")), Argument(Placeholder(0, ".x")))))

    def test_postfix_member_and_index_chain(self) -> None:
        x = Placeholder(0, ".x")
        self.assertEqual(parse(".x$a$b"), Member(Member(x, "a"), "b"))
        self.assertEqual(parse(".x[[1]]$a"), Member(Index(x, Number(1)), "a"))
        self.assertEqual(parse("-.x$a"), Prefix("-", Member(x, "a")))

    def test_formula_requires_tilde(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse_formula(".x + 1")
        self.assertEqual(ctx.exception.expected, ("TILDE",))
        self.assertEqual(ctx.exception.found, "PLACEHOLDER(.x)")
        self.assertEqual((ctx.exception.start, ctx.exception.end), (0, 2))

    def test_parse_errors_report_expected_and_found(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse("1 +")
        self.assertEqual(ctx.exception.message, "Expected an expression")
        self.assertEqual(ctx.exception.found, "EOF")

        with self.assertRaises(ParseError) as ctx:
            parse("f(1 2)")
        self.assertEqual(ctx.exception.expected, ("COMMA", "RPAREN"))

        with self.assertRaises(ParseError) as ctx:
            parse("a = 1")
        self.assertEqual(ctx.exception.expected, ("EOF",))
        self.assertEqual(ctx.exception.found, "EQUALS(=)")

        with self.assertRaises(ParseError) as ctx:
            parse("1 ! 2")
        self.assertIn("between operands", ctx.exception.message)

        with self.assertRaises(ParseError) as ctx:
            parse("..0")
        self.assertIn("..1", ctx.exception.message)

    def test_parse_and_resolution_errors_render_alike(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse_formula("~ (.x + 1")
        err = ctx.exception
        self.assertEqual(str(err), "Unexpected token at span [9, 9); expected RPAREN; found EOF")
        self.assertEqual(str(MapperResolutionError.from_parse_error(err)), str(err))
        self.assertEqual(describe_span("Bad", 1, 2), "Bad at span [1, 2)")

    def test_lexical_errors_surface_as_parse_errors(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse_formula("~ .x + .q")
        self.assertEqual(ctx.exception.start, 7)
        self.assertIn("placeholder", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
