from __future__ import annotations

import math
import unittest

from vecmap import MISSING, Mapper, MapperResolutionError, as_mapper, formula_cache_stats, pluck


class FormulaResolutionTests(unittest.TestCase):
    def test_pronoun_placeholders_fix_arity(self) -> None:
        double = as_mapper("~ .x * 2")
        self.assertIsInstance(double, Mapper)
        self.assertEqual(double.kind, "formula")
        self.assertEqual(double.arity, 1)
        self.assertEqual(double(3), 6)

        add = as_mapper("~ .x + .y")
        self.assertEqual(add.arity, 2)
        self.assertEqual(add(1, 2), 3)

        self.assertEqual(as_mapper("~ . - 1")(10), 9)

    def test_positional_placeholders(self) -> None:
        mapper = as_mapper("~ ..1 + ..3", arity=3)
        self.assertEqual(mapper.arity, 3)
        self.assertEqual(mapper(1, 2, 3), 4)

    def test_extra_positional_arguments_are_ignored_when_unreferenced(self) -> None:
        self.assertEqual(as_mapper("~ .x")(1, 99), 1)
        self.assertEqual(as_mapper("~ 42").arity, 0)

    def test_mixed_placeholder_styles_are_rejected(self) -> None:
        with self.assertRaises(MapperResolutionError) as ctx:
            as_mapper("~ .x + ..2")
        self.assertIn("mixes", str(ctx.exception))

    def test_placeholder_beyond_arity_is_rejected(self) -> None:
        with self.assertRaises(MapperResolutionError) as ctx:
            as_mapper("~ .y", arity=1)
        self.assertIn(".y", ctx.exception.message)

        with self.assertRaises(MapperResolutionError):
            as_mapper("~ ..4", arity=3)

    def test_unresolved_names_and_functions_are_rejected(self) -> None:
        cases = {
            "~ .x + undefined_name": "Unresolved name",
            "~ frobnicate(.x)": "Unknown function",
            "~ list(a = 1, 2)": "all named or all unnamed",
        }
        for source, fragment in cases.items():
            with self.subTest(source=source):
                with self.assertRaises(MapperResolutionError) as ctx:
                    as_mapper(source)
                self.assertIn(fragment, ctx.exception.message)

    def test_syntax_errors_keep_parser_detail(self) -> None:
        with self.assertRaises(MapperResolutionError) as ctx:
            as_mapper("~ (.x + 1")
        self.assertEqual(ctx.exception.expected, ("RPAREN",))
        self.assertEqual(ctx.exception.found, "EOF")

    def test_keyword_names_and_env_resolve_free_names(self) -> None:
        scaled = as_mapper("~ .x * factor", names=["factor"])
        self.assertEqual(scaled(2, factor=5), 10)

        custom = as_mapper("~ scale(.x)", env={"scale": lambda v: v * 10})
        self.assertEqual(custom(2), 20)

        with self.assertRaises(MapperResolutionError) as ctx:
            as_mapper("~ k(.x)", env={"k": 3})
        self.assertIn("not callable", ctx.exception.message)

    def test_builtins(self) -> None:
        cases = [
            ('~ paste("hello", .x)', ("Eric",), "hello Eric"),
            ("~ paste0(.x, '-', .y)", ("a", 2.0), "a-2"),
            ("~ 'hello ' + .x", ("Jenna",), "hello Jenna"),
            ("~ nchar(.x)", ("Patty",), 5),
            ('~ ifelse(.x > 2, "big", "small")', (3,), "big"),
            ("~ toupper(.x)", ("abc",), "ABC"),
            ("~ round(.x, digits = 1)", (2.345,), 2.3),
            ("~ 7 %% 3", (), 1),
            ("~ 7 %/% 2", (), 3),
            ("~ 2 ^ 10", (), 1024),
            ("~ -2 ^ 2", (), -4),
            ("~ mean(c(1, 2, 3, 6))", (), 3.0),
            ("~ length(.x)", ([1, 2, 3],), 3),
            ("~ as.integer(.x)", (3.9,), 3),
            ("~ as.character(.x)", (2.0,), "2"),
            ("~ identity(.x)", ("same",), "same"),
        ]
        for source, args, expected in cases:
            with self.subTest(source=source):
                self.assertEqual(as_mapper(source)(*args), expected)

    def test_power_stays_real(self) -> None:
        root = as_mapper("~ .x ^ 0.5")
        self.assertTrue(math.isnan(root(-8)))
        self.assertEqual(root(4), 2.0)
        self.assertTrue(math.isnan(as_mapper("~ (-8) ^ (1 / 3)")()))
        self.assertEqual(as_mapper("~ (-2) ^ 3")(), -8)
        self.assertEqual(as_mapper("~ 0 ^ (-1)")(), math.inf)

    def test_missing_values_follow_three_valued_logic(self) -> None:
        self.assertIs(as_mapper("~ is.na(.x)")(MISSING), True)
        self.assertIs(as_mapper("~ is.na(.x)")(1), False)
        self.assertIs(as_mapper("~ NA & FALSE")(), False)
        self.assertIs(as_mapper("~ NA | TRUE")(), True)
        self.assertIs(as_mapper("~ NA & TRUE")(), MISSING)
        self.assertIs(as_mapper("~ !NA")(), MISSING)
        self.assertIs(as_mapper("~ NA")(), MISSING)

    def test_records_fields_and_indexing(self) -> None:
        self.assertEqual(as_mapper("~ list(a = .x, b = .x * 2)")(3), {"a": 3, "b": 6})
        self.assertEqual(as_mapper("~ c(1, list(2, 3))")(), [1, 2, 3])
        self.assertEqual(as_mapper("~ .x$name")({"name": "ada"}), "ada")
        self.assertIsNone(as_mapper("~ .x$absent")({"name": "ada"}))
        self.assertEqual(as_mapper("~ .x[[1]]")([10, 20]), 20)
        self.assertEqual(as_mapper('~ .x[["k"]]')({"k": "v"}), "v")
        self.assertIsNone(as_mapper("~ NULL")())

    def test_resolution_is_repeatable_and_cached(self) -> None:
        source = "~ .x * 3 + 1"
        first = as_mapper(source)
        before = formula_cache_stats()["hits"]
        second = as_mapper(source)
        self.assertEqual(formula_cache_stats()["hits"], before + 1)
        self.assertEqual(first, second)
        self.assertEqual([first(v) for v in range(4)], [second(v) for v in range(4)])


class ExtractorAndCallableTests(unittest.TestCase):
    def test_name_and_position_extractors(self) -> None:
        self.assertEqual(as_mapper("name")({"name": "a"}), "a")
        self.assertEqual(as_mapper(["a", 1])({"a": [10, 20]}), 20)
        self.assertEqual(as_mapper(0)([5, 6]), 5)
        self.assertEqual(as_mapper(-1)([5, 6]), 6)
        self.assertEqual(as_mapper(("a", "b"))({"a": {"b": 7}}), 7)
        self.assertEqual(as_mapper("name").kind, "extractor")

    def test_absent_paths_yield_default(self) -> None:
        self.assertIs(as_mapper("missing")({"name": "a"}), MISSING)
        self.assertIs(as_mapper(5)([1]), MISSING)
        self.assertEqual(as_mapper("missing", default=0)({}), 0)
        self.assertIs(pluck({"a": [1]}, ["a", 3]), MISSING)
        self.assertIsNone(pluck({"a": None}, ["a"]))

    def test_invalid_extractors_are_rejected(self) -> None:
        for spec in ([], [1.5], ["a", None]):
            with self.subTest(spec=spec):
                with self.assertRaises(MapperResolutionError):
                    as_mapper(spec)
        with self.assertRaises(MapperResolutionError):
            as_mapper(True)
        with self.assertRaises(MapperResolutionError):
            as_mapper(3.5)
        with self.assertRaises(MapperResolutionError):
            as_mapper("name", arity=0)

    def test_callables_are_wrapped_without_inspection(self) -> None:
        mapper = as_mapper(len)
        self.assertEqual(mapper.kind, "callable")
        self.assertIsNone(mapper.arity)
        self.assertEqual(mapper("abc"), 3)

    def test_resolved_mapper_is_rechecked_against_arity(self) -> None:
        two = as_mapper("~ .y")
        self.assertIs(as_mapper(two, arity=2), two)
        with self.assertRaises(MapperResolutionError):
            as_mapper(two, arity=1)


if __name__ == "__main__":
    unittest.main()
