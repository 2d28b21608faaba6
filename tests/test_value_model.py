from __future__ import annotations

import importlib.util
import math
import unittest

import pandas as pd

from vecmap import MISSING, ValueKind, tag
from vecmap.values import type_name


JAX_AVAILABLE = importlib.util.find_spec("jax") is not None


class ValueKindTests(unittest.TestCase):
    def test_python_values_are_tagged_exhaustively(self) -> None:
        cases = [
            (MISSING, ValueKind.MISSING),
            (None, ValueKind.NULL),
            (True, ValueKind.BOOLEAN),
            (3, ValueKind.INTEGER),
            (2.5, ValueKind.FLOAT),
            (math.nan, ValueKind.FLOAT),
            ("s", ValueKind.TEXT),
            ({"a": 1}, ValueKind.RECORD),
            (pd.Series({"a": 1}), ValueKind.RECORD),
            ([1], ValueKind.OPAQUE),
            (object(), ValueKind.OPAQUE),
            (pd.DataFrame({"a": [1]}), ValueKind.OPAQUE),
        ]
        for value, kind in cases:
            with self.subTest(value=repr(value)):
                self.assertEqual(tag(value).kind, kind)

    def test_bool_is_not_an_integer(self) -> None:
        self.assertEqual(tag(False).kind, ValueKind.BOOLEAN)
        self.assertIs(tag(False).value, False)

    def test_type_names(self) -> None:
        self.assertEqual(type_name(tag("x")), "text")
        self.assertEqual(type_name(tag(None)), "null")
        self.assertEqual(type_name(tag([1, 2])), "opaque list")


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for array-scalar tagging")
class ArrayScalarTests(unittest.TestCase):
    def test_zero_dim_arrays_unwrap_by_dtype(self) -> None:
        import jax.numpy as jnp

        self.assertEqual(tag(jnp.asarray(True)), tag(True))
        integer = tag(jnp.asarray(3))
        self.assertEqual(integer.kind, ValueKind.INTEGER)
        self.assertIsInstance(integer.value, int)
        floating = tag(jnp.asarray(1.5))
        self.assertEqual(floating.kind, ValueKind.FLOAT)
        self.assertEqual(floating.value, 1.5)

    def test_shaped_arrays_are_opaque(self) -> None:
        import jax.numpy as jnp

        tagged = tag(jnp.arange(3))
        self.assertEqual(tagged.kind, ValueKind.OPAQUE)
        self.assertIn("shape (3,)", type_name(tagged))


if __name__ == "__main__":
    unittest.main()
