from __future__ import annotations

from decimal import Decimal
import unittest

import numpy as np
import pandas as pd
import torch

from plotrecall.adapters import dataset_length, resolve_xy, take_rows
from plotrecall.errors import InvalidDataset, InvalidField


class DatasetAdapterTests(unittest.TestCase):
    def test_dataframe_columns_resolve_to_float64(self) -> None:
        df = pd.DataFrame({"wt": [1, 2, 3], "mpg": [21.0, 22.5, None]})
        x, y = resolve_xy(df, "wt", "mpg")
        self.assertEqual(x.dtype, np.float64)
        self.assertEqual(x.tolist(), [1.0, 2.0, 3.0])
        self.assertTrue(np.isnan(y[2]))

    def test_mapping_of_columns_accepts_mixed_column_types(self) -> None:
        data = {
            "a": torch.tensor([1.0, 2.0]),
            "b": [Decimal("0.5"), None],
        }
        x, y = resolve_xy(data, "a", "b")
        self.assertEqual(x.tolist(), [1.0, 2.0])
        self.assertEqual(y[0], 0.5)
        self.assertTrue(np.isnan(y[1]))

    def test_sequence_of_rows(self) -> None:
        rows = [{"x": 1, "y": 2}, {"x": 3, "y": 4}]
        x, y = resolve_xy(rows, "x", "y")
        self.assertEqual(x.tolist(), [1.0, 3.0])
        self.assertEqual(y.tolist(), [2.0, 4.0])

    def test_unknown_field_names_the_column(self) -> None:
        df = pd.DataFrame({"wt": [1.0], "mpg": [2.0]})
        with self.assertRaises(InvalidField) as ctx:
            resolve_xy(df, "wt", "hp")
        self.assertEqual(ctx.exception.field, "hp")
        self.assertIn("hp", str(ctx.exception))

    def test_unknown_field_in_later_row_raises(self) -> None:
        rows = [{"x": 1, "y": 2}, {"x": 3}]
        with self.assertRaises(InvalidField):
            resolve_xy(rows, "x", "y")

    def test_non_numeric_column_rejected(self) -> None:
        df = pd.DataFrame({"name": ["a", "b"], "v": [1.0, 2.0]})
        with self.assertRaises(InvalidDataset):
            resolve_xy(df, "name", "v")

    def test_ragged_mapping_rejected(self) -> None:
        with self.assertRaises(InvalidDataset):
            dataset_length({"x": [1, 2], "y": [1]})

    def test_take_rows_keeps_dataset_shape(self) -> None:
        df = pd.DataFrame({"x": [1, 2, 3]}, index=["a", "b", "c"])
        subset = take_rows(df, [0, 2])
        self.assertIsInstance(subset, pd.DataFrame)
        self.assertEqual(list(subset.index), ["a", "c"])

        columns = take_rows({"x": np.asarray([1, 2, 3]), "label": ["p", "q", "r"]}, [1])
        self.assertEqual(columns, {"x": [2], "label": ["q"]})

        rows = take_rows([{"x": 1}, {"x": 2}], [1])
        self.assertEqual(rows, [{"x": 2}])


if __name__ == "__main__":
    unittest.main()
