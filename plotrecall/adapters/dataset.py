from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any

import numpy as np
import pandas as pd
import torch

from plotrecall.errors import InvalidDataset, InvalidField


def dataset_length(dataset: Any) -> int:
    if isinstance(dataset, pd.DataFrame):
        return int(len(dataset.index))
    if isinstance(dataset, Mapping):
        lengths = {len(_column_values(dataset[name], label=str(name))) for name in dataset}
        if len(lengths) > 1:
            raise InvalidDataset(f"columns have different lengths: {sorted(lengths)}")
        return lengths.pop() if lengths else 0
    if isinstance(dataset, Sequence) and not isinstance(dataset, (str, bytes, bytearray)):
        return len(dataset)
    raise InvalidDataset(f"unsupported dataset type: {type(dataset)!r}")


def resolve_xy(dataset: Any, x_field: str, y_field: str) -> tuple[np.ndarray, np.ndarray]:
    """Return float64 x/y columns for ``dataset``; missing values become NaN.

    Both fields are checked before any conversion so an unknown name never
    yields a partial result.
    """
    _require_fields(dataset, (x_field, y_field))
    x = resolve_column(dataset, x_field)
    y = resolve_column(dataset, y_field)
    if x.shape != y.shape:
        raise InvalidDataset(f"x and y length mismatch: {x.size} != {y.size}")
    return x, y


def resolve_column(dataset: Any, field: str) -> np.ndarray:
    if isinstance(dataset, pd.DataFrame):
        if field not in dataset.columns:
            raise InvalidField(field, [str(c) for c in dataset.columns])
        return _coerce_1d_numeric(dataset[field], label=field)

    if isinstance(dataset, Mapping):
        if field not in dataset:
            raise InvalidField(field, [str(c) for c in dataset.keys()])
        return _coerce_1d_numeric(dataset[field], label=field)

    if isinstance(dataset, Sequence) and not isinstance(dataset, (str, bytes, bytearray)):
        values: list[Any] = []
        for i, row in enumerate(dataset):
            if not isinstance(row, Mapping):
                raise InvalidDataset(f"row {i} is not a mapping: {type(row)!r}")
            if field not in row:
                raise InvalidField(field, [str(c) for c in row.keys()])
            values.append(row[field])
        return _coerce_ndarray(np.asarray(values, dtype=object), label=field)

    raise InvalidDataset(f"unsupported dataset type: {type(dataset)!r}")


def take_rows(dataset: Any, indices: Sequence[int]) -> Any:
    """Subset ``dataset`` to ``indices`` keeping its original shape."""
    idx = [int(i) for i in indices]
    if isinstance(dataset, pd.DataFrame):
        return dataset.iloc[idx]
    if isinstance(dataset, Mapping):
        out: dict[Any, list[Any]] = {}
        for name, column in dataset.items():
            values = _column_values(column, label=str(name))
            out[name] = [values[i] for i in idx]
        return out
    if isinstance(dataset, Sequence) and not isinstance(dataset, (str, bytes, bytearray)):
        return [dataset[i] for i in idx]
    raise InvalidDataset(f"unsupported dataset type: {type(dataset)!r}")


def _require_fields(dataset: Any, fields: tuple[str, ...]) -> None:
    if isinstance(dataset, pd.DataFrame):
        names = [str(c) for c in dataset.columns]
        present = set(dataset.columns)
    elif isinstance(dataset, Mapping):
        names = [str(c) for c in dataset.keys()]
        present = set(dataset.keys())
    elif isinstance(dataset, Sequence) and not isinstance(dataset, (str, bytes, bytearray)):
        if len(dataset) == 0 or not isinstance(dataset[0], Mapping):
            return
        names = [str(c) for c in dataset[0].keys()]
        present = set(dataset[0].keys())
    else:
        raise InvalidDataset(f"unsupported dataset type: {type(dataset)!r}")
    for field in fields:
        if field not in present:
            raise InvalidField(field, names)


def _column_values(value: Any, *, label: str) -> Sequence[Any]:
    if isinstance(value, torch.Tensor):
        return value.detach().cpu().tolist()
    if isinstance(value, pd.Series):
        return value.tolist()
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return value
    raise InvalidDataset(f"unsupported {label} column type: {type(value)!r}")


def _coerce_1d_numeric(value: Any, *, label: str) -> np.ndarray:
    if isinstance(value, torch.Tensor):
        tensor = value.detach()
        if tensor.ndim != 1:
            raise InvalidDataset(f"{label} must be 1-D")
        if tensor.is_cuda:
            tensor = tensor.cpu()
        return tensor.to(torch.float64).numpy()

    if isinstance(value, pd.Series):
        return _coerce_ndarray(value.to_numpy(), label=label)

    if isinstance(value, np.ndarray):
        if value.ndim != 1:
            raise InvalidDataset(f"{label} must be 1-D")
        return _coerce_ndarray(value, label=label)

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return _coerce_ndarray(np.asarray(value, dtype=object), label=label)

    raise InvalidDataset(f"unsupported {label} column type: {type(value)!r}")


def _coerce_ndarray(arr: np.ndarray, *, label: str) -> np.ndarray:
    if arr.ndim != 1:
        raise InvalidDataset(f"{label} must be 1-D")
    if arr.dtype.kind in {"i", "u", "f", "b"}:
        return arr.astype(np.float64, copy=False)

    out = np.empty(arr.shape[0], dtype=np.float64)
    for i, raw in enumerate(arr.tolist()):
        if raw is None or (raw is pd.NA):
            out[i] = np.nan
            continue
        if isinstance(raw, Decimal):
            out[i] = float(raw)
            continue
        if isinstance(raw, (str, bytes)):
            raise InvalidDataset(f"{label} contains non-numeric value at index {i}: {raw!r}")
        try:
            out[i] = float(raw)
        except (TypeError, ValueError) as exc:
            raise InvalidDataset(f"{label} contains non-numeric value at index {i}: {raw!r}") from exc
    return out
