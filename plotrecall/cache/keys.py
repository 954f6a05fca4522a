from __future__ import annotations

from collections.abc import Mapping
import dataclasses
import datetime as dt
from enum import Enum
import hashlib
import json
from pathlib import PurePath
from typing import Any

import numpy as np
import pandas as pd

from plotrecall.errors import InvalidCacheKey


def canonical_key_bytes(key: Any) -> bytes:
    """Deterministic serialization of a cache key.

    Equality is structural: lists and tuples encode the same way, mapping
    keys are sorted, and numpy/pandas values are encoded by content.
    """
    encoded = _encode(key, path="key")
    return json.dumps(encoded, separators=(",", ":"), ensure_ascii=False, allow_nan=False).encode("utf-8")


def cache_key_digest(key: Any) -> str:
    return hashlib.sha256(canonical_key_bytes(key)).hexdigest()


def _encode(value: Any, *, path: str) -> Any:
    if value is None:
        return ["n"]
    if isinstance(value, (bool, np.bool_)):
        return ["?", bool(value)]
    if isinstance(value, Enum):
        return ["e", type(value).__qualname__, _encode(value.value, path=f"{path}.value")]
    if isinstance(value, (int, np.integer)):
        return ["i", str(int(value))]
    if isinstance(value, (float, np.floating)):
        number = float(value)
        # Integral floats (and -0.0) encode as ints so equal numbers share a key.
        if number.is_integer():
            return ["i", str(int(number))]
        return ["f", repr(number)]
    if isinstance(value, str):
        return ["s", value]
    if isinstance(value, (bytes, bytearray, memoryview)):
        return ["b", bytes(value).hex()]
    if isinstance(value, PurePath):
        return ["p", value.as_posix()]
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return ["t", value.isoformat()]
    if isinstance(value, np.ndarray):
        return _encode_array(value, path=path)
    if isinstance(value, pd.DataFrame):
        return [
            "df",
            [_encode(c, path=f"{path}.columns") for c in value.columns],
            [str(t) for t in value.dtypes],
            _digest(pd.util.hash_pandas_object(value, index=True).to_numpy().tobytes()),
        ]
    if isinstance(value, pd.Series):
        return [
            "sr",
            _encode(value.name, path=f"{path}.name"),
            str(value.dtype),
            _digest(pd.util.hash_pandas_object(value, index=True).to_numpy().tobytes()),
        ]
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        fields = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
        return ["dc", type(value).__qualname__, _encode(fields, path=path)]
    if isinstance(value, Mapping):
        items = []
        for k, v in value.items():
            items.append((_encode(k, path=f"{path}[{k!r}]"), _encode(v, path=f"{path}[{k!r}]")))
        items.sort(key=lambda kv: json.dumps(kv[0], separators=(",", ":"), ensure_ascii=False))
        return ["d", [[k, v] for k, v in items]]
    if isinstance(value, (set, frozenset)):
        members = [_encode(v, path=f"{path}{{}}") for v in value]
        members.sort(key=lambda m: json.dumps(m, separators=(",", ":"), ensure_ascii=False))
        return ["set", members]
    if isinstance(value, (list, tuple)):
        return ["l", [_encode(v, path=f"{path}[{i}]") for i, v in enumerate(value)]]
    raise InvalidCacheKey(f"{path}: unsupported cache key value of type {type(value).__name__}")


def _encode_array(arr: np.ndarray, *, path: str) -> list[Any]:
    if arr.dtype.kind == "O":
        return ["l", [_encode(v, path=f"{path}[{i}]") for i, v in enumerate(arr.tolist())]]
    contiguous = np.ascontiguousarray(arr)
    return ["a", contiguous.dtype.str, list(contiguous.shape), _digest(contiguous.tobytes())]


def _digest(payload: bytes) -> str:
    return hashlib.sha256(payload).hexdigest()
