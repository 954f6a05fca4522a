from __future__ import annotations


class PlotRecallError(Exception):
    """Base class for errors raised by plotrecall."""


class InvalidField(PlotRecallError, KeyError):
    def __init__(self, field: str, available: list[str] | None = None) -> None:
        self.field = field
        self.available = list(available or [])
        super().__init__(field)

    def __str__(self) -> str:
        if self.available:
            return f"column not found: {self.field} (available: {', '.join(self.available)})"
        return f"column not found: {self.field}"


class InvalidDataset(PlotRecallError, ValueError):
    pass


class InvalidRectangle(PlotRecallError, ValueError):
    pass


class InvalidSize(PlotRecallError, ValueError):
    pass


class InvalidCacheKey(PlotRecallError, TypeError):
    pass


class CacheUnavailable(PlotRecallError, RuntimeError):
    pass
