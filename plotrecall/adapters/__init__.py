from .dataset import dataset_length, resolve_column, resolve_xy, take_rows

__all__ = ["dataset_length", "resolve_column", "resolve_xy", "take_rows"]
