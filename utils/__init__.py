"""Shared utilities for the backend."""
from utils.serialize import iso, row_to_dict, to_camel_key

__all__ = [
    "iso",
    "row_to_dict",
    "to_camel_key",
]
