"""Core types and constants."""

from .types import FieldMap, JSONValue

__all__ = ["FieldMap", "JSONValue"]
