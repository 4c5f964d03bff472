"""Core data types for the bracketeer application."""

from typing import Any, Dict, List, Union  # noqa: UP035

# A JSON value as held by the document store.
JSONValue = Union[None, bool, int, float, str, List[Any], Dict[str, Any]]  # noqa: UP006

# Open-ended caller-supplied metadata (sponsor, customFields, extra).
FieldMap = Dict[str, Any]  # noqa: UP006
