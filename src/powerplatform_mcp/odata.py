# src/powerplatform_mcp/odata.py
"""
Small helpers for building OData query options.

Values interpolated into filters or key segments go through ``literal`` or
``guid`` first, so a stray quote in an entity name cannot change the shape
of the query.
"""
import re
import uuid
from typing import Any, Dict, Iterable, Optional

from powerplatform_mcp.errors import InvalidArgumentError


def literal(value: str) -> str:
    """Quote a string as an OData literal (single quotes doubled)."""
    return "'" + str(value).replace("'", "''") + "'"


def guid(value: str) -> str:
    """Validate and normalise a GUID for use in a filter or key segment."""
    try:
        return str(uuid.UUID(str(value).strip().strip("{}")))
    except (ValueError, AttributeError):
        raise InvalidArgumentError(f"'{value}' is not a valid GUID")


_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def identifier(value: str) -> str:
    """Entity set and other path segments must be plain identifiers."""
    if not value or not _IDENTIFIER.match(value):
        raise InvalidArgumentError(f"'{value}' is not a valid entity set name")
    return value


def positive(name: str, value: int) -> int:
    """Reject zero/negative counts before they reach the Web API."""
    if value is None or int(value) < 1:
        raise InvalidArgumentError(f"{name} must be a positive integer, got {value!r}")
    return int(value)


def positive_number(name: str, value: float) -> float:
    """Like ``positive`` but allows fractions (e.g. a half-hour window)."""
    if value is None or float(value) <= 0:
        raise InvalidArgumentError(f"{name} must be a positive number, got {value!r}")
    return float(value)


def eq(field: str, value: str) -> str:
    return f"{field} eq {literal(value)}"


def any_of(field: str, ids: Iterable[str]) -> Optional[str]:
    """
    Disjunctive membership filter over a set of GUIDs.

    Returns None for an empty set: callers must skip the request instead of
    sending a filter that matches nothing.
    """
    clauses = [f"{field} eq {guid(i)}" for i in ids]
    if not clauses:
        return None
    return "(" + " or ".join(clauses) + ")"


def all_of(*clauses: Optional[str]) -> str:
    """Conjunction of the non-empty clauses."""
    return " and ".join(c for c in clauses if c)


def build_query(
    select: Optional[Iterable[str]] = None,
    filter: Optional[str] = None,
    expand: Optional[Iterable[str]] = None,
    orderby: Optional[str] = None,
    top: Optional[int] = None,
) -> Dict[str, Any]:
    """Map keyword options onto ``$``-prefixed query parameters."""
    params: Dict[str, Any] = {}
    if select:
        params["$select"] = ",".join(select)
    if filter:
        params["$filter"] = filter
    if expand:
        params["$expand"] = ",".join(expand)
    if orderby:
        params["$orderby"] = orderby
    if top is not None:
        params["$top"] = positive("top", top)
    return params
