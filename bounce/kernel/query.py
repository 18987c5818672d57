"""
Document query matching and result ordering.

Query bodies are JSON objects mapping a field path to a condition. A
literal condition means equality; an object condition uses operators:

    {"age": {"$gte": 18}, "tags": {"$in": ["a", "b"]}, "name": "Ann"}

Field paths may be dotted to reach into nested objects.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from bounce.errors import BadRequest

_MISSING = object()


def _compare(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def check(value: Any, operand: Any) -> bool:
        if value is _MISSING:
            return False
        try:
            return op(value, operand)
        except TypeError:
            return False

    return check


def _in(value: Any, operand: Any) -> bool:
    return value is not _MISSING and value in operand


OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "$eq": lambda value, operand: value is not _MISSING and value == operand,
    "$ne": lambda value, operand: value is _MISSING or value != operand,
    "$gt": _compare(lambda a, b: a > b),
    "$gte": _compare(lambda a, b: a >= b),
    "$lt": _compare(lambda a, b: a < b),
    "$lte": _compare(lambda a, b: a <= b),
    "$in": _in,
    "$nin": lambda value, operand: not _in(value, operand),
    "$exists": lambda value, operand: (value is not _MISSING) == bool(operand),
}


@dataclass
class QueryOptions:
    """Modifiers taken from the query string of a search."""

    limit: Optional[int] = None
    skip: int = 0
    sort: List[Tuple[str, bool]] = field(default_factory=list)


def _is_operator_block(condition: Any) -> bool:
    return (
        isinstance(condition, dict)
        and len(condition) > 0
        and all(key.startswith("$") for key in condition)
    )


def validate_query(query: Any) -> Dict[str, Any]:
    """Reject query bodies that are not objects or use unknown operators."""
    if not isinstance(query, dict):
        raise BadRequest("Query must be a JSON object.")
    for path, condition in query.items():
        if _is_operator_block(condition):
            for operator, operand in condition.items():
                if operator not in OPERATORS:
                    raise BadRequest(f"Unknown query operator \"{operator}\" on \"{path}\".")
                if operator in ("$in", "$nin") and not isinstance(operand, list):
                    raise BadRequest(f"{operator} on \"{path}\" takes a list.")
    return query


def lookup(document: Dict[str, Any], path: str) -> Any:
    """Resolve a dotted field path, returning a sentinel when absent."""
    value: Any = document
    for part in path.split("."):
        if isinstance(value, dict) and part in value:
            value = value[part]
        else:
            return _MISSING
    return value


def matches(document: Dict[str, Any], query: Dict[str, Any]) -> bool:
    """Check whether a document satisfies every condition of a query."""
    for path, condition in query.items():
        value = lookup(document, path)
        if _is_operator_block(condition):
            for operator, operand in condition.items():
                if not OPERATORS[operator](value, operand):
                    return False
        elif value is _MISSING or value != condition:
            return False
    return True


def parse_sort(value: Optional[str]) -> List[Tuple[str, bool]]:
    """
    Parse a sort expression like ``"-created,name"``.

    Returns (field, descending) pairs in priority order.
    """
    if not value:
        return []
    keys = []
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        descending = part.startswith("-")
        name = part.lstrip("+-")
        if not name:
            raise BadRequest(f"Invalid sort key \"{part}\".")
        keys.append((name, descending))
    return keys


def _parse_count(name: str, value: Optional[str]) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        count = int(value)
    except ValueError:
        raise BadRequest(f"\"{name}\" must be an integer.")
    if count < 0:
        raise BadRequest(f"\"{name}\" must not be negative.")
    return count


def parse_query_options(
    limit: Optional[str] = None,
    skip: Optional[str] = None,
    sort: Optional[str] = None,
) -> QueryOptions:
    """Build QueryOptions from raw query-string values."""
    return QueryOptions(
        limit=_parse_count("limit", limit),
        skip=_parse_count("skip", skip) or 0,
        sort=parse_sort(sort),
    )


def _sort_key(value: Any) -> Tuple:
    # Orders mixed types: missing/null, numbers, strings, everything else
    if value is _MISSING or value is None:
        return (0,)
    if isinstance(value, (bool, int, float)):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    return (3, json.dumps(value, sort_keys=True, default=str))


def apply_options(documents: List[Dict[str, Any]], options: QueryOptions) -> List[Dict[str, Any]]:
    """Sort, skip and limit an already filtered list of documents."""
    result = list(documents)
    # Stable sorts applied from the least significant key up
    for name, descending in reversed(options.sort):
        result.sort(key=lambda doc: _sort_key(lookup(doc, name)), reverse=descending)
    result = result[options.skip:]
    # A limit of 0 means no limit
    if options.limit:
        result = result[:options.limit]
    return result
