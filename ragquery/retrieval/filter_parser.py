"""Metadata filter parsing for filtered vector queries."""
import json
from typing import Any, Dict, List, Optional, Union

from ragquery.logging_config import get_logger

log = get_logger(__name__)

ParsedFilter = Optional[Union[Dict[str, Any], List[Any], str]]


def normalize_filter(value: Any) -> ParsedFilter:
    """
    Collapse filters that constrain nothing to None.

    An empty object must mean "search everything", never "match nothing".
    JSON scalars other than strings carry no field constraints either.
    """
    if value is None or isinstance(value, (bool, int, float)):
        return None
    if isinstance(value, (dict, list, str)) and len(value) == 0:
        return None
    return value


def parse_filter(raw: str) -> ParsedFilter:
    """
    Interpret a user-supplied filter expression.

    JSON text becomes a structured predicate. Anything that does not parse is
    returned unchanged so the vector store can interpret it itself.

    Args:
        raw: Filter text as received from the tool call

    Returns:
        The structured filter, the raw string, or None for "no filter"
    """
    if not raw:
        return None

    try:
        parsed = json.loads(raw)
    except (ValueError, RecursionError):
        log.debug("filter_not_json", raw_length=len(raw))
        return raw

    return normalize_filter(parsed)
