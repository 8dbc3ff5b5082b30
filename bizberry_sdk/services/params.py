"""Query string serialization."""
from typing import Any, List, Mapping, Optional, Tuple
from urllib.parse import parse_qsl, urlencode


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def query_pairs(params: Optional[Mapping[str, Any]]) -> List[Tuple[str, str]]:
    """Flatten params into ordered (key, value) pairs.

    List and tuple values repeat the key; ``None`` values are skipped.
    Order follows the mapping's insertion order.
    """
    pairs: List[Tuple[str, str]] = []
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((key, _format_value(item)) for item in value if item is not None)
        else:
            pairs.append((key, _format_value(value)))
    return pairs


def querify(params: Optional[Mapping[str, Any]]) -> str:
    """Serialize params to a query string (without the leading ``?``)."""
    return urlencode(query_pairs(params))


def normalize_query(query: str) -> str:
    """Sort a query string so equivalent queries compare equal."""
    return urlencode(sorted(parse_qsl(query, keep_blank_values=True)))
