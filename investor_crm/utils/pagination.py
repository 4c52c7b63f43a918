"""
Cursor Pagination
Opaque base64 cursors over (sort value, id) for keyset pagination
"""
import base64
import binascii
import json
import logging
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 1000


def clamp_limit(limit: Optional[int]) -> int:
    if not limit:
        return DEFAULT_PAGE_SIZE
    return max(1, min(int(limit), MAX_PAGE_SIZE))


def encode_cursor(row_id: Any, sort_value: Any = None) -> str:
    payload = json.dumps({"id": row_id, "sort_value": sort_value}, default=str)
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: Optional[str]) -> Optional[Dict[str, Any]]:
    """Decode a cursor; returns None for anything malformed."""
    if not cursor:
        return None
    try:
        padded = cursor + "=" * (-len(cursor) % 4)
        data = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        logger.warning(f"Invalid pagination cursor: {e}")
        return None
    if not isinstance(data, dict) or "id" not in data:
        return None
    return data


def paginate(
    rows: List[dict],
    limit: int,
    sort_key: str = "created_at",
    id_key: str = "id",
) -> Dict[str, Any]:
    """
    Build a page from `limit + 1` fetched rows.

    The extra row only signals that another page exists.
    """
    has_more = len(rows) > limit
    items = rows[:limit]

    next_cursor = None
    if has_more and items:
        last = items[-1]
        next_cursor = encode_cursor(last.get(id_key), last.get(sort_key))

    return {
        "data": items,
        "next_cursor": next_cursor,
        "has_more": has_more,
    }


def quote_filter_value(value: Any) -> str:
    """Double-quote a value for a PostgREST logic filter (commas, parentheses, dots)."""
    text = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


def apply_cursor(query, cursor: Optional[Dict[str, Any]], sort_key: str, ascending: bool, id_key: str = "id"):
    """
    Restrict a PostgREST query to rows after the cursor.

    Rows sharing the cursor's sort value are disambiguated by id. NULL sort
    values follow Postgres ordering: last when ascending, first when
    descending.
    """
    if not cursor:
        return query

    sort_value = cursor.get("sort_value")
    row_id = quote_filter_value(cursor.get("id"))
    op = "gt" if ascending else "lt"
    same_null = f"and({sort_key}.is.null,{id_key}.{op}.{row_id})"

    if sort_value is None:
        if ascending:
            return query.or_(same_null)
        return query.or_(f"{same_null},{sort_key}.not.is.null")

    value = quote_filter_value(sort_value)
    clauses = [f"{sort_key}.{op}.{value}", f"and({sort_key}.eq.{value},{id_key}.{op}.{row_id})"]
    if ascending:
        clauses.append(f"{sort_key}.is.null")
    return query.or_(",".join(clauses))


def page_from_query(query_fn: Callable[[int], List[dict]], limit: Optional[int], sort_key: str) -> Dict[str, Any]:
    """Run `query_fn(limit + 1)` and paginate the result."""
    size = clamp_limit(limit)
    rows = query_fn(size + 1) or []
    return paginate(rows, size, sort_key=sort_key)
