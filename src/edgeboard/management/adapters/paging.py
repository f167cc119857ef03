"""SQL helpers for paged, searchable listings."""

import json
from typing import Any, Optional

from ..domain.entities import PageLink, SortOrder


def order_by(page_link: PageLink, columns: dict[str, str], default: str) -> str:
    """Build an ORDER BY clause from whitelisted sort properties.

    Unknown sort properties fall back to the default column.
    """
    column = columns.get(page_link.sort_property or "", default)
    direction = "DESC" if page_link.sort_order == SortOrder.DESC else "ASC"
    return f"ORDER BY {column} {direction}, id ASC"


def search_pattern(page_link: PageLink) -> Optional[str]:
    """ILIKE pattern for the text search, or None when not searching."""
    if not page_link.text_search:
        return None
    escaped = (
        page_link.text_search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    )
    return f"%{escaped}%"


def dump_json(value: Any) -> Optional[str]:
    return json.dumps(value) if value is not None else None


def load_json(value: Any) -> Any:
    """JSONB columns arrive as text unless a codec is registered."""
    if isinstance(value, str):
        return json.loads(value)
    return value
