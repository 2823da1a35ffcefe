"""
Shared helpers for filtered, sorted and paginated listings.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Union

from sqlalchemy.orm import Query

from ..exceptions import ValidationError

DEFAULT_SORT = "-created_at"


@dataclass
class Page:
    items: List[Any]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def pagination(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "page": self.page,
            "pages": self.pages,
            "limit": self.limit,
        }


def order_clause(sort: Optional[str], columns: Dict[str, Any]):
    """
    Translate ``"title"`` / ``"-created_at"`` into an ORDER BY clause.

    Only whitelisted column names are accepted; anything else is a validation
    error rather than being passed through to the database.
    """
    sort = (sort or DEFAULT_SORT).strip()
    descending = sort.startswith("-")
    name = sort.lstrip("-+")
    column = columns.get(name)
    if column is None:
        raise ValidationError.for_field(
            "sort", f"Cannot sort by '{name}'. Allowed: {', '.join(sorted(columns))}"
        )
    return column.desc() if descending else column.asc()


def paginate(query: Query, page: int, limit: int, *order_by) -> Page:
    total = query.order_by(None).count()
    if order_by:
        query = query.order_by(*order_by)
    items = query.offset((page - 1) * limit).limit(limit).all()
    return Page(items=items, total=total, page=page, limit=limit)


def split_tags(raw: Union[str, Iterable[str], None]) -> List[str]:
    """Tags arrive as a comma-separated string or a list; blanks are dropped."""
    if raw is None:
        return []
    parts = raw.split(",") if isinstance(raw, str) else list(raw)
    return [str(tag).strip() for tag in parts if str(tag).strip()]


def like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
