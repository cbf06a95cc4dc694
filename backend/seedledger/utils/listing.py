from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from sqlalchemy import select, func

from seedledger.config.pagination import normalize_pagination
from seedledger.exceptions import InvalidInput


@dataclass
class Page:
    rows: List[Any]
    total_count: int
    limit: int
    offset: int

    @property
    def page_count(self) -> int:
        if self.total_count == 0:
            return 0
        return (self.total_count + self.limit - 1) // self.limit


def paginate(session, stmt, limit=None, offset=None) -> Page:
    """Run a 2.0-style select with limit/offset and a matching total count.

    limit/offset accept raw request values; out-of-range values are clamped.
    """
    try:
        limit, offset = normalize_pagination(limit, offset)
    except ValueError as e:
        raise InvalidInput(str(e))
    total = session.execute(select(func.count()).select_from(stmt.order_by(None).subquery())).scalar_one()
    rows = session.execute(stmt.offset(offset).limit(limit)).scalars().all()
    return Page(rows=list(rows), total_count=total, limit=limit, offset=offset)


def build_list_payload(page: Page, serialize: Optional[Callable[[Any], dict]] = None):
    rows = [serialize(r) for r in page.rows] if serialize else page.rows
    return {
        'data': rows,
        'pagination': {
            'total': page.total_count,
            'limit': page.limit,
            'offset': page.offset,
            'returned': len(rows),
            'page_count': page.page_count,
        }
    }
