from __future__ import annotations

from dataclasses import dataclass
from math import ceil

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from swiftstock.config import settings


@dataclass(frozen=True)
class Page:
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return ceil(self.total / self.limit) if self.limit else 0

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def as_dict(self) -> dict:
        return {'page': self.page, 'limit': self.limit, 'total': self.total, 'pages': self.pages}


def clamp(page: int | None, limit: int | None, *, default_limit: int) -> tuple[int, int]:
    page = max(int(page or 1), 1)
    limit = int(limit or default_limit)
    limit = min(max(limit, 1), settings.max_page_size)
    return page, limit


def paginate(db: Session, query: Select, *, page: int, limit: int) -> tuple[list, Page]:
    total = db.execute(select(func.count()).select_from(query.order_by(None).subquery())).scalar_one()
    meta = Page(page=page, limit=limit, total=total)
    rows = db.execute(query.offset(meta.offset).limit(limit)).scalars().all()
    return rows, meta
