from __future__ import annotations

from collections.abc import Generator
from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, Query, status
from sqlalchemy.orm import Session

from tracker.config import get_settings
from tracker.db import get_session_factory


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session, committed when the handler returns cleanly."""
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@dataclass(frozen=True)
class Page:
    offset: int
    limit: int


def get_page(
    offset: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1),
) -> Page:
    """Paging parameters, with the size limits read from settings on each request."""
    settings = get_settings()
    if limit is None:
        limit = settings.default_page_size
    elif limit > settings.max_page_size:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"limit must be <= {settings.max_page_size}",
        )
    return Page(offset=offset, limit=limit)
