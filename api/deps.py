from __future__ import annotations

from collections.abc import Generator
from typing import Annotated

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from api.auth import AuthPrincipal, get_current_principal
from core.db import get_session_factory


def get_db() -> Generator[Session, None, None]:
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


Principal = Annotated[AuthPrincipal, Depends(get_current_principal)]
DbSession = Annotated[Session, Depends(get_db)]

TimeRangeQuery = Annotated[str, Query(pattern="^(4|6|8|all)$")]
DashboardRangeQuery = Annotated[str, Query(pattern="^(4w|6w|8w|1y)$")]
