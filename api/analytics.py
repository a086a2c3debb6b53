from __future__ import annotations

from typing import Any, Callable, Optional

from fastapi import APIRouter, Request, Response
from fastapi_cache.decorator import cache

from api.deps import DashboardRangeQuery, DbSession, Principal
from core.config import get_settings
from core.services import analytics

router = APIRouter(prefix="/analytics", tags=["analytics"])


def per_user_key(
    func: Callable[..., Any],
    namespace: str = "",
    *,
    request: Optional[Request] = None,
    response: Optional[Response] = None,
    args: tuple[Any, ...] = (),
    kwargs: Optional[dict[str, Any]] = None,
) -> str:
    """Cache key scoped to the caller and the requested range."""
    kwargs = kwargs or {}
    principal = kwargs.get("principal")
    user_id = getattr(principal, "user_id", "anonymous")
    return f"{namespace}:{func.__name__}:{user_id}:{kwargs.get('time_range', '')}"


@router.get("/dashboard")
@cache(expire=get_settings().analytics_cache_seconds, namespace="analytics", key_builder=per_user_key)
def get_dashboard_data(principal: Principal, db: DbSession, time_range: DashboardRangeQuery = "4w"):
    return analytics.get_dashboard_data(db, principal.user_id, time_range)


@router.get("/clients")
def get_client_progress(principal: Principal, db: DbSession, time_range: DashboardRangeQuery = "4w") -> list[dict[str, Any]]:
    return analytics.get_client_progress(db, principal.user_id, time_range)


@router.get("/programs")
def get_program_performance(principal: Principal, db: DbSession) -> list[dict[str, Any]]:
    return analytics.get_program_performance(db, principal.user_id)


@router.get("/engagement")
def get_engagement_metrics(principal: Principal, db: DbSession, time_range: DashboardRangeQuery = "4w") -> dict[str, Any]:
    return analytics.get_engagement_metrics(db, principal.user_id, time_range)
