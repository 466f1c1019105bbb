"""
Read-only aggregations over click events and listings.

Grouping and counting happen in SQL; Python only zero-fills and derives
rates. Any store error is logged and the zeroed shape is returned instead,
so a broken analytics query never takes an admin page down.
"""
from __future__ import annotations

import functools
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Literal

from sqlalchemy import distinct, extract, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.core.errors import ValidationError
from propertyhub.models.agent import Agent
from propertyhub.models.base import utcnow
from propertyhub.models.click_event import ClickEvent
from propertyhub.models.property_unit import PropertyUnit
from propertyhub.models.user import AGENT_APPROVAL_STATUSES, User
from propertyhub.schemas.common import Pagination
from propertyhub.services.store import page_window, paginate

log = logging.getLogger(__name__)

Timeframe = Literal["24h", "7d", "30d", "90d", "1y", "all"]

TIMEFRAMES: dict[str, timedelta | None] = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
    "1y": timedelta(days=365),
    "all": None,
}
ALL_TIME_FLOOR = datetime(2020, 1, 1, tzinfo=timezone.utc)

PERIODS = ("morning", "afternoon", "evening", "night")


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands timestamps back naive; they were written as UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def timeframe_range(timeframe: str, now: datetime | None = None) -> tuple[datetime, datetime]:
    if timeframe not in TIMEFRAMES:
        raise ValidationError(f"Unknown timeframe: {timeframe}")
    end = as_utc(now) if now else utcnow()
    delta = TIMEFRAMES[timeframe]
    return (ALL_TIME_FLOOR if delta is None else end - delta), end


def _ratio(num: float, den: float) -> float:
    return round(num / den, 2) if den else 0


def period_of(hour: int) -> str:
    if 6 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 21:
        return "evening"
    return "night"


def zeroed_on_error(empty: Callable[..., Any]):
    """Decorator: on a store or computation error roll back, log, and return `empty(**kwargs)`."""

    def wrap(fn):
        @functools.wraps(fn)
        async def inner(db: AsyncSession, *args, **kwargs):
            try:
                return await fn(db, *args, **kwargs)
            except (SQLAlchemyError, ArithmeticError, TypeError, ValueError):
                log.exception("analytics query failed: %s", fn.__name__)
                await db.rollback()
                return empty(**kwargs)
        return inner

    return wrap


def _window(start: datetime, end: datetime, item_type: str | None = None) -> list[Any]:
    where = [ClickEvent.occurred_at >= start, ClickEvent.occurred_at <= end]
    if item_type:
        where.append(ClickEvent.item_type == item_type)
    return where


# ---------------------------------------------------------------------------
# clicks
# ---------------------------------------------------------------------------

def empty_summary(**_: Any) -> dict[str, Any]:
    return {
        "total_clicks": 0,
        "unique_items": 0,
        "unique_users": 0,
        "unique_sessions": 0,
        "avg_clicks_per_item": 0,
        "avg_clicks_per_session": 0,
        "engagement_rate": 0,
    }


@zeroed_on_error(empty_summary)
async def click_summary(db: AsyncSession, *, start: datetime, end: datetime, item_type: str | None = None) -> dict[str, Any]:
    where = _window(start, end, item_type)

    total, users, sessions = (await db.execute(
        select(
            func.count(ClickEvent.id),
            func.count(distinct(ClickEvent.ip_address)),
            func.count(distinct(ClickEvent.session_id)),
        ).where(*where)
    )).one()

    items_sq = select(ClickEvent.item_type, ClickEvent.item_value).where(*where).distinct().subquery()
    items = (await db.execute(select(func.count()).select_from(items_sq))).scalar_one()

    return {
        "total_clicks": total,
        "unique_items": items,
        "unique_users": users,
        "unique_sessions": sessions,
        "avg_clicks_per_item": _ratio(total, items),
        "avg_clicks_per_session": _ratio(total, sessions),
        "engagement_rate": _ratio(total, sessions),
    }


@zeroed_on_error(lambda **_: [])
async def clicks_by_type(db: AsyncSession, *, start: datetime, end: datetime) -> list[dict[str, Any]]:
    clicks = func.count(ClickEvent.id)
    stmt = (
        select(
            ClickEvent.item_type,
            clicks,
            func.count(distinct(ClickEvent.session_id)),
            func.count(distinct(ClickEvent.ip_address)),
            func.max(ClickEvent.occurred_at),
        )
        .where(*_window(start, end))
        .group_by(ClickEvent.item_type)
        .order_by(clicks.desc())
    )
    return [
        {
            "item_type": item_type,
            "clicks": n,
            "unique_sessions": sessions,
            "unique_users": users,
            "last_click": as_utc(last),
        }
        for item_type, n, sessions, users, last in (await db.execute(stmt)).all()
    ]


@zeroed_on_error(lambda **_: [])
async def clicks_by_day(db: AsyncSession, *, start: datetime, end: datetime, item_type: str | None = None) -> list[dict[str, Any]]:
    day = func.date(ClickEvent.occurred_at)
    stmt = (
        select(day, func.count(ClickEvent.id), func.count(distinct(ClickEvent.session_id)))
        .where(*_window(start, end, item_type))
        .group_by(day)
        .order_by(day)
    )
    return [
        {"date": str(d), "clicks": n, "unique_sessions": sessions}
        for d, n, sessions in (await db.execute(stmt)).all()
    ]


@zeroed_on_error(lambda **_: [])
async def click_trends(db: AsyncSession, *, start: datetime, end: datetime) -> list[dict[str, Any]]:
    """Per-day totals with a per-item-type breakdown."""
    day = func.date(ClickEvent.occurred_at)
    stmt = (
        select(day, ClickEvent.item_type, func.count(ClickEvent.id))
        .where(*_window(start, end))
        .group_by(day, ClickEvent.item_type)
        .order_by(day)
    )
    days: dict[str, dict[str, Any]] = {}
    for d, item_type, n in (await db.execute(stmt)).all():
        entry = days.setdefault(str(d), {"date": str(d), "clicks": 0, "by_type": {}})
        entry["clicks"] += n
        entry["by_type"][item_type] = n
    return list(days.values())


@zeroed_on_error(lambda **_: [])
async def popular_items(
    db: AsyncSession, *, start: datetime, end: datetime, item_type: str | None = None, limit: int = 10,
) -> list[dict[str, Any]]:
    clicks = func.count(ClickEvent.id)
    last = func.max(ClickEvent.occurred_at)
    stmt = (
        select(
            ClickEvent.item_type,
            ClickEvent.item_value,
            func.max(ClickEvent.display_name),
            clicks,
            func.count(distinct(ClickEvent.session_id)),
            last,
        )
        .where(*_window(start, end, item_type))
        .group_by(ClickEvent.item_type, ClickEvent.item_value)
        .order_by(clicks.desc(), last.desc())
        .limit(max(1, limit))
    )
    return [
        {
            "item_type": t,
            "item_value": v,
            "display_name": name,
            "clicks": n,
            "unique_sessions": sessions,
            "last_click": as_utc(ts),
        }
        for t, v, name, n, sessions, ts in (await db.execute(stmt)).all()
    ]


def _hour_label(hour: int) -> str:
    return f"{hour:02d}:00 - {hour:02d}:59"


def empty_hourly(**_: Any) -> dict[str, Any]:
    return _hourly_shape({})


def _hourly_shape(counts: dict[int, tuple[int, int]]) -> dict[str, Any]:
    hours = []
    periods = {p: 0 for p in PERIODS}
    for hour in range(24):
        clicks, sessions = counts.get(hour, (0, 0))
        period = period_of(hour)
        periods[period] += clicks
        hours.append({
            "hour": hour,
            "label": _hour_label(hour),
            "period": period,
            "clicks": clicks,
            "unique_sessions": sessions,
        })

    total = sum(h["clicks"] for h in hours)
    peak = max(hours, key=lambda h: h["clicks"]) if total else None
    return {
        "hours": hours,
        "total_clicks": total,
        "peak_hour": peak["hour"] if peak else None,
        "peak_label": peak["label"] if peak else None,
        "active_hours": sum(1 for h in hours if h["clicks"]),
        "average_clicks_per_hour": round(total / 24),
        "period_stats": periods,
    }


@zeroed_on_error(empty_hourly)
async def hourly_distribution(db: AsyncSession, *, start: datetime, end: datetime, item_type: str | None = None) -> dict[str, Any]:
    hour = extract("hour", ClickEvent.occurred_at)
    stmt = (
        select(hour, func.count(ClickEvent.id), func.count(distinct(ClickEvent.session_id)))
        .where(*_window(start, end, item_type))
        .group_by(hour)
    )
    counts = {int(h): (n, s) for h, n, s in (await db.execute(stmt)).all()}
    return _hourly_shape(counts)


def empty_geo(**_: Any) -> dict[str, Any]:
    return {"countries": [], "cities": []}


@zeroed_on_error(empty_geo)
async def geo_distribution(db: AsyncSession, *, start: datetime, end: datetime, limit: int = 20) -> dict[str, Any]:
    where = _window(start, end)
    clicks = func.count(ClickEvent.id)

    countries = (await db.execute(
        select(ClickEvent.country, clicks, func.count(distinct(ClickEvent.ip_address)))
        .where(*where)
        .group_by(ClickEvent.country)
        .order_by(clicks.desc())
        .limit(limit)
    )).all()
    cities = (await db.execute(
        select(ClickEvent.country, ClickEvent.city, clicks, func.count(distinct(ClickEvent.ip_address)))
        .where(*where)
        .group_by(ClickEvent.country, ClickEvent.city)
        .order_by(clicks.desc())
        .limit(limit)
    )).all()

    return {
        "countries": [{"country": c, "clicks": n, "unique_users": u} for c, n, u in countries],
        "cities": [{"country": c, "city": city, "clicks": n, "unique_users": u} for c, city, n, u in cities],
    }


@zeroed_on_error(lambda **_: [])
async def device_distribution(db: AsyncSession, *, start: datetime, end: datetime) -> list[dict[str, Any]]:
    clicks = func.count(ClickEvent.id)
    rows = (await db.execute(
        select(
            ClickEvent.device_type,
            clicks,
            func.count(distinct(ClickEvent.session_id)),
            func.count(distinct(ClickEvent.ip_address)),
        )
        .where(*_window(start, end))
        .group_by(ClickEvent.device_type)
        .order_by(clicks.desc())
    )).all()

    total = sum(r[1] for r in rows)
    return [
        {
            "device_type": d,
            "clicks": n,
            "unique_sessions": s,
            "unique_users": u,
            "percentage": round(n * 100 / total, 2) if total else 0,
        }
        for d, n, s, u in rows
    ]


def empty_page(*, page: int = 1, limit: int = 20, **_: Any) -> tuple[list, Pagination]:
    page, limit = page_window(page, limit)
    return [], Pagination(page=page, limit=limit, total=0, pages=0)


@zeroed_on_error(empty_page)
async def session_rollup(
    db: AsyncSession, *, start: datetime, end: datetime, page: int = 1, limit: int = 20,
) -> tuple[list[dict[str, Any]], Pagination]:
    page, limit = page_window(page, limit)
    where = _window(start, end)

    total = (await db.execute(
        select(func.count(distinct(ClickEvent.session_id))).where(*where)
    )).scalar_one()

    last = func.max(ClickEvent.occurred_at)
    rows = (await db.execute(
        select(
            ClickEvent.session_id,
            func.min(ClickEvent.occurred_at),
            last,
            func.count(ClickEvent.id),
            func.count(distinct(ClickEvent.item_value)),
            func.max(ClickEvent.user_name),
            func.max(ClickEvent.ip_address),
        )
        .where(*where)
        .group_by(ClickEvent.session_id)
        .order_by(last.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )).all()

    sessions = []
    for session_id, first_at, last_at, n, items, user_name, ip in rows:
        first_at, last_at = as_utc(first_at), as_utc(last_at)
        sessions.append({
            "session_id": session_id,
            "first_activity": first_at,
            "last_activity": last_at,
            "duration_minutes": round((last_at - first_at).total_seconds() / 60, 2),
            "clicks": n,
            "unique_items": items,
            "user_name": user_name,
            "ip_address": ip,
        })

    return sessions, Pagination(page=page, limit=limit, total=total, pages=(total + limit - 1) // limit)


@zeroed_on_error(empty_page)
async def raw_clicks(
    db: AsyncSession,
    *,
    start: datetime,
    end: datetime,
    item_type: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[ClickEvent], Pagination]:
    stmt = select(ClickEvent).where(*_window(start, end, item_type))
    if search:
        like = f"%{search.strip()}%"
        stmt = stmt.where(or_(
            ClickEvent.item_value.ilike(like),
            ClickEvent.display_name.ilike(like),
            ClickEvent.user_name.ilike(like),
            ClickEvent.page_url.ilike(like),
        ))
    rows, pagination = await paginate(db, stmt.order_by(ClickEvent.occurred_at.desc()), page=page, limit=limit)
    return list(rows), pagination


async def click_analytics(
    db: AsyncSession, *, timeframe: str, item_type: str | None = None, now: datetime | None = None, raw_limit: int = 100,
) -> dict[str, Any]:
    start, end = timeframe_range(timeframe, now)
    raw, _ = await raw_clicks(db, start=start, end=end, item_type=item_type, page=1, limit=raw_limit)
    return {
        "timeframe": timeframe,
        "range": {"start": start, "end": end},
        "summary": await click_summary(db, start=start, end=end, item_type=item_type),
        "by_type": await clicks_by_type(db, start=start, end=end),
        "by_day": await clicks_by_day(db, start=start, end=end, item_type=item_type),
        "popular": await popular_items(db, start=start, end=end, item_type=item_type),
        "raw_data": raw,
    }


# ---------------------------------------------------------------------------
# listings and agents
# ---------------------------------------------------------------------------

def empty_listing_stats(**_: Any) -> dict[str, Any]:
    return {
        "total": 0,
        "by_status": {"pending": 0, "approved": 0, "rejected": 0},
        "featured": 0,
        "verified": 0,
        "by_listing_type": {},
        "by_type": {},
        "top_cities": [],
        "recent": 0,
    }


@zeroed_on_error(empty_listing_stats)
async def listing_stats(db: AsyncSession, *, model: Any, type_column: str = "property_type") -> dict[str, Any]:
    out = empty_listing_stats()

    status_rows = (await db.execute(
        select(model.approval_status, func.count(model.id)).group_by(model.approval_status)
    )).all()
    for status, n in status_rows:
        out["by_status"][status] = n
    out["total"] = sum(n for _, n in status_rows)

    out["featured"] = (await db.execute(select(func.count(model.id)).where(model.is_featured.is_(True)))).scalar_one()
    out["verified"] = (await db.execute(select(func.count(model.id)).where(model.is_verified.is_(True)))).scalar_one()

    if model is PropertyUnit:
        out["by_listing_type"] = dict((await db.execute(
            select(model.listing_type, func.count(model.id)).group_by(model.listing_type)
        )).all())

    type_col = getattr(model, type_column)
    out["by_type"] = dict((await db.execute(
        select(type_col, func.count(model.id)).group_by(type_col)
    )).all())

    n = func.count(model.id)
    out["top_cities"] = [
        {"city": city, "count": c}
        for city, c in (await db.execute(
            select(model.city, n).group_by(model.city).order_by(n.desc()).limit(10)
        )).all()
    ]

    week_ago = utcnow() - timedelta(days=7)
    out["recent"] = (await db.execute(select(func.count(model.id)).where(model.created_at >= week_ago))).scalar_one()
    return out


def empty_agent_stats(**_: Any) -> dict[str, Any]:
    out = {status: 0 for status in AGENT_APPROVAL_STATUSES}
    out.update({"total": 0, "total_agents": 0, "active_agents": 0, "total_agent_users": 0})
    return out


@zeroed_on_error(empty_agent_stats)
async def agent_stats(db: AsyncSession) -> dict[str, Any]:
    out = empty_agent_stats()
    rows = (await db.execute(
        select(User.agent_approval_status, func.count(User.id))
        .where(User.agent_approval_status.is_not(None))
        .group_by(User.agent_approval_status)
    )).all()
    for status, n in rows:
        out[status] = n
    out["total"] = sum(n for _, n in rows)

    out["total_agents"] = (await db.execute(select(func.count(Agent.id)))).scalar_one()
    out["active_agents"] = (await db.execute(
        select(func.count(Agent.id)).where(Agent.is_active.is_(True))
    )).scalar_one()
    out["total_agent_users"] = (await db.execute(
        select(func.count(User.id)).where(User.user_type == "agent")
    )).scalar_one()
    return out
