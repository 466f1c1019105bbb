from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.core.config import settings
from propertyhub.core.db import get_db
from propertyhub.schemas.click import ClickOut, ClickTrack, ItemType, Timeframe
from propertyhub.schemas.common import ok
from propertyhub.services import analytics
from propertyhub.services.auth import Actor, get_optional_actor, require_admin
from propertyhub.services.clicks import track_click
from propertyhub.services.geo import GeoResolver, client_ip, get_geo_resolver

router = APIRouter()
admin = APIRouter(prefix="/admin/clicks", dependencies=[Depends(require_admin)])


@router.post("/clicks")
async def track(
    payload: ClickTrack,
    request: Request,
    actor: Actor | None = Depends(get_optional_actor),
    db: AsyncSession = Depends(get_db),
    geo: GeoResolver = Depends(get_geo_resolver),
):
    ip = client_ip(request.headers.get("x-forwarded-for"), request.client.host if request.client else None)
    event = await track_click(
        db, payload.model_dump(),
        actor=actor, ip=ip, user_agent=request.headers.get("user-agent"), geo=geo,
    )
    if event is None:
        return {"success": False, "message": "Click could not be recorded"}
    return ok({"id": event.id, "device_type": event.device_type}, message="Click tracked")


@admin.get("/analytics")
async def click_analytics(
    timeframe: Timeframe = "7d",
    item_type: ItemType | None = None,
    db: AsyncSession = Depends(get_db),
):
    data = await analytics.click_analytics(db, timeframe=timeframe, item_type=item_type)
    data["raw_data"] = [ClickOut.model_validate(r) for r in data["raw_data"]]
    return ok(data)


@admin.get("/stats-by-type")
async def stats_by_type(timeframe: Timeframe = "30d", db: AsyncSession = Depends(get_db)):
    start, end = analytics.timeframe_range(timeframe)
    return ok(await analytics.clicks_by_type(db, start=start, end=end), timeframe=timeframe)


@admin.get("/popular")
async def popular(
    timeframe: Timeframe = "30d",
    item_type: ItemType | None = None,
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    start, end = analytics.timeframe_range(timeframe)
    return ok(
        await analytics.popular_items(db, start=start, end=end, item_type=item_type, limit=limit),
        timeframe=timeframe,
    )


@admin.get("/trends")
async def trends(timeframe: Timeframe = "30d", db: AsyncSession = Depends(get_db)):
    start, end = analytics.timeframe_range(timeframe)
    return ok(await analytics.click_trends(db, start=start, end=end), timeframe=timeframe)


@admin.get("/raw")
async def raw(
    timeframe: Timeframe = "7d",
    item_type: ItemType | None = None,
    search: str | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1),
    db: AsyncSession = Depends(get_db),
):
    start, end = analytics.timeframe_range(timeframe)
    rows, pagination = await analytics.raw_clicks(
        db, start=start, end=end, item_type=item_type, search=search, page=page, limit=limit,
    )
    return ok([ClickOut.model_validate(r) for r in rows], pagination=pagination)


@admin.get("/sessions")
async def sessions(
    timeframe: Timeframe = "7d",
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1),
    db: AsyncSession = Depends(get_db),
):
    start, end = analytics.timeframe_range(timeframe)
    rows, pagination = await analytics.session_rollup(db, start=start, end=end, page=page, limit=limit)
    return ok(rows, pagination=pagination)


@admin.get("/hourly")
async def hourly(timeframe: Timeframe = "7d", item_type: ItemType | None = None, db: AsyncSession = Depends(get_db)):
    start, end = analytics.timeframe_range(timeframe)
    return ok(await analytics.hourly_distribution(db, start=start, end=end, item_type=item_type), timeframe=timeframe)


@admin.get("/geo")
async def geo(timeframe: Timeframe = "30d", db: AsyncSession = Depends(get_db)):
    start, end = analytics.timeframe_range(timeframe)
    return ok(await analytics.geo_distribution(db, start=start, end=end), timeframe=timeframe)


@admin.get("/devices")
async def devices(timeframe: Timeframe = "30d", db: AsyncSession = Depends(get_db)):
    start, end = analytics.timeframe_range(timeframe)
    return ok(await analytics.device_distribution(db, start=start, end=end), timeframe=timeframe)


router.include_router(admin)
