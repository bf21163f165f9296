"""
HTTP routes for the hit counter API.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import PlainTextResponse

from hitcounter.badge import (
    DEFAULT_LABEL,
    STYLE_CLASSIC,
    render_badge_schema,
    render_badge_svg,
)
from hitcounter.counter import CounterService
from hitcounter.dependencies import (
    get_counter_service,
    require_read_token,
    require_token,
)
from hitcounter.schemas import BadgeSchemaResponse, HitResponse

router = APIRouter()

TEXT_FORMATS = ("txt", "text")
SVG_MEDIA_TYPE = "image/svg+xml;charset=utf-8"
NO_CACHE = {"Cache-Control": "no-cache"}


@router.api_route(
    "/hit",
    methods=["GET", "POST"],
    response_model=HitResponse,
    dependencies=[Depends(require_token)],
)
def hit(
    id_: str = Query("", alias="id", description="Counter identifier"),
    counters: CounterService = Depends(get_counter_service),
):
    """
    Increment the counter for ``id`` and return the new value.
    """
    result = counters.increment(id_)
    return HitResponse(**result.as_dict())


@router.get(
    "/count",
    response_model=HitResponse,
    dependencies=[Depends(require_read_token)],
)
def count(
    id_: str = Query("", alias="id"),
    format: str = Query("json"),
    counters: CounterService = Depends(get_counter_service),
):
    result = counters.read(id_)
    if format in TEXT_FORMATS:
        return PlainTextResponse(str(result.value))
    return HitResponse(**result.as_dict())


@router.get(
    "/count.txt",
    response_class=PlainTextResponse,
    dependencies=[Depends(require_read_token)],
)
def count_txt(
    id_: str = Query("", alias="id"),
    counters: CounterService = Depends(get_counter_service),
):
    result = counters.read(id_)
    return PlainTextResponse(str(result.value), headers=NO_CACHE)


@router.get("/badge", dependencies=[Depends(require_read_token)])
def badge(
    id_: str = Query("", alias="id"),
    label: str = Query(DEFAULT_LABEL),
    style: str = Query(STYLE_CLASSIC),
    color: str = Query(""),
    bg: str = Query(""),
    label_color: str = Query("", alias="labelColor"),
    value_color: str = Query("", alias="valueColor"),
    font: str = Query(""),
    counters: CounterService = Depends(get_counter_service),
):
    """
    SVG badge for the current value. Never increments.
    """
    result = counters.read(id_)
    svg = render_badge_svg(
        label,
        result.value,
        style=style,
        color=color,
        bg=bg,
        label_color=label_color,
        value_color=value_color,
        font=font,
    )
    return Response(content=svg, media_type=SVG_MEDIA_TYPE, headers=NO_CACHE)


@router.get(
    "/badge.json",
    response_model=BadgeSchemaResponse,
    dependencies=[Depends(require_read_token)],
)
def badge_json(
    response: Response,
    id_: str = Query("", alias="id"),
    label: str = Query(DEFAULT_LABEL),
    color: str = Query(""),
    counters: CounterService = Depends(get_counter_service),
):
    """
    shields.io endpoint document, for proxying through img.shields.io.
    """
    result = counters.read(id_)
    response.headers.update(NO_CACHE)
    schema = render_badge_schema(label, result.value, color)
    return BadgeSchemaResponse(**schema.as_dict())


@router.get("/healthz", response_class=PlainTextResponse)
def healthz(counters: CounterService = Depends(get_counter_service)):
    backend = "redis" if counters.durable_available else "memory"
    return PlainTextResponse("ok", headers={"X-Counter-Backend": backend})
