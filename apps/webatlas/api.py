# -*- coding: utf-8 -*-
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from atlas import __version__
from atlas.controller import ViewStateController
from atlas.errors import ModeDataError
from atlas.models import CONTENT_TYPE_LABELS, CONTENT_TYPES
from atlas.persistence import encode_state
from atlas.query import name_suggestions
from atlas.view_state import DatasetView, Mode


def get_controller(request: Request) -> ViewStateController:
    """Resolve the controller from app state; a failed initial load is terminal (503)."""

    err = getattr(request.app.state, "load_error", None)
    if err:
        raise HTTPException(status_code=503, detail=f"Dataset unavailable: {err}")
    ctl: ViewStateController = request.app.state.controller  # type: ignore[attr-defined]
    if not ctl.loaded:
        raise HTTPException(status_code=503, detail="Dataset is still loading")
    return ctl


def _json(data: Dict[str, Any], *, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(content=data, headers=headers or {})


def _view_payload(ctl: ViewStateController) -> Dict[str, Any]:
    out = ctl.snapshot().to_dict()
    out["url"] = ctl.current_url()
    return out


def _require_mode(ctl: ViewStateController, mode: Mode) -> None:
    if ctl.mode != mode:
        raise HTTPException(status_code=409, detail=f"{mode.value} mode is not active (current: {ctl.mode.value})")


async def _mode_data(ctl: ViewStateController) -> Any:
    try:
        data = await ctl.mode_data()
    except ModeDataError as e:
        raise HTTPException(status_code=502, detail=str(e))
    if data is None:
        # exited while the fetch was in flight
        raise HTTPException(status_code=409, detail="mode changed while loading")
    return data


router = APIRouter(prefix="/api/v1")


class ViewRequest(BaseModel):
    view: DatasetView


class ModeRequest(BaseModel):
    mode: Mode
    toggle: bool = False


class SearchRequest(BaseModel):
    query: str = ""


class FiltersRequest(BaseModel):
    visibility: Dict[str, bool] = Field(default_factory=dict)
    all: Optional[bool] = None
    remove_duplicates: Optional[bool] = None


class CompareRequest(BaseModel):
    slot: int = Field(0, ge=0, le=1)
    id: Optional[str] = None


class DetailOpenRequest(BaseModel):
    type: str = "version"
    id: str
    scroll_offset: int = 0


class SectionRequest(BaseModel):
    record_id: Optional[str] = None
    section: Optional[str] = None
    group_id: Optional[str] = None
    collapsed: Optional[bool] = None


class NavigateRequest(BaseModel):
    action: str = Field(..., pattern="^(back|forward|url|prev|next)$")
    url: str = ""


# ----------------- read -----------------


@router.get("/meta")
def meta(request: Request, ctl: ViewStateController = Depends(get_controller)):
    return _json(
        {
            "version": __version__,
            "data_source": str(getattr(request.app.state, "data_source", "")),
            "content_types": [{"type": t, "label": CONTENT_TYPE_LABELS[t]} for t in CONTENT_TYPES],
            "views": [v.value for v in DatasetView],
            "modes": [m.value for m in Mode],
            "record_count": len(ctl.store),
            "year_count": len(ctl.store.year_groups()),
        }
    )


@router.get("/state")
def state(ctl: ViewStateController = Depends(get_controller)):
    st = ctl.state
    out = encode_state(st)
    out.update({"mode": st.mode.value, "query": st.query, "url": ctl.current_url(), "history": ctl.history.entries()})
    return _json(out)


@router.get("/view")
def view(ctl: ViewStateController = Depends(get_controller)):
    return _json(_view_payload(ctl))


@router.get("/suggestions")
def suggestions(ctl: ViewStateController = Depends(get_controller), limit: int = Query(80, ge=1, le=1000)):
    names = name_suggestions(ctl.store.records(), limit=int(limit))
    return _json({"names": names, "count": len(names)})


# ----------------- actions -----------------


@router.post("/view")
async def set_view(req: ViewRequest, ctl: ViewStateController = Depends(get_controller)):
    changed = ctl.set_view(req.view)
    return _json({"changed": changed, **_view_payload(ctl)})


@router.post("/mode")
async def set_mode(req: ModeRequest, ctl: ViewStateController = Depends(get_controller)):
    if req.mode == Mode.DETAIL:
        raise HTTPException(status_code=400, detail="use /detail/open to enter detail mode")
    changed = ctl.toggle_mode(req.mode) if req.toggle else ctl.set_mode(req.mode)
    return _json({"changed": changed, **_view_payload(ctl)})


@router.post("/search")
async def search(req: SearchRequest, ctl: ViewStateController = Depends(get_controller)):
    accepted = ctl.set_search(req.query)
    return _json({"accepted": accepted, **_view_payload(ctl)})


@router.post("/filters")
async def filters(req: FiltersRequest, ctl: ViewStateController = Depends(get_controller)):
    unknown = [t for t in req.visibility if t not in CONTENT_TYPES]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown content types: {', '.join(unknown)}")
    if req.all is not None:
        ctl.set_all_visibility(req.all)
    for t, visible in req.visibility.items():
        ctl.set_visibility(t, visible)
    if req.remove_duplicates is not None:
        ctl.set_remove_duplicates(req.remove_duplicates)
    return _json(_view_payload(ctl))


@router.post("/compare")
async def compare(req: CompareRequest, ctl: ViewStateController = Depends(get_controller)):
    resolved = ctl.select_compare(req.slot, req.id)
    return _json({"resolved": resolved, **_view_payload(ctl)})


@router.post("/detail/open")
async def detail_open(req: DetailOpenRequest, ctl: ViewStateController = Depends(get_controller)):
    if not ctl.open_detail(req.type, req.id, scroll_offset=req.scroll_offset):
        raise HTTPException(status_code=404, detail=f"Record not found: {req.type} {req.id}")
    return _json(_view_payload(ctl))


@router.post("/detail/close")
async def detail_close(ctl: ViewStateController = Depends(get_controller)):
    offset = ctl.close_detail()
    return _json({"scroll_offset": offset, **_view_payload(ctl)})


@router.post("/sections")
async def sections(req: SectionRequest, ctl: ViewStateController = Depends(get_controller)):
    if req.group_id:
        if req.collapsed is None:
            collapsed = ctl.material_groups.toggle(req.group_id)
        else:
            ctl.material_groups.set_collapsed(req.group_id, req.collapsed)
            collapsed = req.collapsed
        return _json({"group_id": req.group_id, "collapsed": collapsed})

    if not req.record_id or req.section not in CONTENT_TYPES:
        raise HTTPException(status_code=400, detail="record_id and a valid section are required")
    if req.collapsed is None:
        collapsed = ctl.toggle_section(req.record_id, req.section)
    else:
        ctl.set_section_collapsed(req.record_id, req.section, req.collapsed)
        collapsed = req.collapsed
    return _json({"record_id": req.record_id, "section": req.section, "collapsed": collapsed})


@router.post("/navigate")
async def navigate(req: NavigateRequest, ctl: ViewStateController = Depends(get_controller)):
    if req.action == "back":
        moved = ctl.back() is not None
    elif req.action == "forward":
        moved = ctl.forward() is not None
    elif req.action == "url":
        ctl.apply_url(req.url)
        moved = True
    else:
        moved = ctl.step_detail(-1 if req.action == "prev" else 1)
    return _json({"moved": moved, **_view_payload(ctl)})


# ----------------- mode datasets -----------------


@router.get("/stats/growth")
def stats_growth(ctl: ViewStateController = Depends(get_controller), cumulative: bool = Query(True)):
    _require_mode(ctl, Mode.STATS)
    return _json({"view": ctl.view.value, **ctl.growth(cumulative=cumulative).to_dict()})


@router.get("/stats/table")
def stats_table(
    ctl: ViewStateController = Depends(get_controller),
    column: Optional[str] = Query(None),
):
    _require_mode(ctl, Mode.STATS)
    rows = ctl.stats_table(column)
    public = [{k: v for k, v in r.items() if not k.startswith("_")} for r in rows]
    sort = ctl.stats.sort
    return _json({"view": ctl.view.value, "sort": {"column": sort.column, "direction": sort.direction}, "rows": public})


@router.get("/stats/names")
async def stats_names(ctl: ViewStateController = Depends(get_controller)):
    _require_mode(ctl, Mode.STATS)
    data = await _mode_data(ctl)
    return _json(data.to_dict())


@router.get("/time-since")
async def time_since(ctl: ViewStateController = Depends(get_controller)):
    _require_mode(ctl, Mode.TIME_SINCE)
    board = await _mode_data(ctl)
    return _json(board.to_dict(ctl.time_since.clock()))


@router.get("/material-groups")
async def material_groups(ctl: ViewStateController = Depends(get_controller)):
    _require_mode(ctl, Mode.MATERIAL_GROUPS)
    groups = await _mode_data(ctl)
    return _json({"groups": [g.to_dict() for g in groups], "count": len(groups)})
