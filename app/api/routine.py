import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.errors import TrackingError
from app.schemas import (
    AnalysisScores,
    ConcernScores,
    ItemStatus,
    RatingRequest,
    RoutineItemUpdate,
    StopTrackingRequest,
    ToggleAction,
)
from app.services.routine_service import RoutineService
from app.tracking.lifecycle import TrackingLifecycle, usage_response_text

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/routine", tags=["routine"])


def _envelope(data: Any, message: str = "Success") -> dict:
    return {"status": 200, "data": data, "message": message}


def _to_http(e: Exception, action: str) -> HTTPException:
    if isinstance(e, TrackingError):
        logger.info(f"{action} rejected: {e.message}")
        return HTTPException(status_code=e.status_code, detail=e.message)
    logger.error(f"Error in {action}: {str(e)}", exc_info=True)
    return HTTPException(status_code=500, detail=str(e))


def get_service(db: AsyncSession = Depends(get_db)) -> RoutineService:
    return RoutineService(db)


def get_lifecycle(service: RoutineService = Depends(get_service)) -> TrackingLifecycle:
    return TrackingLifecycle(service)


# ── Items ────────────────────────────────────────────────────────────────────


@router.get("/")
async def list_routine_items(
    status: Optional[ItemStatus] = None, service: RoutineService = Depends(get_service)
):
    try:
        items = await service.list_routine_items(status)
    except Exception as e:
        raise _to_http(e, "list routine items")
    return _envelope(items, "Routine items fetched successfully")


@router.post("/")
async def create_routine_item(
    payload: dict[str, Any], service: RoutineService = Depends(get_service)
):
    # Raw dict so form labels and field problems reach the item validator
    try:
        item = await service.create_routine_item(payload)
    except Exception as e:
        raise _to_http(e, "create routine item")
    return _envelope(item, "Routine item added successfully")


@router.get("/{item_id}")
async def get_routine_item(item_id: int, service: RoutineService = Depends(get_service)):
    try:
        item = await service.get_routine_item(item_id)
    except Exception as e:
        raise _to_http(e, "get routine item")
    return _envelope(item)


@router.patch("/{item_id}")
async def update_routine_item(
    item_id: int,
    payload: RoutineItemUpdate,
    service: RoutineService = Depends(get_service),
):
    try:
        item = await service.update_routine_item(item_id, payload)
    except Exception as e:
        raise _to_http(e, "update routine item")
    return _envelope(item, "Routine item updated successfully")


@router.delete("/{item_id}")
async def delete_routine_item(item_id: int, service: RoutineService = Depends(get_service)):
    try:
        await service.delete_routine_item(item_id)
    except Exception as e:
        raise _to_http(e, "delete routine item")
    return _envelope(None, "Routine item deleted successfully")


# ── Tracking ─────────────────────────────────────────────────────────────────


@router.get("/{item_id}/concern-tracking")
async def get_concern_tracking(item_id: int, service: RoutineService = Depends(get_service)):
    try:
        tracking = await service.get_concern_tracking(item_id)
    except Exception as e:
        raise _to_http(e, "get concern tracking")
    return _envelope(tracking)


@router.get("/{item_id}/review")
async def review_routine_item(
    item_id: int,
    status: Optional[str] = None,
    lifecycle: TrackingLifecycle = Depends(get_lifecycle),
):
    try:
        reviews = await lifecycle.review(item_id, status)
    except Exception as e:
        raise _to_http(e, "review routine item")
    return _envelope(reviews)


@router.post("/{item_id}/effectiveness")
async def rate_effectiveness(
    item_id: int,
    ratings: list[RatingRequest],
    service: RoutineService = Depends(get_service),
):
    try:
        results = await service.rate_effectiveness(item_id, ratings)
    except Exception as e:
        raise _to_http(e, "rate effectiveness")
    return _envelope(results, "Effectiveness rating saved successfully")


@router.get("/{item_id}/ratings")
async def get_rating_history(
    item_id: int, concern: str, service: RoutineService = Depends(get_service)
):
    try:
        history = await service.get_rating_history(item_id, concern)
    except Exception as e:
        raise _to_http(e, "get rating history")
    return _envelope(history)


@router.post("/{item_id}/tracking/{action}")
async def toggle_tracking(
    item_id: int,
    action: ToggleAction,
    concerns: Optional[list[str]] = None,
    lifecycle: TrackingLifecycle = Depends(get_lifecycle),
):
    try:
        if action == ToggleAction.PAUSE:
            changes = await lifecycle.pause(item_id, concerns)
        else:
            changes = await lifecycle.resume(item_id, concerns)
    except Exception as e:
        raise _to_http(e, f"{action.value} tracking")
    return _envelope(
        {"changes": changes, "concern_tracking": list(lifecycle.snapshot(item_id).values())},
        f"Tracking {action.value}d successfully",
    )


@router.post("/{item_id}/stop-tracking")
async def stop_tracking(
    item_id: int,
    request: StopTrackingRequest,
    lifecycle: TrackingLifecycle = Depends(get_lifecycle),
):
    try:
        changes = await lifecycle.stop_tracking(
            item_id,
            request.usage_response,
            confirmed=request.confirmed,
            concerns=request.concerns,
        )
    except Exception as e:
        raise _to_http(e, "stop tracking")
    return _envelope(
        {"changes": changes, "usage_response": usage_response_text(request.usage_response)},
        "Tracking stopped" if changes else "Tracking unchanged",
    )


@router.post("/{item_id}/scores")
async def record_scores(
    item_id: int,
    scores: list[ConcernScores],
    service: RoutineService = Depends(get_service),
):
    try:
        tracking = await service.record_scores(item_id, scores)
    except Exception as e:
        raise _to_http(e, "record scores")
    return _envelope(tracking, "Scores recorded successfully")


@router.post("/{item_id}/analysis")
async def record_analysis(
    item_id: int,
    analysis: AnalysisScores,
    service: RoutineService = Depends(get_service),
):
    try:
        tracking = await service.record_analysis(item_id, analysis)
    except Exception as e:
        raise _to_http(e, "record analysis")
    return _envelope(tracking, "Analysis recorded successfully")
