import asyncio
import logging
from typing import Any, Dict, Optional

import psycopg2
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from db import DatabaseNotConfiguredError
from history_service import ACTIVITY_STATUSES, InvalidActivityError, history_service
from user_friendly_errors import get_user_friendly_error

logger = logging.getLogger(__name__)

router = APIRouter()


class RecordActivityRequest(BaseModel):
    userEmail: Optional[str] = None
    activityType: Optional[str] = None
    title: Optional[str] = None
    inputText: Optional[str] = ""
    result: Optional[Any] = None
    status: Optional[str] = "completed"
    duration: Optional[int] = 0
    metadata: Optional[Dict[str, Any]] = None


def _require_history():
    if not history_service.is_available():
        raise HTTPException(
            status_code=503,
            detail={"error": get_user_friendly_error("DB_NOT_CONFIGURED"), "activities": []},
        )


@router.get("/api/history")
async def get_history(request: Request, email: Optional[str] = None,
                      type: Optional[str] = None, search: Optional[str] = None):
    """Activity history of one user, newest first"""
    user_email = email or request.headers.get("x-user-email")
    if not user_email:
        raise HTTPException(status_code=400, detail={"error": "User email is required"})
    _require_history()

    try:
        activities = await asyncio.to_thread(
            history_service.get_activities_by_user, user_email, type, search
        )
    except (psycopg2.Error, DatabaseNotConfiguredError) as e:
        logger.error(f"History fetch error: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to fetch history", "details": get_user_friendly_error("DB_UNAVAILABLE"),
                     "activities": []},
        )

    return {"activities": activities, "total": len(activities), "user": user_email}


@router.post("/api/history")
async def record_activity(body: RecordActivityRequest):
    """Record one activity sent by the client"""
    if not body.userEmail or not body.activityType or not body.title:
        raise HTTPException(
            status_code=400,
            detail={"error": "Missing required fields: userEmail, activityType, title"},
        )
    status = body.status or "completed"
    if status not in ACTIVITY_STATUSES:
        raise HTTPException(status_code=400, detail={"error": f"Invalid status: {status}"})
    _require_history()

    try:
        activity_id = await asyncio.to_thread(
            history_service.create_activity,
            body.userEmail,
            body.activityType,
            body.title,
            body.inputText or "",
            body.result,
            status,
            body.duration or 0,
            body.metadata or {},
        )
    except InvalidActivityError as e:
        raise HTTPException(status_code=400, detail={"error": str(e)})
    except (psycopg2.Error, DatabaseNotConfiguredError) as e:
        logger.error(f"Activity recording error: {e}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Failed to record activity",
                     "details": get_user_friendly_error("DB_UNAVAILABLE")},
        )

    return {"success": True, "activityId": activity_id, "message": "Activity recorded successfully"}


@router.get("/api/history/stats")
async def get_history_stats(request: Request, email: Optional[str] = None):
    """Activity counts per type, for one user when an email is given"""
    user_email = email or request.headers.get("x-user-email")
    _require_history()
    try:
        return await asyncio.to_thread(history_service.get_activity_stats, user_email)
    except (psycopg2.Error, DatabaseNotConfiguredError) as e:
        logger.error(f"History stats error: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to fetch history stats",
                     "details": get_user_friendly_error("DB_UNAVAILABLE")},
        )
