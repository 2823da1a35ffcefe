from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from typing import Optional

from vidyasetu.api.dependencies import get_progress_service
from vidyasetu.api.responses import success_response
from vidyasetu.api.security import get_current_user
from vidyasetu.api.serializers import progress_to_dict, result_summary
from vidyasetu.core.models import Grade, ProgressStatus, Subject, User
from vidyasetu.core.services.progress_service import ProgressService

router = APIRouter(prefix="/api/progress", tags=["progress"])


class ProgressUpdate(BaseModel):
    content_id: int
    status: Optional[ProgressStatus] = None
    progress_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    time_spent: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None


@router.post("")
async def record_progress(
    update: ProgressUpdate,
    current_user: User = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service),
):
    progress = service.record_progress(
        current_user,
        update.content_id,
        status=update.status,
        progress_percentage=update.progress_percentage,
        time_spent=update.time_spent,
        notes=update.notes,
    )
    return success_response(progress_to_dict(progress), "Progress updated successfully")


@router.get("")
async def list_progress(
    status: Optional[ProgressStatus] = None,
    subject: Optional[Subject] = None,
    grade: Optional[Grade] = None,
    current_user: User = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service),
):
    rows = service.list_progress(current_user, status=status, subject=subject, grade=grade)
    return success_response([progress_to_dict(p) for p in rows])


# Static paths are declared before /{content_id} so they are not shadowed


@router.get("/dashboard/stats")
async def dashboard_stats(
    current_user: User = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service),
):
    stats = service.get_dashboard_stats(current_user)
    recent = stats["recent_activity"]
    stats["recent_activity"] = {
        "recent_progress": [progress_to_dict(p) for p in recent["recent_progress"]],
        "recent_quizzes": [result_summary(r) for r in recent["recent_quizzes"]],
    }
    return success_response(stats)


@router.get("/analytics")
async def analytics(
    period: int = Query(30, ge=1, le=365),
    current_user: User = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service),
):
    data = service.get_analytics(current_user, period_days=period)
    data["quiz_performance"] = [result_summary(r) for r in data["quiz_performance"]]
    return success_response(data)


@router.get("/{content_id}")
async def get_progress(
    content_id: int,
    current_user: User = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service),
):
    progress = service.get_progress(current_user, content_id)
    return success_response(progress_to_dict(progress))


@router.patch("/{content_id}/bookmark")
async def toggle_bookmark(
    content_id: int,
    current_user: User = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service),
):
    progress = service.toggle_bookmark(current_user, content_id)
    return success_response(
        progress_to_dict(progress),
        "Bookmark added" if progress.bookmarked else "Bookmark removed",
    )
