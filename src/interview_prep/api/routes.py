# API Routes
"""
FastAPI route handlers for the Interview Prep API.

Handlers only translate between HTTP and the session orchestrator; core
errors are mapped to status codes by the handlers in ``main``.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from interview_prep.services.session_orchestrator import SessionOrchestrator, SessionParams, SessionProgress

from .models import (
    AnalyticsResponse,
    CreateSessionRequest,
    ErrorResponse,
    ProgressResponse,
    QuestionResponse,
    ResponseResult,
    ReviewItem,
    SessionListResponse,
    SessionResponse,
    SessionReviewResponse,
    SubmitResponseRequest,
    SubmitResponseResponse,
    UpdateStatusRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/prepare", tags=["prepare"])

ERRORS = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


def get_orchestrator(request: Request) -> SessionOrchestrator:
    """Dependency returning the orchestrator built at startup."""
    return request.app.state.orchestrator


def _progress(progress: SessionProgress) -> ProgressResponse:
    return ProgressResponse.model_validate(progress)


# ============================================================================
# Session Management Endpoints
# ============================================================================

@router.post(
    "/sessions",
    response_model=SessionResponse,
    status_code=201,
    responses=ERRORS,
    summary="Start a new practice session",
)
async def create_session(
    request: CreateSessionRequest,
    orchestrator: SessionOrchestrator = Depends(get_orchestrator)
) -> SessionResponse:
    params = SessionParams(**request.model_dump(exclude={"user_id"}))
    session = await orchestrator.create_session(request.user_id, params)
    return SessionResponse.model_validate(session)


@router.get(
    "/sessions",
    response_model=SessionListResponse,
    responses=ERRORS,
    summary="List a user's sessions",
    description="Newest sessions first."
)
async def list_sessions(
    user_id: str = Query(..., min_length=1),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    orchestrator: SessionOrchestrator = Depends(get_orchestrator)
) -> SessionListResponse:
    sessions = await orchestrator.list_user_sessions(user_id, limit=limit, offset=offset)
    return SessionListResponse(
        sessions=[SessionResponse.model_validate(s) for s in sessions],
        limit=limit,
        offset=offset
    )


@router.get(
    "/sessions/{session_id}",
    response_model=SessionResponse,
    responses=ERRORS,
    summary="Get session details",
)
async def get_session(
    session_id: uuid.UUID,
    user_id: Optional[str] = None,
    orchestrator: SessionOrchestrator = Depends(get_orchestrator)
) -> SessionResponse:
    session = await orchestrator.get_session(session_id, user_id)
    return SessionResponse.model_validate(session)


@router.patch(
    "/sessions/{session_id}/status",
    response_model=SessionResponse,
    responses=ERRORS,
    summary="Pause, resume, abandon or complete a session",
)
async def update_session_status(
    session_id: uuid.UUID,
    request: UpdateStatusRequest,
    user_id: Optional[str] = None,
    orchestrator: SessionOrchestrator = Depends(get_orchestrator)
) -> SessionResponse:
    session = await orchestrator.update_status(session_id, request.status.value, user_id)
    return SessionResponse.model_validate(session)


@router.delete(
    "/sessions/{session_id}",
    responses=ERRORS,
    summary="Delete a session",
    description="Delete a session with its questions, responses and analytics."
)
async def delete_session(
    session_id: uuid.UUID,
    user_id: Optional[str] = None,
    orchestrator: SessionOrchestrator = Depends(get_orchestrator)
) -> dict:
    await orchestrator.delete_session(session_id, user_id)
    return {"message": f"Session {session_id} deleted successfully"}


# ============================================================================
# Interview Flow Endpoints
# ============================================================================

@router.post(
    "/sessions/{session_id}/question",
    response_model=QuestionResponse,
    responses=ERRORS,
    summary="Get the next question",
    description="Generates the next question, or returns the current one if it has not been answered yet."
)
async def next_question(
    session_id: uuid.UUID,
    orchestrator: SessionOrchestrator = Depends(get_orchestrator)
) -> QuestionResponse:
    question = await orchestrator.generate_next_question(session_id)
    return QuestionResponse.model_validate(question)


@router.post(
    "/sessions/{session_id}/respond",
    response_model=SubmitResponseResponse,
    responses=ERRORS,
    summary="Submit a response",
    description="Scores the response with the STAR method and advances the session."
)
async def submit_response(
    session_id: uuid.UUID,
    request: SubmitResponseRequest,
    orchestrator: SessionOrchestrator = Depends(get_orchestrator)
) -> SubmitResponseResponse:
    outcome = await orchestrator.process_response(
        session_id,
        request.question_id,
        request.response_text,
        input_mode=request.input_method.value,
        time_taken=request.time_taken,
        audio_url=request.audio_url
    )
    progress = await orchestrator.get_progress(session_id)

    if outcome.session_completed:
        next_action = f"GET /api/v1/prepare/sessions/{session_id}/review"
    else:
        next_action = f"POST /api/v1/prepare/sessions/{session_id}/question"

    return SubmitResponseResponse(
        session_id=session_id,
        response=ResponseResult.from_row(outcome.response),
        session_completed=outcome.session_completed,
        progress=_progress(progress),
        analytics=AnalyticsResponse.model_validate(outcome.analytics) if outcome.analytics else None,
        next_action=next_action
    )


# ============================================================================
# Results Endpoints
# ============================================================================

@router.get(
    "/sessions/{session_id}/progress",
    response_model=ProgressResponse,
    responses=ERRORS,
    summary="Get session progress",
)
async def get_progress(
    session_id: uuid.UUID,
    user_id: Optional[str] = None,
    orchestrator: SessionOrchestrator = Depends(get_orchestrator)
) -> ProgressResponse:
    return _progress(await orchestrator.get_progress(session_id, user_id))


@router.get(
    "/sessions/{session_id}/review",
    response_model=SessionReviewResponse,
    responses=ERRORS,
    summary="Review a session",
    description="All questions with their scored responses, plus analytics once the session is complete."
)
async def get_review(
    session_id: uuid.UUID,
    user_id: Optional[str] = None,
    orchestrator: SessionOrchestrator = Depends(get_orchestrator)
) -> SessionReviewResponse:
    review = await orchestrator.get_session_review(session_id, user_id)
    return SessionReviewResponse(
        session=SessionResponse.model_validate(review.session),
        items=[
            ReviewItem(
                question=QuestionResponse.model_validate(question),
                response=ResponseResult.from_row(response) if response else None
            )
            for question, response in review.items
        ],
        analytics=AnalyticsResponse.model_validate(review.analytics) if review.analytics else None
    )
