# API Request/Response Models
"""
Pydantic models for API request and response schemas.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Enums
# ============================================================================

class SessionStatus(str, Enum):
    """Status of a practice session."""
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class InputMethod(str, Enum):
    """How the candidate supplied a response."""
    TEXT = "text"
    VOICE = "voice"


# ============================================================================
# Request Models
# ============================================================================

class CreateSessionRequest(BaseModel):
    """Request to start a new practice session."""
    user_id: str = Field(..., description="Owner of the session", min_length=1)
    job_position: str = Field(..., description="Role being practised for", min_length=1, max_length=200)
    interview_stage: str = Field(
        ...,
        description="phone-screening, functional-team, hiring-manager, sme-expert or executive-leadership"
    )
    experience_level: str = Field(
        default="intermediate",
        description="entry, intermediate, senior or expert"
    )
    company_name: Optional[str] = Field(None, max_length=200)
    language: Optional[str] = Field(None, description="Language code, defaults to 'en'")
    difficulty: Optional[str] = Field(None, description="beginner, intermediate, advanced or adaptive")
    total_questions: Optional[int] = Field(None, ge=1, le=50)
    focus_areas: Optional[List[str]] = None
    question_categories: Optional[List[str]] = None
    session_name: Optional[str] = Field(None, max_length=255)
    time_limit_minutes: Optional[int] = Field(None, ge=1)
    voice_enabled: Optional[bool] = None
    speech_rate: Optional[float] = Field(None, gt=0)

    model_config = {
        "json_schema_extra": {
            "example": {
                "user_id": "user-123",
                "job_position": "Business Manager",
                "interview_stage": "hiring-manager",
                "experience_level": "senior",
                "company_name": "Microsoft",
                "language": "en",
                "total_questions": 5
            }
        }
    }


class SubmitResponseRequest(BaseModel):
    """Request to answer the current question."""
    question_id: uuid.UUID = Field(..., description="Question being answered")
    response_text: str = Field(..., description="The candidate's answer", min_length=1)
    input_method: InputMethod = Field(default=InputMethod.TEXT)
    time_taken: int = Field(default=0, ge=0, description="Seconds spent answering")
    audio_url: Optional[str] = Field(None, description="Reference to the recorded answer, if any")

    model_config = {
        "json_schema_extra": {
            "example": {
                "question_id": "5f0c6a4e-9a3b-4bb6-9a43-2b1f3c3f2d10",
                "response_text": "When our biggest client threatened to leave, I was responsible for...",
                "input_method": "text",
                "time_taken": 145
            }
        }
    }


class UpdateStatusRequest(BaseModel):
    """Request to pause, resume, abandon or complete a session."""
    status: SessionStatus


# ============================================================================
# Response Models
# ============================================================================

class SessionResponse(BaseModel):
    """Session details."""
    id: uuid.UUID
    user_id: str
    session_name: Optional[str] = None
    job_position: str
    company_name: Optional[str] = None
    interview_stage: str
    experience_level: str
    preferred_language: str
    difficulty_level: str
    focus_areas: List[str] = Field(default_factory=list)
    total_questions: int
    status: SessionStatus
    current_question_index: int
    questions_answered: int = 0
    session_progress: float = 0.0
    average_star_score: Optional[float] = None
    total_time_spent: int = 0
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SessionListResponse(BaseModel):
    sessions: List[SessionResponse]
    limit: int
    offset: int


class QuestionResponse(BaseModel):
    """A question asked in a session."""
    id: uuid.UUID
    session_id: uuid.UUID
    question_number: int
    question_text: str
    question_text_translated: Optional[str] = None
    question_category: str
    question_type: str
    difficulty_level: str
    expected_answer_time: int
    star_method_relevant: bool
    cultural_context: Optional[str] = None
    is_answered: bool
    generated_by: str

    model_config = {"from_attributes": True}


class StarScores(BaseModel):
    situation: float
    task: float
    action: float
    result: float
    flow: float
    overall: float


class ResponseResult(BaseModel):
    """A scored candidate response."""
    id: uuid.UUID
    question_id: uuid.UUID
    response_text: str
    input_method: InputMethod
    star_scores: StarScores
    qualitative: str
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    evaluated_by: str
    word_count: Optional[int] = None
    time_taken: int = 0

    @classmethod
    def from_row(cls, row) -> "ResponseResult":
        feedback = row.detailed_feedback or {}
        return cls(
            id=row.id,
            question_id=row.question_id,
            response_text=row.response_text,
            input_method=row.input_method,
            star_scores=StarScores(**row.star_scores),
            qualitative=feedback.get("qualitative", ""),
            strengths=feedback.get("strengths", []),
            improvements=feedback.get("improvements", []),
            recommendations=feedback.get("recommendations", []),
            evaluated_by=row.evaluated_by,
            word_count=row.word_count,
            time_taken=row.time_taken or 0,
        )


class ProgressResponse(BaseModel):
    """Progress through a session."""
    session_id: uuid.UUID
    status: SessionStatus
    current_question_index: int
    total_questions: int
    questions_answered: int
    progress_percent: float
    average_star_score: Optional[float] = None
    total_time_spent: int

    model_config = {"from_attributes": True}


class AnalyticsResponse(BaseModel):
    """Aggregate results of a completed session."""
    session_id: uuid.UUID
    overall_performance: Dict[str, Any]
    category_scores: Dict[str, float] = Field(default_factory=dict)
    improvement_over_time: List[Dict[str, Any]] = Field(default_factory=list)
    response_patterns: Dict[str, Any] = Field(default_factory=dict)
    strengths_identified: List[str] = Field(default_factory=list)
    areas_for_improvement: List[str] = Field(default_factory=list)
    personalized_recommendations: List[str] = Field(default_factory=list)
    total_session_time: int
    average_response_time: Optional[float] = None
    questions_answered: int
    questions_skipped: int = 0

    model_config = {"from_attributes": True}


class SubmitResponseResponse(BaseModel):
    """Result of answering a question."""
    session_id: uuid.UUID
    response: ResponseResult
    session_completed: bool
    progress: ProgressResponse
    analytics: Optional[AnalyticsResponse] = None
    next_action: str

    model_config = {
        "json_schema_extra": {
            "example": {
                "session_id": "1c7a8d1e-0b57-4a55-8f1e-5d8a4b8c9e21",
                "session_completed": False,
                "next_action": "POST /api/v1/prepare/sessions/{session_id}/question"
            }
        }
    }


class ReviewItem(BaseModel):
    question: QuestionResponse
    response: Optional[ResponseResult] = None


class SessionReviewResponse(BaseModel):
    """Everything asked and answered in a session."""
    session: SessionResponse
    items: List[ReviewItem]
    analytics: Optional[AnalyticsResponse] = None


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: str

    model_config = {
        "json_schema_extra": {
            "example": {
                "error": "InvalidStateTransition",
                "detail": "Question 5f0c6a4e-9a3b-4bb6-9a43-2b1f3c3f2d10 has already been answered"
            }
        }
    }


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    timestamp: datetime
