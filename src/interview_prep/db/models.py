# Persistence Models
"""
ORM models for sessions, questions, responses and session analytics.

All rows are keyed by UUID. Scores are stored both as flat columns (for
querying) and as the ``star_scores`` JSON document returned to clients.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PrepareSession(Base):
    __tablename__ = "ai_prepare_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String(255), nullable=False, index=True)
    session_name = Column(String(255), nullable=True)
    job_position = Column(String(200), nullable=False)
    company_name = Column(String(200), nullable=True)
    interview_stage = Column(String(50), nullable=False)
    experience_level = Column(String(20), nullable=False)
    preferred_language = Column(String(10), default="en")
    difficulty_level = Column(String(20), default="adaptive")
    focus_areas = Column(JSON, default=list)
    question_categories = Column(JSON, default=list)
    total_questions = Column(Integer, nullable=False, default=15)
    time_limit_minutes = Column(Integer, default=60)
    status = Column(String(20), nullable=False, default="active")  # active / paused / completed / abandoned
    current_question_index = Column(Integer, nullable=False, default=1)
    questions_answered = Column(Integer, default=0)
    session_progress = Column(Float, default=0.0)
    average_star_score = Column(Float, nullable=True)
    total_time_spent = Column(Integer, default=0)
    voice_enabled = Column(Boolean, default=True)
    speech_rate = Column(Float, default=1.0)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    started_at = Column(DateTime(timezone=True), nullable=True)
    paused_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)


class PrepareQuestion(Base):
    __tablename__ = "ai_prepare_questions"
    __table_args__ = (
        UniqueConstraint("session_id", "question_number", name="uq_prepare_question_number"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(Uuid, ForeignKey("ai_prepare_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    question_text = Column(Text, nullable=False)
    question_text_translated = Column(Text, nullable=True)
    question_category = Column(String(50), nullable=False)
    question_type = Column(String(30), nullable=False)
    difficulty_level = Column(String(20), nullable=False)
    expected_answer_time = Column(Integer, default=180)
    star_method_relevant = Column(Boolean, default=True)
    cultural_context = Column(Text, nullable=True)
    question_number = Column(Integer, nullable=False)
    is_answered = Column(Boolean, nullable=False, default=False)
    time_spent = Column(Integer, default=0)
    generated_by = Column(String(20), nullable=False)  # ai / fallback
    generation_prompt = Column(Text, nullable=True)
    generation_timestamp = Column(DateTime(timezone=True), default=utcnow)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class PrepareResponse(Base):
    __tablename__ = "ai_prepare_responses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(Uuid, ForeignKey("ai_prepare_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    # One response per question
    question_id = Column(Uuid, ForeignKey("ai_prepare_questions.id", ondelete="CASCADE"), nullable=False, unique=True)
    response_text = Column(Text, nullable=False)
    response_language = Column(String(10), default="en")
    input_method = Column(String(20), default="text")  # text / voice
    audio_file_url = Column(Text, nullable=True)
    star_scores = Column(JSON, nullable=False)
    detailed_feedback = Column(JSON, nullable=False)
    situation_score = Column(Float, nullable=False)
    task_score = Column(Float, nullable=False)
    action_score = Column(Float, nullable=False)
    result_score = Column(Float, nullable=False)
    flow_score = Column(Float, nullable=False)
    overall_score = Column(Float, nullable=False)
    evaluated_by = Column(String(20), nullable=False)  # ai / fallback
    evaluation_timestamp = Column(DateTime(timezone=True), default=utcnow)
    evaluation_duration = Column(Integer, nullable=True)
    time_taken = Column(Integer, nullable=False, default=0)
    word_count = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class PrepareAnalytics(Base):
    __tablename__ = "ai_prepare_analytics"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(Uuid, ForeignKey("ai_prepare_sessions.id", ondelete="CASCADE"), nullable=False, unique=True)
    user_id = Column(String(255), nullable=False)
    overall_performance = Column(JSON, nullable=False)
    category_scores = Column(JSON, default=dict)
    improvement_over_time = Column(JSON, default=list)
    response_patterns = Column(JSON, default=dict)
    strengths_identified = Column(JSON, default=list)
    areas_for_improvement = Column(JSON, default=list)
    personalized_recommendations = Column(JSON, default=list)
    total_session_time = Column(Integer, nullable=False, default=0)
    average_response_time = Column(Float, nullable=True)
    questions_answered = Column(Integer, nullable=False, default=0)
    questions_skipped = Column(Integer, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
