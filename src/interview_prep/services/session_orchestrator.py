# Session Orchestrator
"""
Owns the lifecycle of a practice session.

    active -> (ask question -> answer + evaluate)+ -> completed
    active <-> paused, active/paused -> abandoned

The orchestrator sequences the question generator and the response
evaluator and persists every step. AI failures never abort a session;
only persistence failures and invalid state transitions are surfaced.
Provider calls run between two short units of work so that no database
transaction is held open while the model is thinking.
"""

import logging
import uuid
from dataclasses import dataclass, field
from statistics import mean
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from interview_prep.config import SESSION_CONFIG
from interview_prep.db.models import PrepareAnalytics, PrepareQuestion, PrepareResponse, PrepareSession, utcnow
from interview_prep.db.repository import SessionRepository
from interview_prep.errors import (
    InvalidStateTransition,
    QuestionNotFound,
    SessionNotFound,
    ValidationError,
)
from interview_prep.services.analytics import AnsweredItem, summarize_session
from interview_prep.services.question_generator import (
    DIFFICULTY_LEVELS,
    EXPERIENCE_LEVELS,
    INTERVIEW_STAGES,
    GeneratedQuestion,
    QuestionContext,
    QuestionGenerator,
    normalize_stage,
)
from interview_prep.services.response_evaluator import EvaluationContext, ResponseEvaluator, STARAssessment

logger = logging.getLogger(__name__)

INPUT_METHODS = ("text", "voice")

# Allowed status changes requested by the caller
STATUS_TRANSITIONS = {
    "active": {"paused", "abandoned", "completed"},
    "paused": {"active", "abandoned", "completed"},
    "completed": set(),
    "abandoned": set(),
}


class _QuestionAlreadyStored(Exception):
    pass


# ============================================================================
# Data Models
# ============================================================================

@dataclass
class SessionParams:
    """Caller-supplied fields for a new session."""
    job_position: str
    interview_stage: str
    experience_level: str = "intermediate"
    company_name: Optional[str] = None
    language: Optional[str] = None
    difficulty: Optional[str] = None
    total_questions: Optional[int] = None
    focus_areas: Optional[List[str]] = None
    question_categories: Optional[List[str]] = None
    session_name: Optional[str] = None
    time_limit_minutes: Optional[int] = None
    voice_enabled: Optional[bool] = None
    speech_rate: Optional[float] = None


@dataclass
class ResponseOutcome:
    """Result of processing one candidate response."""
    session: PrepareSession
    response: PrepareResponse
    assessment: STARAssessment
    session_completed: bool
    analytics: Optional[PrepareAnalytics] = None


@dataclass
class SessionProgress:
    session_id: uuid.UUID
    status: str
    current_question_index: int
    total_questions: int
    questions_answered: int
    progress_percent: float
    average_star_score: Optional[float]
    total_time_spent: int


@dataclass
class SessionReview:
    session: PrepareSession
    items: List[Tuple[PrepareQuestion, Optional[PrepareResponse]]] = field(default_factory=list)
    analytics: Optional[PrepareAnalytics] = None


# ============================================================================
# Session Orchestrator
# ============================================================================

class SessionOrchestrator:
    """
    Sequences question generation, evaluation and persistence per session.

    All collaborators are injected; nothing here is process-wide state.

    Usage:
        orchestrator = SessionOrchestrator(repository, generator, evaluator)
        session = await orchestrator.create_session("user-1", SessionParams(
            job_position="Business Manager",
            interview_stage="hiring-manager",
            company_name="Microsoft",
        ))
        question = await orchestrator.generate_next_question(session.id)
        outcome = await orchestrator.process_response(session.id, question.id, "When I...")
    """

    def __init__(
        self,
        repository: SessionRepository,
        question_generator: QuestionGenerator,
        response_evaluator: ResponseEvaluator,
    ):
        self.repository = repository
        self.question_generator = question_generator
        self.response_evaluator = response_evaluator

    # ========================================================================
    # Session Lifecycle
    # ========================================================================

    async def create_session(self, user_id: str, params: SessionParams) -> PrepareSession:
        """
        Validate ``params`` and persist a new active session.

        Raises:
            ValidationError: If a required field is missing or invalid
        """
        session = self._build_session(user_id, params)

        async with self.repository.unit_of_work() as db:
            await self.repository.add(db, session)

        logger.info(
            f"🚀 Session {session.id} created for {session.job_position} "
            f"({session.interview_stage}, {session.total_questions} questions)"
        )
        return session

    async def get_session(self, session_id, user_id: Optional[str] = None) -> PrepareSession:
        """Fetch a session, optionally scoped to its owner."""
        async with self.repository.unit_of_work() as db:
            return await self._load_session(db, session_id, user_id)

    async def list_user_sessions(self, user_id: str, limit: Optional[int] = None, offset: int = 0) -> List[PrepareSession]:
        limit = SESSION_CONFIG["list_limit"] if limit is None else limit
        if not 1 <= limit <= 100:
            raise ValidationError("limit must be between 1 and 100")
        if offset < 0:
            raise ValidationError("offset must not be negative")

        async with self.repository.unit_of_work() as db:
            return await self.repository.list_sessions(db, user_id, limit, offset)

    async def delete_session(self, session_id, user_id: Optional[str] = None) -> None:
        async with self.repository.unit_of_work() as db:
            session = await self._load_session(db, session_id, user_id)
            await self.repository.delete_session(db, session.id)
        logger.info(f"🗑️ Session {session.id} deleted")

    async def pause_session(self, session_id, user_id: Optional[str] = None) -> PrepareSession:
        return await self.update_status(session_id, "paused", user_id)

    async def resume_session(self, session_id, user_id: Optional[str] = None) -> PrepareSession:
        return await self.update_status(session_id, "active", user_id)

    async def abandon_session(self, session_id, user_id: Optional[str] = None) -> PrepareSession:
        return await self.update_status(session_id, "abandoned", user_id)

    async def complete_session(self, session_id, user_id: Optional[str] = None) -> PrepareSession:
        """End a session early; analytics cover the questions answered so far."""
        return await self.update_status(session_id, "completed", user_id)

    async def update_status(self, session_id, status: str, user_id: Optional[str] = None) -> PrepareSession:
        """
        Apply a caller-requested status change.

        Raises:
            ValidationError: Unknown status
            InvalidStateTransition: Change not allowed from the current status
        """
        if status not in STATUS_TRANSITIONS:
            raise ValidationError(f"Unknown session status: {status}")

        async with self.repository.unit_of_work() as db:
            session = await self._load_session(db, session_id, user_id)
            if status not in STATUS_TRANSITIONS[session.status]:
                raise InvalidStateTransition(f"Cannot move session from {session.status} to {status}")

            now = utcnow()
            previous = session.status
            session.status = status
            if status == "paused":
                session.paused_at = now
            elif status == "active":
                session.paused_at = None
            elif status == "completed":
                session.completed_at = now
                await self._store_analytics(db, session)
            await db.flush()

        logger.info(f"🔄 Session {session.id}: {previous} -> {status}")
        return session

    # ========================================================================
    # Question Flow
    # ========================================================================

    async def generate_next_question(self, session_id) -> PrepareQuestion:
        """
        Return the question the candidate should answer next.

        If the current question has not been answered yet it is returned
        unchanged, so retries and double submits never create a second
        question for the same step.

        Raises:
            SessionNotFound: Unknown session
            InvalidStateTransition: Session not active, or no questions left
        """
        async with self.repository.unit_of_work() as db:
            session = await self._load_session(db, session_id)
            self._require_active(session)

            pending = await self.repository.get_unanswered_question(db, session.id)
            if pending is not None:
                logger.info(f"↩️ Session {session.id}: question {pending.question_number} still awaiting a response")
                return pending

            if session.current_question_index > session.total_questions:
                raise InvalidStateTransition("All questions for this session have been asked")

            answered = await self.repository.list_answered(db, session.id)
            context = self._question_context(session, answered)
            session_uuid = session.id

        generated = await self.question_generator.generate_question(context)

        try:
            async with self.repository.unit_of_work() as db:
                session = await self._load_session(db, session_uuid)
                self._require_active(session)

                pending = await self.repository.get_unanswered_question(db, session.id)
                if pending is not None:
                    return pending

                question = self._build_question(session, generated)
                try:
                    await self.repository.add(db, question)
                except IntegrityError as e:
                    raise _QuestionAlreadyStored() from e
        except _QuestionAlreadyStored:
            # Another request stored this step's question first. The rollback
            # expired every row loaded above, so only plain values are used here.
            async with self.repository.unit_of_work() as db:
                pending = await self.repository.get_unanswered_question(db, session_uuid)
            if pending is None:
                raise InvalidStateTransition(
                    f"Question {generated.question_number} of session {session_uuid} was already asked"
                )
            logger.info(f"↩️ Session {session_uuid}: question {pending.question_number} was stored by another request")
            return pending

        logger.info(
            f"❓ Session {session.id}: question {question.question_number}/{session.total_questions} "
            f"stored ({question.generated_by})"
        )
        return question

    async def process_response(
        self,
        session_id,
        question_id,
        response_text: str,
        input_mode: str = "text",
        time_taken: int = 0,
        audio_url: Optional[str] = None,
    ) -> ResponseOutcome:
        """
        Evaluate and persist a response, then advance the session.

        Raises:
            ValidationError: Empty response or unknown input mode
            SessionNotFound / QuestionNotFound: Unknown ids
            InvalidStateTransition: Question already answered, belongs to
                another session, or the session is not active
        """
        if not response_text or not response_text.strip():
            raise ValidationError("Response text is required")
        if input_mode not in INPUT_METHODS:
            raise ValidationError(f"input_mode must be one of: {', '.join(INPUT_METHODS)}")
        if time_taken < 0:
            raise ValidationError("time_taken must not be negative")

        question_uuid = self._parse_id(question_id, QuestionNotFound)

        async with self.repository.unit_of_work() as db:
            session = await self._load_session(db, session_id)
            question = await self._load_question(db, session, question_uuid)
            self._require_active(session)
            await self._require_unanswered(db, question)

            context = EvaluationContext(
                question_text=question.question_text,
                interview_stage=session.interview_stage,
                question_category=question.question_category,
                job_position=session.job_position,
                language=session.preferred_language,
                session_id=str(session.id),
                user_id=session.user_id,
            )

        assessment = await self.response_evaluator.evaluate(response_text, context)

        async with self.repository.unit_of_work() as db:
            session = await self._load_session(db, session.id)
            question = await self._load_question(db, session, question_uuid)
            self._require_active(session)
            await self._require_unanswered(db, question)

            response = self._build_response(session, question, response_text, input_mode, time_taken, audio_url, assessment)
            try:
                await self.repository.add(db, response)
            except IntegrityError as e:
                raise InvalidStateTransition(f"Question {question.id} has already been answered") from e

            question.is_answered = True
            question.time_spent = time_taken

            completed = await self._advance(db, session, time_taken)
            analytics = await self._store_analytics(db, session) if completed else None
            await db.flush()

        logger.info(
            f"📝 Session {session.id}: question {question.question_number} scored "
            f"{assessment.overall} ({assessment.evaluated_by})"
        )
        if completed:
            logger.info(f"🏁 Session {session.id} completed")

        return ResponseOutcome(
            session=session,
            response=response,
            assessment=assessment,
            session_completed=completed,
            analytics=analytics,
        )

    # ========================================================================
    # Progress and Review
    # ========================================================================

    async def get_progress(self, session_id, user_id: Optional[str] = None) -> SessionProgress:
        async with self.repository.unit_of_work() as db:
            session = await self._load_session(db, session_id, user_id)

        return SessionProgress(
            session_id=session.id,
            status=session.status,
            current_question_index=session.current_question_index,
            total_questions=session.total_questions,
            questions_answered=session.questions_answered or 0,
            progress_percent=session.session_progress or 0.0,
            average_star_score=session.average_star_score,
            total_time_spent=session.total_time_spent or 0,
        )

    async def get_session_review(self, session_id, user_id: Optional[str] = None) -> SessionReview:
        """Session with every question, its response (if any) and analytics."""
        async with self.repository.unit_of_work() as db:
            session = await self._load_session(db, session_id, user_id)
            questions = await self.repository.list_questions(db, session.id)
            responses = {q.id: r for q, r in await self.repository.list_answered(db, session.id)}
            analytics = await self.repository.get_analytics(db, session.id)

        return SessionReview(
            session=session,
            items=[(question, responses.get(question.id)) for question in questions],
            analytics=analytics,
        )

    # ========================================================================
    # Internal Helpers
    # ========================================================================

    @staticmethod
    def _parse_id(value, error_cls) -> uuid.UUID:
        if isinstance(value, uuid.UUID):
            return value
        try:
            return uuid.UUID(str(value))
        except (TypeError, ValueError) as e:
            raise error_cls(f"Not found: {value}") from e

    async def _load_session(self, db, session_id, user_id: Optional[str] = None) -> PrepareSession:
        session = await self.repository.get_session(db, self._parse_id(session_id, SessionNotFound))
        if session is None or (user_id is not None and session.user_id != user_id):
            raise SessionNotFound(f"Session not found: {session_id}")
        return session

    async def _load_question(self, db, session: PrepareSession, question_id: uuid.UUID) -> PrepareQuestion:
        question = await self.repository.get_question(db, question_id)
        if question is None:
            raise QuestionNotFound(f"Question not found: {question_id}")
        if question.session_id != session.id:
            raise InvalidStateTransition(f"Question {question_id} does not belong to session {session.id}")
        return question

    @staticmethod
    def _require_active(session: PrepareSession) -> None:
        if session.status != "active":
            raise InvalidStateTransition(f"Session {session.id} is {session.status}, not active")

    async def _require_unanswered(self, db, question: PrepareQuestion) -> None:
        if question.is_answered or await self.repository.get_response_for_question(db, question.id) is not None:
            raise InvalidStateTransition(f"Question {question.id} has already been answered")

    def _build_session(self, user_id: str, params: SessionParams) -> PrepareSession:
        if not user_id or not str(user_id).strip():
            raise ValidationError("user_id is required")

        job_position = (params.job_position or "").strip()
        if not job_position:
            raise ValidationError("job_position is required")
        if len(job_position) > 200:
            raise ValidationError("job_position must be at most 200 characters")

        stage = normalize_stage(params.interview_stage)
        if stage not in INTERVIEW_STAGES:
            raise ValidationError(f"interview_stage must be one of: {', '.join(INTERVIEW_STAGES)}")

        if params.experience_level not in EXPERIENCE_LEVELS:
            raise ValidationError(f"experience_level must be one of: {', '.join(EXPERIENCE_LEVELS)}")

        difficulty = params.difficulty or SESSION_CONFIG["default_difficulty"]
        if difficulty not in DIFFICULTY_LEVELS:
            raise ValidationError(f"difficulty must be one of: {', '.join(DIFFICULTY_LEVELS)}")

        language = (params.language or SESSION_CONFIG["default_language"]).strip().lower()
        if not 2 <= len(language) <= 10:
            raise ValidationError("language must be a 2-10 character language code")

        total = SESSION_CONFIG["default_total_questions"] if params.total_questions is None else params.total_questions
        if not SESSION_CONFIG["min_total_questions"] <= total <= SESSION_CONFIG["max_total_questions"]:
            raise ValidationError(
                f"total_questions must be between {SESSION_CONFIG['min_total_questions']} "
                f"and {SESSION_CONFIG['max_total_questions']}"
            )

        company = (params.company_name or "").strip() or None
        now = utcnow()

        return PrepareSession(
            id=uuid.uuid4(),
            user_id=str(user_id),
            session_name=params.session_name,
            job_position=job_position,
            company_name=company,
            interview_stage=stage,
            experience_level=params.experience_level,
            preferred_language=language,
            difficulty_level=difficulty,
            focus_areas=list(params.focus_areas or SESSION_CONFIG["default_focus_areas"]),
            question_categories=list(params.question_categories or SESSION_CONFIG["default_question_categories"]),
            total_questions=total,
            time_limit_minutes=params.time_limit_minutes or SESSION_CONFIG["default_time_limit_minutes"],
            status="active",
            current_question_index=1,
            questions_answered=0,
            session_progress=0.0,
            total_time_spent=0,
            voice_enabled=SESSION_CONFIG["default_voice_enabled"] if params.voice_enabled is None else params.voice_enabled,
            speech_rate=params.speech_rate or SESSION_CONFIG["default_speech_rate"],
            created_at=now,
            updated_at=now,
            started_at=now,
        )

    @staticmethod
    def _question_context(
        session: PrepareSession, answered: List[Tuple[PrepareQuestion, PrepareResponse]]
    ) -> QuestionContext:
        return QuestionContext(
            job_position=session.job_position,
            interview_stage=session.interview_stage,
            experience_level=session.experience_level,
            language=session.preferred_language,
            difficulty=session.difficulty_level,
            question_number=session.current_question_index,
            company_name=session.company_name,
            focus_areas=list(session.focus_areas or []),
            question_categories=list(session.question_categories or []),
            total_questions=session.total_questions,
            previous_questions=[question.question_text for question, _ in answered],
            previous_scores=[response.overall_score for _, response in answered],
            session_id=str(session.id),
            user_id=session.user_id,
        )

    @staticmethod
    def _build_question(session: PrepareSession, generated: GeneratedQuestion) -> PrepareQuestion:
        return PrepareQuestion(
            id=uuid.uuid4(),
            session_id=session.id,
            question_text=generated.question_text,
            question_text_translated=generated.question_text_translated,
            question_category=generated.question_category,
            question_type=generated.question_type,
            difficulty_level=generated.difficulty_level,
            expected_answer_time=generated.expected_answer_time,
            star_method_relevant=generated.star_method_relevant,
            cultural_context=generated.cultural_context,
            question_number=session.current_question_index,
            is_answered=False,
            time_spent=0,
            generated_by=generated.generated_by,
            generation_prompt=generated.generation_prompt,
            generation_timestamp=generated.generated_at,
        )

    @staticmethod
    def _build_response(
        session: PrepareSession,
        question: PrepareQuestion,
        response_text: str,
        input_mode: str,
        time_taken: int,
        audio_url: Optional[str],
        assessment: STARAssessment,
    ) -> PrepareResponse:
        return PrepareResponse(
            id=uuid.uuid4(),
            session_id=session.id,
            question_id=question.id,
            response_text=response_text.strip(),
            response_language=session.preferred_language,
            input_method=input_mode,
            audio_file_url=audio_url,
            star_scores=assessment.scores(),
            detailed_feedback=assessment.feedback(),
            situation_score=assessment.situation,
            task_score=assessment.task,
            action_score=assessment.action,
            result_score=assessment.result,
            flow_score=assessment.flow,
            overall_score=assessment.overall,
            evaluated_by=assessment.evaluated_by,
            evaluation_timestamp=utcnow(),
            evaluation_duration=assessment.evaluation_duration_ms,
            time_taken=time_taken,
            word_count=len(response_text.split()),
        )

    async def _advance(self, db, session: PrepareSession, time_taken: int) -> bool:
        """Update progress after a response; returns True when the session completes."""
        answered = await self.repository.list_answered(db, session.id)
        overall_scores = [response.overall_score for _, response in answered]

        session.questions_answered = len(answered)
        session.total_time_spent = (session.total_time_spent or 0) + time_taken
        session.average_star_score = round(mean(overall_scores), 2) if overall_scores else None
        session.session_progress = round(min(len(answered) / session.total_questions, 1.0) * 100, 2)

        if session.current_question_index + 1 > session.total_questions:
            # The index stays on the last question; completion marks the end
            session.status = "completed"
            session.completed_at = utcnow()
            return True

        session.current_question_index += 1
        return False

    async def _store_analytics(self, db, session: PrepareSession) -> PrepareAnalytics:
        answered = await self.repository.list_answered(db, session.id)
        items = [
            AnsweredItem(
                question_number=question.question_number,
                question_category=question.question_category,
                scores=dict(response.star_scores),
                strengths=list((response.detailed_feedback or {}).get("strengths", [])),
                improvements=list((response.detailed_feedback or {}).get("improvements", [])),
                recommendations=list((response.detailed_feedback or {}).get("recommendations", [])),
                input_method=response.input_method,
                evaluated_by=response.evaluated_by,
                word_count=response.word_count or 0,
                time_taken=response.time_taken or 0,
            )
            for question, response in answered
        ]
        summary = summarize_session(items, session.total_questions)

        analytics = PrepareAnalytics(
            id=uuid.uuid4(),
            session_id=session.id,
            user_id=session.user_id,
            overall_performance=summary.overall_performance,
            category_scores=summary.category_scores,
            improvement_over_time=summary.improvement_over_time,
            response_patterns=summary.response_patterns,
            strengths_identified=summary.strengths_identified,
            areas_for_improvement=summary.areas_for_improvement,
            personalized_recommendations=summary.personalized_recommendations,
            total_session_time=summary.total_session_time,
            average_response_time=summary.average_response_time,
            questions_answered=summary.questions_answered,
            questions_skipped=summary.questions_skipped,
        )
        await self.repository.replace_analytics(db, analytics)
        logger.info(f"📊 Session {session.id}: analytics computed over {summary.questions_answered} responses")
        return analytics
