# Session Repository
"""
Persistence operations for sessions, questions, responses and analytics.

Every orchestrator operation runs inside one ``unit_of_work``: the work
is committed when the block exits cleanly and rolled back otherwise.
SQLAlchemy failures surface as ``PersistenceError`` and are not retried
here.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from interview_prep.db.models import PrepareAnalytics, PrepareQuestion, PrepareResponse, PrepareSession
from interview_prep.errors import PersistenceError

logger = logging.getLogger(__name__)


class SessionRepository:
    """Data access for the prepare tables."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as db:
            try:
                yield db
                await db.commit()
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"❌ Database operation failed: {e}")
                raise PersistenceError(f"Database operation failed: {e.__class__.__name__}") from e
            except Exception:
                await db.rollback()
                raise

    async def add(self, db: AsyncSession, row):
        db.add(row)
        await db.flush()
        return row

    # ------------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------------

    async def get_session(self, db: AsyncSession, session_id: uuid.UUID) -> Optional[PrepareSession]:
        return await db.get(PrepareSession, session_id)

    async def list_sessions(
        self, db: AsyncSession, user_id: str, limit: int, offset: int
    ) -> List[PrepareSession]:
        result = await db.execute(
            select(PrepareSession)
            .where(PrepareSession.user_id == user_id)
            .order_by(PrepareSession.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def delete_session(self, db: AsyncSession, session_id: uuid.UUID) -> None:
        """Delete a session and everything it owns."""
        await db.execute(delete(PrepareAnalytics).where(PrepareAnalytics.session_id == session_id))
        await db.execute(delete(PrepareResponse).where(PrepareResponse.session_id == session_id))
        await db.execute(delete(PrepareQuestion).where(PrepareQuestion.session_id == session_id))
        await db.execute(delete(PrepareSession).where(PrepareSession.id == session_id))

    # ------------------------------------------------------------------------
    # Questions
    # ------------------------------------------------------------------------

    async def get_question(self, db: AsyncSession, question_id: uuid.UUID) -> Optional[PrepareQuestion]:
        return await db.get(PrepareQuestion, question_id)

    async def list_questions(self, db: AsyncSession, session_id: uuid.UUID) -> List[PrepareQuestion]:
        result = await db.execute(
            select(PrepareQuestion)
            .where(PrepareQuestion.session_id == session_id)
            .order_by(PrepareQuestion.question_number)
        )
        return list(result.scalars().all())

    async def get_unanswered_question(self, db: AsyncSession, session_id: uuid.UUID) -> Optional[PrepareQuestion]:
        result = await db.execute(
            select(PrepareQuestion)
            .where(PrepareQuestion.session_id == session_id, PrepareQuestion.is_answered.is_(False))
            .order_by(PrepareQuestion.question_number)
            .limit(1)
        )
        return result.scalars().first()

    # ------------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------------

    async def get_response_for_question(self, db: AsyncSession, question_id: uuid.UUID) -> Optional[PrepareResponse]:
        result = await db.execute(select(PrepareResponse).where(PrepareResponse.question_id == question_id))
        return result.scalars().first()

    async def count_responses(self, db: AsyncSession, session_id: uuid.UUID) -> int:
        result = await db.execute(
            select(func.count(PrepareResponse.id)).where(PrepareResponse.session_id == session_id)
        )
        return int(result.scalar_one())

    async def list_answered(
        self, db: AsyncSession, session_id: uuid.UUID
    ) -> List[Tuple[PrepareQuestion, PrepareResponse]]:
        """Answered questions with their responses, in question order."""
        result = await db.execute(
            select(PrepareQuestion, PrepareResponse)
            .join(PrepareResponse, PrepareResponse.question_id == PrepareQuestion.id)
            .where(PrepareQuestion.session_id == session_id)
            .order_by(PrepareQuestion.question_number)
        )
        return [(question, response) for question, response in result.all()]

    # ------------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------------

    async def get_analytics(self, db: AsyncSession, session_id: uuid.UUID) -> Optional[PrepareAnalytics]:
        result = await db.execute(select(PrepareAnalytics).where(PrepareAnalytics.session_id == session_id))
        return result.scalars().first()

    async def replace_analytics(self, db: AsyncSession, analytics: PrepareAnalytics) -> PrepareAnalytics:
        """Analytics are recomputed, never patched: drop any previous row first."""
        await db.execute(delete(PrepareAnalytics).where(PrepareAnalytics.session_id == analytics.session_id))
        return await self.add(db, analytics)
