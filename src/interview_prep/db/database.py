# Database Engine
"""
Async engine and session factory.

The application owns one ``Database`` instance (created in the FastAPI
lifespan); tests create their own against a temporary SQLite file.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from interview_prep.config import DATABASE_CONFIG

logger = logging.getLogger(__name__)


class Database:
    """Holds the async engine and hands out sessions."""

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None):
        self.url = url or DATABASE_CONFIG["url"]
        self.engine: AsyncEngine = create_async_engine(
            self.url,
            echo=DATABASE_CONFIG["echo"] if echo is None else echo,
            future=True,
        )
        self.session_factory = sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info(f"Database engine created ({self.engine.url.render_as_string(hide_password=True)})")

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database connections closed")
