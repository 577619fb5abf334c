# Interview Prep Persistence
"""
SQLAlchemy models, async engine setup, repository and schema auditor.
"""

from .models import Base, PrepareSession, PrepareQuestion, PrepareResponse, PrepareAnalytics
from .database import Database
from .repository import SessionRepository
from .schema_auditor import SchemaAuditor, AuditReport

__all__ = [
    "Base",
    "PrepareSession",
    "PrepareQuestion",
    "PrepareResponse",
    "PrepareAnalytics",
    "Database",
    "SessionRepository",
    "SchemaAuditor",
    "AuditReport",
]
