# Schema Auditor
"""
Idempotent startup reconciliation of the persisted schema.

For every expected table the auditor creates it if it is absent, renames
legacy camelCase columns to their snake_case names, and adds columns the
models declare but the table lacks. Every step runs in its own
transaction; a failing step is logged and recorded and the audit moves
on. Running the audit against a current schema changes nothing.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import JSON, Column, Float, Integer, MetaData, Table, Text, inspect, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from interview_prep.db.models import Base

logger = logging.getLogger(__name__)


# ============================================================================
# Expected Schema
# ============================================================================

_COMMON_RENAMES = [
    ("sessionId", "session_id"),
    ("userId", "user_id"),
    ("createdAt", "created_at"),
    ("updatedAt", "updated_at"),
]

LEGACY_COLUMN_RENAMES: Dict[str, List[Tuple[str, str]]] = {
    "ai_prepare_sessions": _COMMON_RENAMES + [
        ("sessionName", "session_name"),
        ("jobPosition", "job_position"),
        ("companyName", "company_name"),
        ("interviewStage", "interview_stage"),
        ("experienceLevel", "experience_level"),
        ("preferredLanguage", "preferred_language"),
        ("difficultyLevel", "difficulty_level"),
        ("focusAreas", "focus_areas"),
        ("questionCategories", "question_categories"),
        ("totalQuestions", "total_questions"),
        ("currentQuestionIndex", "current_question_index"),
        ("questionsAnswered", "questions_answered"),
        ("sessionProgress", "session_progress"),
        ("averageStarScore", "average_star_score"),
        ("totalTimeSpent", "total_time_spent"),
        ("startedAt", "started_at"),
        ("pausedAt", "paused_at"),
        ("completedAt", "completed_at"),
    ],
    "ai_prepare_questions": _COMMON_RENAMES + [
        ("questionText", "question_text"),
        ("questionTextTranslated", "question_text_translated"),
        ("questionCategory", "question_category"),
        ("questionType", "question_type"),
        ("questionNumber", "question_number"),
        ("isAnswered", "is_answered"),
        ("generatedBy", "generated_by"),
    ],
    "ai_prepare_responses": _COMMON_RENAMES + [
        ("questionId", "question_id"),
        ("responseText", "response_text"),
        ("inputMethod", "input_method"),
        ("audioFileUrl", "audio_file_url"),
        ("starScores", "star_scores"),
        ("detailedFeedback", "detailed_feedback"),
        ("evaluatedBy", "evaluated_by"),
        ("timeTaken", "time_taken"),
        ("wordCount", "word_count"),
    ],
    "ai_prepare_analytics": _COMMON_RENAMES + [
        ("overallPerformance", "overall_performance"),
        ("questionsAnswered", "questions_answered"),
    ],
    "interview_sessions": [
        ("userId", "user_id"),
        ("scenarioId", "scenario_id"),
        ("userJobPosition", "user_job_position"),
        ("userCompanyName", "user_company_name"),
        ("interviewLanguage", "interview_language"),
        ("currentQuestion", "current_question"),
        ("totalQuestions", "total_questions"),
        ("overallScore", "overall_score"),
        ("situationScore", "situation_score"),
        ("taskScore", "task_score"),
        ("actionScore", "action_score"),
        ("resultScore", "result_score"),
        ("flowScore", "flow_score"),
        ("createdAt", "created_at"),
        ("updatedAt", "updated_at"),
        ("completedAt", "completed_at"),
        ("autoSavedAt", "auto_saved_at"),
        ("startedAt", "started_at"),
        ("lastActivityAt", "last_activity_at"),
    ],
}

# Tables owned by other modules: reconciled only when they already exist
legacy_metadata = MetaData()

Table(
    "interview_sessions",
    legacy_metadata,
    Column("duration", Integer),
    Column("situation_score", Float),
    Column("task_score", Float),
    Column("action_score", Float),
    Column("result_score", Float),
    Column("flow_score", Float),
    Column("qualitative_feedback", Text),
    Column("strengths", JSON),
    Column("improvements", JSON),
    Column("recommendations", JSON),
    Column("transcript", JSON),
)


@dataclass
class TableAudit:
    table: Table
    create_if_missing: bool
    renames: List[Tuple[str, str]] = field(default_factory=list)


def default_plan() -> List[TableAudit]:
    plan = [
        TableAudit(table, True, LEGACY_COLUMN_RENAMES.get(table.name, []))
        for table in Base.metadata.sorted_tables
    ]
    plan.extend(
        TableAudit(table, False, LEGACY_COLUMN_RENAMES.get(table.name, []))
        for table in legacy_metadata.sorted_tables
    )
    return plan


@dataclass
class AuditReport:
    """Actions taken by one audit run."""
    tables_created: List[str] = field(default_factory=list)
    columns_renamed: List[str] = field(default_factory=list)
    columns_added: List[str] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.tables_created or self.columns_renamed or self.columns_added)


# ============================================================================
# Schema Auditor
# ============================================================================

class SchemaAuditor:
    """
    Reconciles the live schema with the expected one.

    Usage:
        report = await SchemaAuditor(database.engine).run()
    """

    def __init__(self, engine: AsyncEngine, plan: Optional[Sequence[TableAudit]] = None):
        self.engine = engine
        self.plan = list(plan) if plan is not None else default_plan()

    async def run(self) -> AuditReport:
        report = AuditReport()
        logger.info("🔎 Auditing database schema...")

        for audit in self.plan:
            name = audit.table.name

            exists = await self._step(report, f"inspect {name}", lambda conn: self._has_table(conn, name))
            if not exists:
                if not audit.create_if_missing:
                    continue
                created = await self._step(report, f"create {name}", lambda conn: self._create_table(conn, audit.table))
                if created:
                    report.tables_created.append(name)
                    logger.info(f"🆕 Created table {name}")
                continue

            for source, target in audit.renames:
                renamed = await self._step(
                    report,
                    f"rename {name}.{source}",
                    lambda conn: self._rename_column(conn, name, source, target),
                )
                if renamed:
                    report.columns_renamed.append(f"{name}.{source}->{target}")
                    logger.info(f"✏️ Renamed column {name}.{source} -> {target}")

            for column in audit.table.columns:
                added = await self._step(
                    report,
                    f"add {name}.{column.name}",
                    lambda conn: self._add_column(conn, name, column),
                )
                if added:
                    report.columns_added.append(f"{name}.{column.name}")
                    logger.info(f"➕ Added column {name}.{column.name}")

        if report.changed:
            logger.info(
                f"✅ Schema audit complete: {len(report.tables_created)} tables created, "
                f"{len(report.columns_renamed)} columns renamed, {len(report.columns_added)} columns added"
            )
        else:
            logger.info("✅ Schema audit complete: schema already current")
        return report

    async def _step(self, report: AuditReport, label: str, action: Callable[[Connection], bool]) -> bool:
        try:
            async with self.engine.begin() as conn:
                return await conn.run_sync(action)
        except SQLAlchemyError as e:
            logger.error(f"❌ Schema audit step failed ({label}): {e}")
            report.failures.append(label)
            return False

    # ------------------------------------------------------------------------
    # Synchronous steps (run inside run_sync)
    # ------------------------------------------------------------------------

    @staticmethod
    def _has_table(conn: Connection, table_name: str) -> bool:
        return inspect(conn).has_table(table_name)

    @staticmethod
    def _column_names(conn: Connection, table_name: str) -> set:
        return {column["name"] for column in inspect(conn).get_columns(table_name)}

    @staticmethod
    def _create_table(conn: Connection, table: Table) -> bool:
        table.create(conn, checkfirst=True)
        return True

    def _rename_column(self, conn: Connection, table_name: str, source: str, target: str) -> bool:
        columns = self._column_names(conn, table_name)
        if target in columns or source not in columns:
            return False

        quote = conn.dialect.identifier_preparer.quote
        conn.execute(text(
            f"ALTER TABLE {quote(table_name)} RENAME COLUMN {quote(source)} TO {quote(target)}"
        ))
        return True

    def _add_column(self, conn: Connection, table_name: str, column: Column) -> bool:
        if column.name in self._column_names(conn, table_name):
            return False

        # Added columns are nullable: existing rows have no value for them
        quote = conn.dialect.identifier_preparer.quote
        column_type = column.type.compile(dialect=conn.dialect)
        conn.execute(text(
            f"ALTER TABLE {quote(table_name)} ADD COLUMN {quote(column.name)} {column_type}"
        ))
        return True
