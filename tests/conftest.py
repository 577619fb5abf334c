import pytest

from interview_prep.db.database import Database
from interview_prep.db.repository import SessionRepository
from interview_prep.db.schema_auditor import SchemaAuditor
from interview_prep.services.gateway import AIProviderGateway
from interview_prep.services.question_generator import QuestionGenerator
from interview_prep.services.response_evaluator import ResponseEvaluator
from interview_prep.services.session_orchestrator import SessionOrchestrator

from tests.fakes import RecordingSleep, RoutingGateway, ScriptedLLM


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def make_gateway(sleep):
    def factory(llm: ScriptedLLM, **kwargs) -> AIProviderGateway:
        return AIProviderGateway(llm_factory=lambda max_tokens: llm, sleep=sleep, **kwargs)
    return factory


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'prep.db'}"


@pytest.fixture
async def database(database_url):
    db = Database(database_url)
    await SchemaAuditor(db.engine).run()
    yield db
    await db.dispose()


@pytest.fixture
def repository(database):
    return SessionRepository(database.session_factory)


@pytest.fixture
def make_orchestrator(repository):
    def factory(gateway=None) -> SessionOrchestrator:
        gateway = gateway or RoutingGateway()
        return SessionOrchestrator(repository, QuestionGenerator(gateway), ResponseEvaluator(gateway))
    return factory
