import json
from typing import Any, List, Optional

from interview_prep.errors import ProviderUnavailable


# ============================================================================
# Provider Fakes
# ============================================================================

class ProviderHTTPError(Exception):
    """Mimics provider SDK errors that expose an HTTP status code."""

    def __init__(self, status_code: int, message: str = "provider error"):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code


class ScriptedLLM:
    """Stands in for crewai's LLM: each call consumes the next outcome."""

    def __init__(self, *outcomes: Any, default: Any = None):
        self.outcomes: List[Any] = list(outcomes)
        self.default = default
        self.calls: List[list] = []

    def call(self, messages):
        self.calls.append(messages)
        outcome = self.outcomes.pop(0) if self.outcomes else self.default
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class RecordingSleep:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeGateway:
    """Gateway double for generator/evaluator/orchestrator tests."""

    def __init__(self, *outcomes: Any, default: Any = None):
        self.outcomes: List[Any] = list(outcomes)
        self.default = default
        self.prompts: List[dict] = []

    async def send(self, prompt: str, system_instructions: Optional[str] = None, max_tokens: int = 1024) -> str:
        self.prompts.append({"prompt": prompt, "system": system_instructions, "max_tokens": max_tokens})
        outcome = self.outcomes.pop(0) if self.outcomes else self.default
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class UnavailableGateway(FakeGateway):
    def __init__(self):
        super().__init__(default=ProviderUnavailable("provider down"))


def question_json(category: str = "leadership", text: str = "Tell me about a time you led a turnaround.", **extra) -> str:
    payload = {
        "questionText": text,
        "questionCategory": category,
        "questionType": "behavioral",
        "difficultyLevel": "intermediate",
        "expectedAnswerTime": 180,
        "culturalContext": "Be concise.",
        "starMethodRelevant": True,
    }
    payload.update(extra)
    return json.dumps(payload)


def assessment_json(**scores) -> str:
    values = {"situation": 4.2, "task": 3.8, "action": 4.0, "result": 4.5, "flow": 4.1, "overall": 4.1}
    values.update(scores)
    return json.dumps({
        "scores": {k: v for k, v in values.items() if v is not None},
        "qualitative": "Strong, well structured answer.",
        "strengths": ["Specific example", "Clear result"],
        "improvements": ["More detail on actions"],
        "recommendations": ["Quantify outcomes"],
    })


class RoutingGateway(FakeGateway):
    """Answers question prompts and evaluation prompts differently."""

    def __init__(self, question: Any = None, assessment: Any = None):
        super().__init__()
        self.question = question if question is not None else question_json()
        self.assessment = assessment if assessment is not None else assessment_json()

    async def send(self, prompt: str, system_instructions: Optional[str] = None, max_tokens: int = 1024) -> str:
        self.prompts.append({"prompt": prompt, "system": system_instructions, "max_tokens": max_tokens})
        outcome = self.assessment if "STAR method evaluation" in (system_instructions or "") else self.question
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

