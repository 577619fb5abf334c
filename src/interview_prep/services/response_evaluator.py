# Response Evaluator
"""
Scores a candidate response with the STAR method.

The model is asked for situation/task/action/result/flow subscores (1-5)
plus qualitative feedback. Parsing is partial-success: every missing or
non-numeric score defaults to the neutral midpoint instead of failing the
whole evaluation. When the provider is unavailable the evaluator returns
a fallback assessment so that session progress is never blocked.
"""

import logging
import math
import re
import time
from dataclasses import dataclass, field
from statistics import mean
from typing import Any, Dict, List, Optional

from interview_prep.config import EVALUATION_CONFIG
from interview_prep.errors import EvaluationParseError, OutputParseError, ProviderError
from interview_prep.parsing import extract_json_object
from interview_prep.services.gateway import AIProviderGateway
from interview_prep.services.question_generator import LANGUAGE_NAMES
from interview_prep.services.tracing import traced_step

logger = logging.getLogger(__name__)

STAR_COMPONENTS = ("situation", "task", "action", "result")
SCORE_FIELDS = STAR_COMPONENTS + ("flow",)


# ============================================================================
# Data Models
# ============================================================================

@dataclass
class EvaluationContext:
    """Question-side context for one evaluation."""
    question_text: str
    interview_stage: str
    question_category: str = "general"
    job_position: str = ""
    language: str = "en"
    session_id: Optional[str] = None
    user_id: Optional[str] = None


@dataclass
class STARAssessment:
    """STAR scores and qualitative feedback for one response."""
    situation: float
    task: float
    action: float
    result: float
    flow: float
    overall: float
    qualitative: str
    strengths: List[str] = field(default_factory=list)
    improvements: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    evaluated_by: str = "ai"
    evaluation_duration_ms: int = 0

    def scores(self) -> Dict[str, float]:
        return {
            "situation": self.situation,
            "task": self.task,
            "action": self.action,
            "result": self.result,
            "flow": self.flow,
            "overall": self.overall,
        }

    def feedback(self) -> Dict[str, Any]:
        return {
            "qualitative": self.qualitative,
            "strengths": list(self.strengths),
            "improvements": list(self.improvements),
            "recommendations": list(self.recommendations),
        }


def clamp_score(value: float) -> float:
    """Clamp to the 1-5 scale, rounded to two decimals."""
    low = EVALUATION_CONFIG["min_score"]
    high = EVALUATION_CONFIG["max_score"]
    return round(min(max(float(value), low), high), 2)


def fixed_fallback_assessment() -> STARAssessment:
    """Assessment used when the provider could not be reached at all."""
    return STARAssessment(
        situation=4.0,
        task=4.0,
        action=3.8,
        result=4.2,
        flow=4.0,
        overall=4.0,
        qualitative=(
            "The candidate demonstrated good communication skills and provided relevant "
            "examples. There are opportunities to provide more specific detail about "
            "actions taken in challenging situations."
        ),
        strengths=[
            "Clear and confident communication",
            "Relevant examples provided",
            "Professional demeanour maintained",
            "Good understanding of role requirements",
        ],
        improvements=[
            "Could provide more specific detail about actions taken",
            "Consider using more quantified results",
        ],
        recommendations=[
            "Practice structuring responses using the STAR method",
            "Prepare detailed examples of complex problem-solving situations",
        ],
        evaluated_by="fallback",
    )


# ============================================================================
# Heuristic Scoring
# ============================================================================

STAR_KEYWORDS = {
    "situation": ("situation", "when", "context", "background", "at the time"),
    "task": ("task", "responsible", "goal", "objective", "needed to", "had to"),
    "action": ("action", "i did", "implemented", "decided", "i led", "i built", "i organised", "i organized"),
    "result": ("result", "outcome", "achieved", "delivered", "increased", "reduced", "improved"),
}

COMPONENT_LABELS = {
    "situation": "setting the context",
    "task": "explaining your responsibility",
    "action": "describing the steps you took",
    "result": "stating the outcome",
}

_QUANTIFIED = re.compile(r"\d+\s*%|\$\s*\d|\d+")


def heuristic_assessment(response_text: str) -> STARAssessment:
    """
    Keyword-based STAR scoring.

    A detected component scores 4 and a missing one scores 2. Quantified
    results (numbers, percentages, money) lift the result score to 5.
    """
    text = response_text.lower()
    word_count = len(response_text.split())

    present = {
        component: any(keyword in text for keyword in keywords)
        for component, keywords in STAR_KEYWORDS.items()
    }
    scores = {component: 4.0 if found else 2.0 for component, found in present.items()}
    if present["result"] and _QUANTIFIED.search(text):
        scores["result"] = 5.0

    if word_count < 30:
        flow = 2.0
    elif word_count <= 400:
        flow = 4.0
    else:
        flow = 3.0

    strengths = [f"Good job {COMPONENT_LABELS[c]}" for c in STAR_COMPONENTS if present[c]]
    improvements = [f"Spend more time {COMPONENT_LABELS[c]}" for c in STAR_COMPONENTS if not present[c]]
    if word_count < 30:
        improvements.append("Give a fuller answer with a concrete example")
    if not _QUANTIFIED.search(text):
        improvements.append("Quantify the impact of your work where possible")

    found = sum(present.values())
    return STARAssessment(
        situation=scores["situation"],
        task=scores["task"],
        action=scores["action"],
        result=scores["result"],
        flow=flow,
        overall=round(mean(scores[c] for c in STAR_COMPONENTS), 2),
        qualitative=(
            f"The response covers {found} of the 4 STAR components "
            f"across {word_count} words."
        ),
        strengths=strengths[: EVALUATION_CONFIG["max_strengths"]],
        improvements=improvements[: EVALUATION_CONFIG["max_improvements"]],
        recommendations=["Practice structuring responses using the STAR method"],
        evaluated_by="fallback",
    )


# ============================================================================
# Response Evaluator
# ============================================================================

class ResponseEvaluator:
    """
    Builds STAR scoring prompts and normalizes model output.

    Overall score rule: the model's ``overall`` is trusted when present,
    otherwise it is the mean of situation/task/action/result (flow is not
    included).
    """

    def __init__(
        self,
        gateway: AIProviderGateway,
        max_tokens: int = EVALUATION_CONFIG["max_tokens"],
        fallback_mode: str = EVALUATION_CONFIG["fallback_mode"],
    ):
        self.gateway = gateway
        self.max_tokens = max_tokens
        self.fallback_mode = fallback_mode

    async def evaluate(self, response_text: str, context: EvaluationContext) -> STARAssessment:
        """
        Evaluate one response.

        Args:
            response_text: The candidate's answer
            context: Question and stage the answer belongs to

        Returns:
            STARAssessment with every subscore in [1, 5]
        """
        started = time.monotonic()
        system_prompt = self.build_system_prompt(context)
        prompt = (
            f"Interview question: {context.question_text}\n\n"
            f"Candidate's response: {response_text}\n\n"
            "Please assess this response using the STAR method framework."
        )

        with traced_step("evaluate_response", "Evaluate Response", context.session_id, context.user_id) as span:
            try:
                raw = await self.gateway.send(prompt, system_prompt, self.max_tokens)
            except ProviderError as e:
                logger.warning(f"⚠️ Evaluation provider failed, using {self.fallback_mode} fallback ({e})")
                assessment = self.fallback(response_text)
            else:
                try:
                    assessment = self.parse_assessment(raw)
                except EvaluationParseError as e:
                    logger.warning(f"⚠️ Unusable evaluation output, scoring neutral ({e})")
                    assessment = self.parse_scores({})
                    assessment.evaluated_by = "fallback"

            span.update(
                input={"question": context.question_text, "response": response_text},
                output={"scores": assessment.scores(), "evaluated_by": assessment.evaluated_by})

        assessment.evaluation_duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            f"📊 Evaluation ({assessment.evaluated_by}): overall {assessment.overall} "
            f"in {assessment.evaluation_duration_ms}ms"
        )
        return assessment

    def fallback(self, response_text: str) -> STARAssessment:
        if self.fallback_mode == "heuristic":
            return heuristic_assessment(response_text)
        return fixed_fallback_assessment()

    @staticmethod
    def build_system_prompt(context: EvaluationContext) -> str:
        role = f" for a {context.job_position} position" if context.job_position else ""
        language_name = LANGUAGE_NAMES.get(context.language, context.language)
        return f"""You are an expert interview assessor using the STAR method evaluation framework. Assess this {context.interview_stage} interview response{role}.
The question targets the candidate's {context.question_category} competency; weigh the evidence they give for it.
Write the qualitative summary, strengths, improvements and recommendations in {language_name}. Keep the JSON keys in English.

Evaluate the candidate's response across these dimensions (score 1-5 for each, decimals allowed):
1. Situation: How well did they set context and describe the scenario?
2. Task: How clearly did they explain their responsibilities and objectives?
3. Action: How specifically did they describe the steps they took?
4. Result: How well did they quantify outcomes and impact?
5. Flow: How coherent and structured was their narrative?

Provide:
- Numerical scores (1-5) for each STAR component and flow
- Overall score
- Qualitative summary (2-3 sentences)
- 3-4 key strengths
- 2-3 areas for improvement
- 2-3 specific recommendations

Respond in JSON format only:
{{
  "scores": {{"situation": 4.2, "task": 3.8, "action": 4.0, "result": 4.5, "flow": 4.1, "overall": 4.1}},
  "qualitative": "Strong response with excellent quantification of results...",
  "strengths": ["Excellent use of specific examples", "Clear quantification of results"],
  "improvements": ["Could provide more detail about specific actions taken"],
  "recommendations": ["Prepare more detailed examples of complex problem-solving situations"]
}}"""

    # ------------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------------

    def parse_assessment(self, raw: str) -> STARAssessment:
        """Parse model output, raising EvaluationParseError if no JSON is found."""
        try:
            payload = extract_json_object(raw)
        except OutputParseError as e:
            raise EvaluationParseError(str(e)) from e
        return self.parse_scores(payload)

    def parse_scores(self, payload: Dict[str, Any]) -> STARAssessment:
        """Normalize a decoded payload field by field."""
        scores = payload.get("scores")
        if not isinstance(scores, dict):
            # Some models return the scores at the top level
            scores = payload

        default = EVALUATION_CONFIG["default_score"]
        values = {name: self._score(scores.get(name), default) for name in SCORE_FIELDS}

        model_overall = self._number(scores.get("overall"))
        if model_overall is not None:
            overall = clamp_score(model_overall)
        else:
            overall = clamp_score(mean(values[c] for c in STAR_COMPONENTS))

        qualitative = payload.get("qualitative")
        if not isinstance(qualitative, str) or not qualitative.strip():
            qualitative = "The candidate answered the question; no detailed feedback was available."

        return STARAssessment(
            situation=values["situation"],
            task=values["task"],
            action=values["action"],
            result=values["result"],
            flow=values["flow"],
            overall=overall,
            qualitative=qualitative.strip(),
            strengths=self._string_list(payload.get("strengths"), EVALUATION_CONFIG["max_strengths"]),
            improvements=self._string_list(payload.get("improvements"), EVALUATION_CONFIG["max_improvements"]),
            recommendations=self._string_list(payload.get("recommendations"), EVALUATION_CONFIG["max_recommendations"]),
            evaluated_by="ai",
        )

    @staticmethod
    def _number(value: Any) -> Optional[float]:
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str):
            try:
                number = float(value.strip())
            except ValueError:
                return None
        else:
            return None
        return number if math.isfinite(number) else None

    def _score(self, value: Any, default: float) -> float:
        number = self._number(value)
        return clamp_score(default if number is None else number)

    @staticmethod
    def _string_list(value: Any, limit: int) -> List[str]:
        if not isinstance(value, list):
            return []
        items = [str(item).strip() for item in value if isinstance(item, (str, int, float)) and str(item).strip()]
        return items[:limit]
