# Session Analytics
"""
Aggregates a completed session's responses into SessionAnalytics.

Analytics are always recomputed from the full set of responses; they are
never patched incrementally.
"""

from collections import Counter
from dataclasses import dataclass, field
from statistics import mean
from typing import Any, Dict, List, Sequence

from interview_prep.services.response_evaluator import COMPONENT_LABELS

SCORE_KEYS = ("situation", "task", "action", "result", "flow", "overall")

STRONG_THRESHOLD = 4.0
WEAK_THRESHOLD = 3.0
TOP_ITEMS = 5

NEXT_STEPS = {
    "situation": "Open each answer with a short, concrete description of the situation",
    "task": "State your own responsibility clearly before describing what you did",
    "action": "Describe the specific steps you personally took, using 'I' rather than 'we'",
    "result": "Finish with a measurable outcome and what you learned",
    "flow": "Practise telling each story in a clear Situation-Task-Action-Result order",
}


@dataclass
class AnsweredItem:
    """One answered question as seen by the aggregator."""
    question_number: int
    question_category: str
    scores: Dict[str, float]
    strengths: List[str] = field(default_factory=list)
    improvements: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    input_method: str = "text"
    evaluated_by: str = "ai"
    word_count: int = 0
    time_taken: int = 0


@dataclass
class SessionAnalyticsSummary:
    overall_performance: Dict[str, Any]
    category_scores: Dict[str, float]
    improvement_over_time: List[Dict[str, Any]]
    response_patterns: Dict[str, Any]
    strengths_identified: List[str]
    areas_for_improvement: List[str]
    personalized_recommendations: List[str]
    total_session_time: int
    average_response_time: float
    questions_answered: int
    questions_skipped: int


def _most_common(groups: Sequence[List[str]]) -> List[str]:
    counts = Counter(item for group in groups for item in group)
    return [item for item, _ in counts.most_common(TOP_ITEMS)]


def summarize_session(items: Sequence[AnsweredItem], total_questions: int) -> SessionAnalyticsSummary:
    """
    Build the analytics summary for a session.

    Args:
        items: Answered questions, in question order
        total_questions: Questions planned for the session

    Returns:
        SessionAnalyticsSummary with averages, patterns and recommendations
    """
    answered = len(items)

    averages = {
        key: round(mean(item.scores[key] for item in items), 2) if items else 0.0
        for key in SCORE_KEYS
    }
    overall_performance: Dict[str, Any] = dict(averages)
    overall_performance["response_count"] = answered

    by_category: Dict[str, List[float]] = {}
    for item in items:
        by_category.setdefault(item.question_category, []).append(item.scores["overall"])
    category_scores = {category: round(mean(values), 2) for category, values in by_category.items()}

    improvement_over_time = [
        {"question_number": item.question_number, "overall": item.scores["overall"]}
        for item in items
    ]

    response_patterns = {
        "average_word_count": round(mean(item.word_count for item in items), 1) if items else 0.0,
        "input_methods": dict(Counter(item.input_method for item in items)),
        "evaluation_sources": dict(Counter(item.evaluated_by for item in items)),
    }

    components = ("situation", "task", "action", "result")
    strong = [
        f"Consistently strong at {COMPONENT_LABELS[c]}"
        for c in components
        if items and averages[c] >= STRONG_THRESHOLD
    ]
    weak = [c for c in components + ("flow",) if items and averages[c] < WEAK_THRESHOLD]
    weak_labels = [
        f"Needs work on {COMPONENT_LABELS[c]}" if c in COMPONENT_LABELS else "Needs work on answer structure"
        for c in weak
    ]

    recommendations = _most_common([item.recommendations for item in items])
    if not recommendations:
        recommendations = [NEXT_STEPS[c] for c in weak]

    total_time = sum(item.time_taken for item in items)

    return SessionAnalyticsSummary(
        overall_performance=overall_performance,
        category_scores=category_scores,
        improvement_over_time=improvement_over_time,
        response_patterns=response_patterns,
        strengths_identified=strong + _most_common([item.strengths for item in items]),
        areas_for_improvement=weak_labels + _most_common([item.improvements for item in items]),
        personalized_recommendations=recommendations,
        total_session_time=total_time,
        average_response_time=round(total_time / answered, 2) if answered else 0.0,
        questions_answered=answered,
        questions_skipped=max(total_questions - answered, 0),
    )
