import json

import pytest

from interview_prep.services.response_evaluator import (
    EvaluationContext,
    ResponseEvaluator,
    fixed_fallback_assessment,
    heuristic_assessment,
)

from tests.fakes import FakeGateway, UnavailableGateway, assessment_json

CONTEXT = EvaluationContext(
    question_text="Tell me about a time you led a team.",
    interview_stage="hiring-manager",
    question_category="leadership",
    job_position="Business Manager",
)

ANSWER = "When our release slipped I was responsible for recovery. I led daily stand-ups and we shipped 2 weeks early."


def _scores(assessment):
    return [assessment.situation, assessment.task, assessment.action, assessment.result, assessment.flow, assessment.overall]


async def test_full_assessment_is_used_as_is():
    evaluator = ResponseEvaluator(FakeGateway("Assessment follows.\n" + assessment_json()))

    assessment = await evaluator.evaluate(ANSWER, CONTEXT)

    assert assessment.evaluated_by == "ai"
    assert _scores(assessment) == [4.2, 3.8, 4.0, 4.5, 4.1, 4.1]
    assert assessment.strengths == ["Specific example", "Clear result"]
    assert assessment.evaluation_duration_ms >= 0


async def test_missing_fields_default_to_midpoint():
    evaluator = ResponseEvaluator(FakeGateway(assessment_json(task=None, flow=None)))

    assessment = await evaluator.evaluate(ANSWER, CONTEXT)

    assert assessment.task == 3.0
    assert assessment.flow == 3.0
    assert assessment.overall == 4.1


async def test_overall_is_mean_of_star_components_when_absent():
    raw = assessment_json(situation=4.0, task=3.0, action=5.0, result=2.0, flow=1.0, overall=None)
    evaluator = ResponseEvaluator(FakeGateway(raw))

    assessment = await evaluator.evaluate(ANSWER, CONTEXT)

    # flow is not part of the mean
    assert assessment.overall == 3.5


async def test_model_overall_is_trusted_when_present():
    raw = assessment_json(situation=2.0, task=2.0, action=2.0, result=2.0, overall=4.7)
    assessment = await ResponseEvaluator(FakeGateway(raw)).evaluate(ANSWER, CONTEXT)
    assert assessment.overall == 4.7


async def test_scores_are_clamped_and_coerced():
    raw = json.dumps({"scores": {"situation": 7, "task": 0, "action": "4.5", "result": "great", "flow": True}})
    assessment = await ResponseEvaluator(FakeGateway(raw)).evaluate(ANSWER, CONTEXT)

    assert assessment.situation == 5.0
    assert assessment.task == 1.0
    assert assessment.action == 4.5
    assert assessment.result == 3.0
    assert assessment.flow == 3.0


async def test_non_finite_scores_use_default():
    raw = '{"scores": {"situation": NaN, "task": Infinity}}'
    assessment = await ResponseEvaluator(FakeGateway(raw)).evaluate(ANSWER, CONTEXT)

    assert assessment.situation == 3.0
    assert assessment.task == 3.0


async def test_unusable_output_scores_neutral():
    evaluator = ResponseEvaluator(FakeGateway("Sorry, I cannot evaluate that."))

    assessment = await evaluator.evaluate(ANSWER, CONTEXT)

    assert assessment.evaluated_by == "fallback"
    assert _scores(assessment) == [3.0] * 6


async def test_scores_at_top_level_are_accepted():
    raw = json.dumps({"situation": 4, "task": 4, "action": 4, "result": 4, "flow": 4})
    assessment = await ResponseEvaluator(FakeGateway(raw)).evaluate(ANSWER, CONTEXT)
    assert _scores(assessment) == [4.0] * 6


async def test_feedback_lists_are_truncated():
    raw = json.dumps({
        "scores": {},
        "strengths": ["a", "b", "c", "d", "e"],
        "improvements": ["a", "b", "c", "d"],
        "recommendations": ["a", "", "b", "c", "d"],
    })
    assessment = await ResponseEvaluator(FakeGateway(raw)).evaluate(ANSWER, CONTEXT)

    assert len(assessment.strengths) == 4
    assert len(assessment.improvements) == 3
    assert assessment.recommendations == ["a", "b", "c"]


async def test_provider_failure_returns_fixed_fallback():
    evaluator = ResponseEvaluator(UnavailableGateway())

    assessment = await evaluator.evaluate(ANSWER, CONTEXT)

    expected = fixed_fallback_assessment()
    assert assessment.evaluated_by == "fallback"
    assert _scores(assessment) == [4.0, 4.0, 3.8, 4.2, 4.0, 4.0]
    assert assessment.strengths == expected.strengths


async def test_heuristic_fallback_mode():
    evaluator = ResponseEvaluator(UnavailableGateway(), fallback_mode="heuristic")

    assessment = await evaluator.evaluate("I did some things.", CONTEXT)

    assert assessment.evaluated_by == "fallback"
    assert assessment.flow == 2.0
    assert all(1.0 <= score <= 5.0 for score in _scores(assessment))


def test_heuristic_detects_star_components():
    answer = (
        "When our biggest client threatened to leave, the situation was tense. "
        "I was responsible for keeping the account and my goal was renewal. "
        "I implemented weekly reviews and I led a recovery plan with the delivery team. "
        "As a result we achieved a 20% increase in satisfaction and renewed for three years."
    )
    assessment = heuristic_assessment(answer)

    assert assessment.situation == 4.0
    assert assessment.task == 4.0
    assert assessment.action == 4.0
    assert assessment.result == 5.0
    assert assessment.flow == 4.0
    assert assessment.overall == 4.25


def test_heuristic_flags_missing_components():
    assessment = heuristic_assessment("I like working with people and learning new skills every day.")

    assert assessment.situation == 2.0
    assert assessment.result == 2.0
    assert any("context" in item for item in assessment.improvements)


async def test_prompt_mentions_stage_and_question():
    gateway = FakeGateway(assessment_json())
    await ResponseEvaluator(gateway).evaluate(ANSWER, CONTEXT)

    sent = gateway.prompts[0]
    assert "hiring-manager" in sent["system"]
    assert CONTEXT.question_text in sent["prompt"]
    assert ANSWER in sent["prompt"]


def test_prompt_asks_for_feedback_in_session_language():
    context = EvaluationContext(
        question_text="Ceritakan tentang kepemimpinan Anda.",
        interview_stage="hiring-manager",
        question_category="leadership",
        language="id",
    )

    prompt = ResponseEvaluator.build_system_prompt(context)

    assert "in Bahasa Indonesia" in prompt
    assert "leadership competency" in prompt
