import pytest

from interview_prep.services.question_generator import (
    QUESTION_TEMPLATES,
    STAGE_CATEGORIES,
    QuestionContext,
    QuestionGenerator,
    allowed_categories,
    normalize_stage,
)

from tests.fakes import FakeGateway, UnavailableGateway, question_json


def make_context(**overrides) -> QuestionContext:
    values = dict(
        job_position="Business Manager",
        interview_stage="hiring-manager",
        experience_level="senior",
        language="en",
        difficulty="intermediate",
        question_number=1,
        company_name="Microsoft",
    )
    values.update(overrides)
    return QuestionContext(**values)


async def test_ai_question_is_parsed_from_noisy_output():
    raw = "<think>pondering</think>Here you go:\n" + question_json("leadership") + "\nHope that helps!"
    generator = QuestionGenerator(FakeGateway(raw))

    question = await generator.generate_question(make_context())

    assert question.generated_by == "ai"
    assert question.question_text == "Tell me about a time you led a turnaround."
    assert question.question_category == "leadership"
    assert question.star_method_relevant is True
    assert question.question_number == 1
    assert question.generation_prompt is not None


async def test_category_outside_stage_is_replaced():
    generator = QuestionGenerator(FakeGateway(question_json("technical")))

    question = await generator.generate_question(make_context(interview_stage="phone-screening"))

    assert question.generated_by == "ai"
    assert question.question_category in STAGE_CATEGORIES["phone-screening"]


async def test_missing_question_text_falls_back():
    generator = QuestionGenerator(FakeGateway('{"questionCategory": "leadership"}'))

    question = await generator.generate_question(make_context())

    assert question.generated_by == "fallback"
    assert question.question_text


async def test_unparseable_output_falls_back():
    generator = QuestionGenerator(FakeGateway("I'd rather not answer in JSON."))

    question = await generator.generate_question(make_context())

    assert question.generated_by == "fallback"


async def test_provider_unavailable_yields_valid_fallback_question():
    generator = QuestionGenerator(UnavailableGateway())
    context = make_context(question_number=2)

    question = await generator.generate_question(context)

    assert question.generated_by == "fallback"
    assert question.question_category in allowed_categories("hiring-manager")
    assert question.question_text
    assert "{" not in question.question_text
    assert question.question_number == 2
    assert question.expected_answer_time == 180


def test_fallback_is_deterministic_and_fills_placeholders():
    generator = QuestionGenerator(UnavailableGateway())
    context = make_context(question_number=3)

    first = generator.generate_fallback(context)
    second = generator.generate_fallback(context)

    assert first.question_text == second.question_text
    assert first.question_category == second.question_category
    assert "{job_position}" not in first.question_text


def test_fallback_skips_questions_already_asked():
    generator = QuestionGenerator(UnavailableGateway())
    context = make_context(question_number=3)
    first = generator.generate_fallback(context)

    repeat = generator.generate_fallback(make_context(question_number=3, previous_questions=[first.question_text]))

    assert repeat.question_category == first.question_category
    assert repeat.question_text != first.question_text


def test_focus_areas_restrict_template_category():
    generator = QuestionGenerator(UnavailableGateway())

    for number in range(1, 5):
        question = generator.generate_fallback(make_context(question_number=number, focus_areas=["teamwork"]))
        assert question.question_category == "teamwork"
        assert question.question_text in QUESTION_TEMPLATES["teamwork"]


def test_focus_areas_outside_stage_are_ignored():
    generator = QuestionGenerator(UnavailableGateway())

    question = generator.generate_fallback(make_context(focus_areas=["behavioral", "situational"]))

    assert question.question_category in STAGE_CATEGORIES["hiring-manager"]


@pytest.mark.parametrize(
    "difficulty, seconds",
    [("beginner", 144), ("intermediate", 180), ("advanced", 234), ("adaptive", 180)],
)
def test_expected_answer_time_scales_with_difficulty(difficulty, seconds):
    assert QuestionGenerator.expected_answer_time(difficulty) == seconds


@pytest.mark.parametrize(
    "scores, phrase",
    [([4.8, 4.6], "more challenging"), ([2.0, 2.4], "supportive"), ([3.5], "Maintain")],
)
def test_adaptive_context_follows_previous_scores(scores, phrase):
    generator = QuestionGenerator(UnavailableGateway())
    context = make_context(difficulty="adaptive", previous_scores=scores)
    assert phrase in generator.adaptive_context(context)


def test_adaptive_context_only_for_adaptive_sessions():
    generator = QuestionGenerator(UnavailableGateway())
    assert generator.adaptive_context(make_context(previous_scores=[5.0])) == ""


def test_prompt_carries_session_context():
    generator = QuestionGenerator(UnavailableGateway())
    prompt = generator.build_prompt(make_context(previous_questions=["Why Microsoft?"]))

    assert "Business Manager" in prompt
    assert "Microsoft" in prompt
    assert "Why Microsoft?" in prompt
    assert "leadership|problem-solving|teamwork" in prompt


def test_legacy_stage_names_are_normalized():
    assert normalize_stage("subject-matter-expertise") == "sme-expert"
    assert normalize_stage("Executive-Final") == "executive-leadership"
    assert normalize_stage("hiring-manager") == "hiring-manager"


def test_non_english_fallback_has_no_translation():
    generator = QuestionGenerator(UnavailableGateway())
    question = generator.generate_fallback(make_context(language="id"))

    assert question.question_text_translated is None
    assert "Indonesian" in question.cultural_context


async def test_translation_is_kept_only_when_the_model_supplies_one():
    translated = question_json("leadership", questionTextTranslated="Ceritakan tentang saat Anda memimpin perubahan.")
    untranslated = question_json("leadership")

    with_translation = await QuestionGenerator(FakeGateway(translated)).generate_question(make_context(language="id"))
    without_translation = await QuestionGenerator(FakeGateway(untranslated)).generate_question(make_context(language="id"))

    assert with_translation.question_text_translated == "Ceritakan tentang saat Anda memimpin perubahan."
    assert without_translation.generated_by == "ai"
    assert without_translation.question_text_translated is None
