# Question Generator
"""
Generates the next interview question for a session.

The generator asks the model for a JSON question payload built from the
session context. Whenever the provider is unavailable or the payload is
unusable it falls back to a deterministic template question chosen by
interview stage and category. Both paths return the same
``GeneratedQuestion`` shape; only ``generated_by`` differs.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from statistics import mean
from typing import Any, Dict, List, Optional

from interview_prep.config import GENERATION_CONFIG
from interview_prep.errors import GenerationParseError, OutputParseError, ProviderError
from interview_prep.parsing import extract_json_object
from interview_prep.services.gateway import AIProviderGateway
from interview_prep.services.tracing import traced_step

logger = logging.getLogger(__name__)


# ============================================================================
# Interview Vocabulary
# ============================================================================

INTERVIEW_STAGES = (
    "phone-screening",
    "functional-team",
    "hiring-manager",
    "sme-expert",
    "executive-leadership",
)

STAGE_ALIASES = {
    "subject-matter-expertise": "sme-expert",
    "executive-final": "executive-leadership",
}

STAGE_DESCRIPTIONS = {
    "phone-screening": "Initial screening to assess basic qualifications, communication skills, and cultural fit. Focus on background, motivation, and fundamental competencies.",
    "functional-team": "Team-based interview focusing on collaboration, technical skills relevant to the role, and ability to work effectively with colleagues.",
    "hiring-manager": "Strategic interview with decision-maker focusing on leadership potential, problem-solving, and alignment with team goals and company values.",
    "sme-expert": "Deep technical or specialized knowledge assessment. Questions focus on expertise, industry knowledge, and advanced problem-solving.",
    "executive-leadership": "Senior-level interview focusing on strategic thinking, leadership philosophy, cultural impact, and long-term contribution to organizational success.",
}

# Categories a question may carry at each stage, in template rotation order
STAGE_CATEGORIES = {
    "phone-screening": ["communication", "cultural", "teamwork"],
    "functional-team": ["teamwork", "problem-solving", "technical"],
    "hiring-manager": ["leadership", "problem-solving", "teamwork"],
    "sme-expert": ["technical", "problem-solving"],
    "executive-leadership": ["leadership", "cultural", "problem-solving"],
}

EXPERIENCE_LEVELS = ("entry", "intermediate", "senior", "expert")
DIFFICULTY_LEVELS = ("beginner", "intermediate", "advanced", "adaptive")

STAR_CATEGORIES = {"leadership", "problem-solving", "teamwork", "conflict-resolution"}

QUESTION_TYPES = {
    "leadership": "behavioral",
    "problem-solving": "behavioral",
    "teamwork": "behavioral",
    "communication": "behavioral",
    "technical": "technical",
    "cultural": "cultural",
}

CULTURAL_CONTEXTS = {
    "id": "Indonesian business culture values consensus building (gotong royong), respect for hierarchy, and collaborative decision-making.",
    "ms": "Malaysian workplace culture emphasizes harmony, face-saving (muka), and building relationships before business.",
    "th": "Thai business culture prioritizes respect (kreng jai), hierarchy awareness, and maintaining harmonious relationships.",
    "vi": "Vietnamese business culture values respect for seniority, collective decision-making, and building trust over time.",
    "tl": "Filipino business culture emphasizes personal relationships (pakikipagkapwa), respect for authority, and collaborative teamwork.",
    "my": "Myanmar business culture values patience, respect for elders, and consensus-building in decision-making.",
    "en": "ASEAN business culture generally values relationship-building, respect for hierarchy, and collaborative approaches to problem-solving.",
}

LANGUAGE_NAMES = {
    "en": "English",
    "id": "Bahasa Indonesia",
    "ms": "Bahasa Malaysia",
    "th": "Thai",
    "vi": "Vietnamese",
    "tl": "Filipino",
    "my": "Myanmar",
}

QUESTION_TEMPLATES = {
    "leadership": [
        "Tell me about a time when you had to lead a team through a difficult project for {job_position}.",
        "Describe a situation where you had to motivate team members who were struggling.",
        "Give me an example of how you handled a conflict between team members.",
    ],
    "problem-solving": [
        "Describe a complex problem you solved in your role as {job_position}.",
        "Tell me about a time when you had to find a creative solution under pressure.",
        "Walk me through your approach to troubleshooting a difficult issue.",
    ],
    "teamwork": [
        "Tell me about your most successful collaboration experience.",
        "Describe a time when you had to work with a difficult team member.",
        "Give me an example of how you contributed to team success.",
    ],
    "technical": [
        "Walk me through the most technically demanding piece of work you delivered as {job_position}.",
        "Describe how you keep your specialist knowledge current and how you applied something new recently.",
        "Tell me about a time your expertise changed the direction of a project.",
    ],
    "communication": [
        "Tell me about yourself and why you are interested in the {job_position} role at {company}.",
        "Describe a time when you had to explain a complicated idea to someone outside your field.",
        "Give me an example of how you handled a difficult conversation with a stakeholder.",
    ],
    "cultural": [
        "What do you know about {company} and why do you want to work here?",
        "Describe a time when you adapted your working style to fit a new team or culture.",
        "Tell me about a time you helped shape the culture of a team you worked in.",
    ],
}


def normalize_stage(stage: str) -> str:
    """Map legacy stage names onto the current ones."""
    stage = (stage or "").strip().lower()
    return STAGE_ALIASES.get(stage, stage)


def allowed_categories(stage: str) -> List[str]:
    return STAGE_CATEGORIES.get(normalize_stage(stage), STAGE_CATEGORIES["hiring-manager"])


# ============================================================================
# Data Models
# ============================================================================

@dataclass
class QuestionContext:
    """Everything the generator needs to produce question ``question_number``."""
    job_position: str
    interview_stage: str
    experience_level: str
    language: str
    difficulty: str
    question_number: int
    company_name: Optional[str] = None
    focus_areas: List[str] = field(default_factory=list)
    question_categories: List[str] = field(default_factory=list)
    total_questions: int = 15
    previous_questions: List[str] = field(default_factory=list)
    previous_scores: List[float] = field(default_factory=list)
    session_id: Optional[str] = None
    user_id: Optional[str] = None


@dataclass
class GeneratedQuestion:
    """A question ready to be persisted by the orchestrator."""
    question_text: str
    question_category: str
    question_type: str
    difficulty_level: str
    question_number: int
    expected_answer_time: int
    star_method_relevant: bool
    generated_by: str
    question_text_translated: Optional[str] = None
    cultural_context: Optional[str] = None
    generation_prompt: Optional[str] = None
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# ============================================================================
# Question Generator
# ============================================================================

class QuestionGenerator:
    """
    Builds question prompts, calls the gateway and validates the result.

    Never raises on AI failures: provider errors and malformed payloads
    both lead to a template question tagged ``generated_by="fallback"``.
    """

    SYSTEM_PROMPT = (
        "You are an expert AI interview coach with deep knowledge of hiring "
        "practices and interview strategies. Respond with JSON only."
    )

    def __init__(self, gateway: AIProviderGateway, max_tokens: int = GENERATION_CONFIG["max_tokens"]):
        self.gateway = gateway
        self.max_tokens = max_tokens

    # ------------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------------

    async def generate_question(self, context: QuestionContext) -> GeneratedQuestion:
        """
        Generate the next question for a session.

        Args:
            context: Session context for the question being generated

        Returns:
            GeneratedQuestion from the model, or from templates on failure
        """
        prompt = self.build_prompt(context)

        with traced_step("generate_question", "Prepare Question", context.session_id, context.user_id) as span:
            try:
                raw = await self.gateway.send(prompt, self.SYSTEM_PROMPT, self.max_tokens)
                question = self._parse_question(raw, context)
            except ProviderError as e:
                logger.warning(f"⚠️ Question {context.question_number}: provider failed, using template ({e})")
                question = self.generate_fallback(context)
            except GenerationParseError as e:
                logger.warning(f"⚠️ Question {context.question_number}: unusable AI output, using template ({e})")
                question = self.generate_fallback(context)
            else:
                question.generation_prompt = prompt
                logger.info(f"✅ Question {context.question_number} generated by AI ({question.question_category})")

            span.update(
                input={"question_number": context.question_number, "interview_stage": context.interview_stage},
                output={
                    "question_text": question.question_text,
                    "question_category": question.question_category,
                    "generated_by": question.generated_by,
                })

        return question

    def generate_fallback(self, context: QuestionContext) -> GeneratedQuestion:
        """Deterministic template question for ``context``."""
        category = self.select_category(context)
        templates = QUESTION_TEMPLATES[category]
        offset = context.question_number % len(templates)

        asked = {q.strip().lower() for q in context.previous_questions}
        question_text = self._fill_template(templates[offset], context)
        for step in range(1, len(templates)):
            if question_text.strip().lower() not in asked:
                break
            question_text = self._fill_template(templates[(offset + step) % len(templates)], context)

        return GeneratedQuestion(
            question_text=question_text,
            question_category=category,
            question_type=QUESTION_TYPES.get(category, "behavioral"),
            difficulty_level=context.difficulty,
            question_number=context.question_number,
            expected_answer_time=self.expected_answer_time(context.difficulty),
            star_method_relevant=category in STAR_CATEGORIES,
            generated_by="fallback",
            question_text_translated=None,
            cultural_context=self.cultural_context(context.language),
            generation_prompt="template",
        )

    # ------------------------------------------------------------------------
    # Prompt Construction
    # ------------------------------------------------------------------------

    def build_prompt(self, context: QuestionContext) -> str:
        """Build the generation prompt for ``context``."""
        stage = normalize_stage(context.interview_stage)
        categories = allowed_categories(stage)
        language_name = LANGUAGE_NAMES.get(context.language, context.language)

        lines = [
            "Generate a high-quality, culturally-appropriate interview question.",
            "",
            "Context:",
            f"- Job Position: {context.job_position}",
            f"- Company: {context.company_name or 'Not specified'}",
            f"- Interview Stage: {stage} ({STAGE_DESCRIPTIONS.get(stage, 'General interview assessment')})",
            f"- Experience Level: {context.experience_level}",
            f"- Language: {context.language}",
            f"- Question Number: {context.question_number} of {context.total_questions}",
            f"- Focus Areas: {', '.join(context.focus_areas) or 'general'}",
            f"- Difficulty: {context.difficulty}",
            "",
            self.cultural_context(context.language),
        ]

        adaptive = self.adaptive_context(context)
        if adaptive:
            lines.append(adaptive)

        if context.previous_questions:
            lines.append("")
            lines.append("Questions already asked (do not repeat them):")
            lines.extend(f"- {q}" for q in context.previous_questions)

        lines.extend([
            "",
            "Requirements:",
            f"1. Generate ONE interview question for a {context.job_position}",
            f"2. The category must be one of: {', '.join(categories)}",
            f"3. Make it culturally appropriate for {language_name} speakers",
            "4. Mark whether the STAR method applies to answering it",
            f"5. Translate it to {context.language} if not English",
            "",
            "Response Format (JSON only, no other text):",
            "{",
            '  "questionText": "English question text",',
            '  "questionTextTranslated": "Translated question (if applicable)",',
            f'  "questionCategory": "{"|".join(categories)}",',
            '  "questionType": "behavioral|situational|technical|cultural",',
            '  "difficultyLevel": "beginner|intermediate|advanced",',
            '  "expectedAnswerTime": 180,',
            '  "culturalContext": "Brief cultural context explanation",',
            '  "starMethodRelevant": true',
            "}",
        ])
        return "\n".join(lines)

    def adaptive_context(self, context: QuestionContext) -> str:
        if context.difficulty != "adaptive" or not context.previous_scores:
            return ""

        average = mean(context.previous_scores)
        if average >= GENERATION_CONFIG["adaptive_upper"]:
            return "Adaptive Context: Previous responses show strong performance. Generate a more challenging question."
        if average <= GENERATION_CONFIG["adaptive_lower"]:
            return "Adaptive Context: Previous responses need improvement. Generate a more supportive, foundational question."
        return "Adaptive Context: Previous responses show moderate performance. Maintain current difficulty level."

    @staticmethod
    def cultural_context(language: str) -> str:
        return CULTURAL_CONTEXTS.get(language, CULTURAL_CONTEXTS["en"])

    @staticmethod
    def expected_answer_time(difficulty: str) -> int:
        multiplier = GENERATION_CONFIG["difficulty_multipliers"].get(difficulty, 1.0)
        return round(GENERATION_CONFIG["base_answer_time"] * multiplier)

    @staticmethod
    def select_category(context: QuestionContext) -> str:
        """Template category: focus areas allowed at this stage, rotated by question number."""
        categories = allowed_categories(context.interview_stage)
        focused = [c for c in context.focus_areas if c in categories]
        pool = focused or categories
        return pool[context.question_number % len(pool)]

    # ------------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------------

    def _parse_question(self, raw: str, context: QuestionContext) -> GeneratedQuestion:
        try:
            payload = extract_json_object(raw)
        except OutputParseError as e:
            raise GenerationParseError(str(e)) from e

        question_text = payload.get("questionText")
        if not isinstance(question_text, str) or not question_text.strip():
            raise GenerationParseError("questionText missing from model output")

        category = payload.get("questionCategory")
        if category not in allowed_categories(context.interview_stage):
            fallback_category = self.select_category(context)
            logger.info(
                f"Question {context.question_number}: category {category!r} not allowed "
                f"at stage {context.interview_stage}, using {fallback_category!r}"
            )
            category = fallback_category

        star_relevant = payload.get("starMethodRelevant")
        if not isinstance(star_relevant, bool):
            star_relevant = category in STAR_CATEGORIES

        # Only a real translation is kept; clients fall back to question_text
        translated = payload.get("questionTextTranslated")
        if context.language == "en" or not isinstance(translated, str) or not translated.strip():
            translated = None
        else:
            translated = translated.strip()

        return GeneratedQuestion(
            question_text=question_text.strip(),
            question_category=category,
            question_type=self._string_field(payload, "questionType", QUESTION_TYPES.get(category, "behavioral")),
            difficulty_level=self._string_field(payload, "difficultyLevel", context.difficulty),
            question_number=context.question_number,
            expected_answer_time=self._answer_time(payload, context),
            star_method_relevant=star_relevant,
            generated_by="ai",
            question_text_translated=translated,
            cultural_context=self._string_field(payload, "culturalContext", self.cultural_context(context.language)),
        )

    @staticmethod
    def _string_field(payload: Dict[str, Any], key: str, default: str) -> str:
        value = payload.get(key)
        return value.strip() if isinstance(value, str) and value.strip() else default

    def _answer_time(self, payload: Dict[str, Any], context: QuestionContext) -> int:
        value = payload.get("expectedAnswerTime")
        if isinstance(value, (int, float)) and not isinstance(value, bool) and 60 <= value <= 300:
            return int(value)
        return self.expected_answer_time(context.difficulty)

    @staticmethod
    def _fill_template(template: str, context: QuestionContext) -> str:
        return template.format(
            job_position=context.job_position,
            company=context.company_name or "our company",
        )
