# Interview Prep Services
"""
Core services: the AI provider gateway, question generator, response
evaluator, analytics aggregation and the session orchestrator that
sequences them.
"""

from .gateway import AIProviderGateway
from .question_generator import QuestionGenerator, QuestionContext, GeneratedQuestion
from .response_evaluator import ResponseEvaluator, EvaluationContext, STARAssessment
from .session_orchestrator import SessionOrchestrator

__all__ = [
    "AIProviderGateway",
    "QuestionGenerator",
    "QuestionContext",
    "GeneratedQuestion",
    "ResponseEvaluator",
    "EvaluationContext",
    "STARAssessment",
    "SessionOrchestrator",
]
