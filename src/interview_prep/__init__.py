# Interview Prep Package
"""
AI-assisted interview preparation core.

Sessions are created by the orchestrator, questions come from the
question generator, and candidate answers are scored with the STAR method
by the response evaluator. Both AI components degrade to deterministic
fallback content when the provider is unavailable.
"""

__version__ = "1.0.0"
