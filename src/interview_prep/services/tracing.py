# Tracing
"""
Langfuse spans around the provider-backed steps.

The client reads its LANGFUSE_* settings from the environment. Without
credentials nothing is exported and the spans cost next to nothing.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from langfuse import get_client, propagate_attributes

langfuse = get_client()


@contextmanager
def traced_step(
    name: str,
    trace_name: str,
    session_id: Optional[str] = None,
    user_id: Optional[str] = None,
) -> Iterator:
    """
    Open a span for one step and tag the trace with the session and user.

    Args:
        name: Span name, e.g. "generate_question"
        trace_name: Name of the trace the span belongs to
        session_id: Practice session the step runs for, if known
        user_id: Owner of that session, if known

    Yields:
        The span, so callers can attach input and output
    """
    with langfuse.start_as_current_observation(as_type="span", name=name) as span:
        with propagate_attributes(session_id=session_id, user_id=user_id, trace_name=trace_name):
            yield span
