# AI Provider Gateway
"""
Sole adapter between the core and the external LLM provider.

Prompts are sent through crewai's ``LLM`` wrapper. Throttling and
transient server/network failures are retried with exponential backoff
plus jitter; client errors are not retried. Once the retry budget is
spent the gateway raises ``ProviderUnavailable`` so that callers can take
their fallback path.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from crewai import LLM
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from interview_prep.config import LLM_CONFIG, RETRY_CONFIG
from interview_prep.errors import ProviderRequestError, ProviderUnavailable

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]
LLMFactory = Callable[[int], Any]


def _status_code(exc: BaseException) -> Optional[int]:
    status = getattr(exc, "status_code", None)
    if status is None:
        response = getattr(exc, "response", None)
        status = getattr(response, "status_code", None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


def is_transient_error(exc: BaseException) -> bool:
    """True for throttling (429), server errors (5xx) and network failures."""
    status = _status_code(exc)
    if status is not None:
        return status == 429 or status >= 500
    return isinstance(exc, (ConnectionError, TimeoutError, asyncio.TimeoutError))


def default_llm_factory(max_tokens: int) -> LLM:
    """Build a crewai LLM client for the configured provider."""
    return LLM(
        model=LLM_CONFIG["model"],
        api_key=LLM_CONFIG["api_key"],
        temperature=LLM_CONFIG["temperature"],
        timeout=LLM_CONFIG["timeout"],
        max_tokens=max_tokens,
    )


class AIProviderGateway:
    """
    Stateless prompt sender with retry and backoff.

    The delay before attempt ``n + 1`` is
    ``min(base_delay * 2 ** (n - 1), max_delay) + uniform(0, jitter)``.

    Usage:
        gateway = AIProviderGateway()
        text = await gateway.send(
            prompt="Generate one interview question...",
            system_instructions="You are an expert interview coach.",
            max_tokens=1000,
        )
    """

    def __init__(
        self,
        llm_factory: Optional[LLMFactory] = None,
        max_attempts: int = RETRY_CONFIG["max_attempts"],
        base_delay: float = RETRY_CONFIG["base_delay"],
        max_delay: float = RETRY_CONFIG["max_delay"],
        jitter: float = RETRY_CONFIG["jitter"],
        sleep: SleepFn = asyncio.sleep,
    ):
        self._llm_factory = llm_factory or default_llm_factory
        self._clients: Dict[int, Any] = {}
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter = jitter
        self._sleep = sleep

    def _client(self, max_tokens: int) -> Any:
        client = self._clients.get(max_tokens)
        if client is None:
            client = self._llm_factory(max_tokens)
            self._clients[max_tokens] = client
        return client

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=(
                wait_exponential(multiplier=self.base_delay, max=self.max_delay)
                + wait_random(0, self.jitter)
            ),
            retry=retry_if_exception(is_transient_error),
            sleep=self._sleep,
            before_sleep=self._log_retry,
        )

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            f"⏳ Provider call failed ({exc!r}). Retrying in {delay:.2f}s "
            f"(attempt {retry_state.attempt_number}/{self.max_attempts})"
        )

    async def send(
        self,
        prompt: str,
        system_instructions: Optional[str] = None,
        max_tokens: int = 1024,
    ) -> str:
        """
        Send a prompt to the provider and return the generated text.

        Args:
            prompt: User message content
            system_instructions: Optional system prompt
            max_tokens: Token budget for the completion

        Returns:
            Raw generated text ("" when the provider returns nothing)

        Raises:
            ProviderUnavailable: Retries exhausted on transient failures
            ProviderRequestError: The provider rejected the request
        """
        messages: List[Dict[str, str]] = []
        if system_instructions:
            messages.append({"role": "system", "content": system_instructions})
        messages.append({"role": "user", "content": prompt})

        client = self._client(max_tokens)

        try:
            async for attempt in self._retrying():
                with attempt:
                    result = await asyncio.to_thread(client.call, messages=messages)
        except RetryError as e:
            last = e.last_attempt.exception()
            logger.error(f"❌ Provider unavailable after {self.max_attempts} attempts: {last!r}")
            raise ProviderUnavailable(
                f"Provider failed after {self.max_attempts} attempts: {last}"
            ) from last
        except Exception as e:
            logger.error(f"❌ Provider rejected request: {e!r}")
            raise ProviderRequestError(f"Provider rejected request: {e}") from e

        if result is None:
            return ""
        return result if isinstance(result, str) else str(result)
