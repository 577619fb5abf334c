import pytest

from interview_prep.errors import ProviderRequestError, ProviderUnavailable
from interview_prep.services.gateway import AIProviderGateway, is_transient_error

from tests.fakes import ProviderHTTPError, ScriptedLLM


async def test_send_returns_text_and_builds_messages(make_gateway, sleep):
    llm = ScriptedLLM("hello")
    gateway = make_gateway(llm)

    text = await gateway.send("prompt body", "system rules", max_tokens=256)

    assert text == "hello"
    assert llm.calls == [[
        {"role": "system", "content": "system rules"},
        {"role": "user", "content": "prompt body"},
    ]]
    assert sleep.delays == []


async def test_system_prompt_is_optional(make_gateway):
    llm = ScriptedLLM("ok")
    await make_gateway(llm).send("just the prompt")
    assert llm.calls[0] == [{"role": "user", "content": "just the prompt"}]


async def test_throttling_then_success_waits_between_attempts(make_gateway, sleep):
    llm = ScriptedLLM(ProviderHTTPError(429), "second time lucky")
    gateway = make_gateway(llm)

    assert await gateway.send("p") == "second time lucky"
    assert len(llm.calls) == 2
    assert len(sleep.delays) == 1
    # base delay 1s, at most base * 2 + 1s jitter
    assert 1.0 <= sleep.delays[0] <= 3.0


async def test_server_errors_back_off_exponentially(make_gateway, sleep):
    llm = ScriptedLLM(ProviderHTTPError(503), ProviderHTTPError(500), ConnectionError("reset"), "ok")

    assert await make_gateway(llm).send("p") == "ok"
    assert len(sleep.delays) == 3
    for attempt, delay in enumerate(sleep.delays, start=1):
        base = 2 ** (attempt - 1)
        assert base <= delay <= base + 1.0


async def test_exhausted_retries_raise_provider_unavailable(make_gateway, sleep):
    llm = ScriptedLLM(default=ProviderHTTPError(429))

    with pytest.raises(ProviderUnavailable):
        await make_gateway(llm).send("p")

    assert len(llm.calls) == 5
    assert len(sleep.delays) == 4


async def test_delay_is_capped(make_gateway, sleep):
    llm = ScriptedLLM(default=TimeoutError("slow"))

    with pytest.raises(ProviderUnavailable):
        await make_gateway(llm, max_attempts=9).send("p")

    assert len(sleep.delays) == 8
    assert 60.0 <= sleep.delays[-1] <= 61.0
    assert all(delay <= 61.0 for delay in sleep.delays)


async def test_client_errors_are_not_retried(make_gateway, sleep):
    llm = ScriptedLLM(ProviderHTTPError(400, "bad request"), "never reached")

    with pytest.raises(ProviderRequestError):
        await make_gateway(llm).send("p")

    assert len(llm.calls) == 1
    assert sleep.delays == []


async def test_empty_provider_output_is_empty_string(make_gateway):
    assert await make_gateway(ScriptedLLM(None)).send("p") == ""


async def test_one_client_per_token_budget(sleep):
    built = []

    def factory(max_tokens):
        built.append(max_tokens)
        return ScriptedLLM(default="ok")

    gateway = AIProviderGateway(llm_factory=factory, sleep=sleep)
    await gateway.send("a", max_tokens=100)
    await gateway.send("b", max_tokens=100)
    await gateway.send("c", max_tokens=200)

    assert built == [100, 200]


@pytest.mark.parametrize(
    "exc, expected",
    [
        (ProviderHTTPError(429), True),
        (ProviderHTTPError(500), True),
        (ProviderHTTPError(529), True),
        (ProviderHTTPError(400), False),
        (ProviderHTTPError(401), False),
        (ConnectionError(), True),
        (TimeoutError(), True),
        (ValueError("bad"), False),
    ],
)
def test_transient_error_classification(exc, expected):
    assert is_transient_error(exc) is expected
