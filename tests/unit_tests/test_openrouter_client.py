import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from smartwords.services.openrouter import (
    OpenRouterClient,
    OpenRouterError,
    build_prompt,
    calculate_cost,
    map_status_code_to_error_code,
    strip_json_fence,
)

WORDS = [{"pl": "pies", "en": "dog"}, {"pl": "kot", "en": "cat"}]
REQUEST = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")


def make_completion(content: str | None, usage=SimpleNamespace(prompt_tokens=100, completion_tokens=50)):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))], usage=usage)


def status_error(status_code: int) -> openai.APIStatusError:
    response = httpx.Response(status_code, request=REQUEST, json={"error": {"message": f"upstream {status_code}"}})
    return openai.APIStatusError(f"upstream {status_code}", response=response, body={"error": {"message": f"upstream {status_code}"}})


class ScriptedCompletions:
    """Plays back a list of results; exceptions in the list are raised."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    async def create(self, **request):
        self.requests.append(request)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def make_client(outcomes, max_retries=3):
    completions = ScriptedCompletions(outcomes)
    delays: list[float] = []

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    client = OpenRouterClient(
        api_key="key",
        max_retries=max_retries,
        client=SimpleNamespace(chat=SimpleNamespace(completions=completions)),
        sleep=fake_sleep,
    )
    return client, completions, delays


def sentences_json() -> str:
    return json.dumps(
        {
            "sentences": [
                {"pl_text": "Mam psa.", "target_en": "dog"},
                {"pl_text": "Kot śpi.", "target_en": "cat"},
            ]
        }
    )


async def generate(client: OpenRouterClient):
    return await client.generate_sentences(words=WORDS, model_id="openai/gpt-4o-mini", temperature=0.7, prompt_version="v1.0.0")


@pytest.mark.parametrize(
    "status_code, code",
    [
        (401, "OPENROUTER_AUTH_ERROR"),
        (403, "OPENROUTER_AUTH_ERROR"),
        (429, "OPENROUTER_RATE_LIMIT"),
        (500, "OPENROUTER_SERVER_ERROR"),
        (503, "OPENROUTER_SERVER_ERROR"),
        (400, "OPENROUTER_INVALID_REQUEST"),
        (418, "OPENROUTER_UNKNOWN_ERROR"),
    ],
)
def test_map_status_code_to_error_code(status_code, code):
    assert map_status_code_to_error_code(status_code) == code


def test_calculate_cost_uses_per_thousand_prices():
    assert calculate_cost(1000, 1000) == 0.09
    assert calculate_cost(123, 45) == 0.00639


def test_strip_json_fence():
    assert strip_json_fence('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_json_fence('{"a": 1}') == '{"a": 1}'


def test_build_prompt_lists_every_word_and_level():
    prompt = build_prompt(WORDS, level="B1")
    assert "1. dog - pies" in prompt
    assert "2. cat - kot" in prompt
    assert "B1" in prompt


@pytest.mark.asyncio
async def test_generate_sentences_parses_fenced_content_and_usage():
    client, completions, delays = make_client([make_completion(f"```json\n{sentences_json()}\n```")])

    result = await generate(client)

    assert [sentence.target_en for sentence in result.sentences] == ["dog", "cat"]
    assert result.usage.tokens_in == 100
    assert result.usage.tokens_out == 50
    assert result.usage.cost_usd == calculate_cost(100, 50)
    assert completions.requests[0]["response_format"]["json_schema"]["strict"] is True
    assert completions.requests[0]["model"] == "openai/gpt-4o-mini"
    assert delays == []


@pytest.mark.asyncio
async def test_server_errors_are_retried_with_exponential_backoff():
    client, completions, delays = make_client(
        [status_error(500), openai.APITimeoutError(request=REQUEST), make_completion(sentences_json())]
    )

    result = await generate(client)

    assert len(result.sentences) == 2
    assert len(completions.requests) == 3
    assert delays == [2, 4]


@pytest.mark.asyncio
async def test_retries_stop_after_max_attempts():
    client, completions, delays = make_client([status_error(429)] * 3)

    with pytest.raises(OpenRouterError) as exc_info:
        await generate(client)

    assert exc_info.value.code == "OPENROUTER_RATE_LIMIT"
    assert exc_info.value.status_code == 429
    assert len(completions.requests) == 3
    assert delays == [2, 4]


@pytest.mark.asyncio
async def test_network_error_is_classified():
    client, _, _ = make_client([openai.APIConnectionError(request=REQUEST)], max_retries=1)

    with pytest.raises(OpenRouterError) as exc_info:
        await generate(client)

    assert exc_info.value.code == "OPENROUTER_NETWORK_ERROR"


@pytest.mark.asyncio
async def test_client_errors_are_not_retried():
    client, completions, delays = make_client([status_error(401)])

    with pytest.raises(OpenRouterError) as exc_info:
        await generate(client)

    assert exc_info.value.code == "OPENROUTER_AUTH_ERROR"
    assert exc_info.value.message == "upstream 401"
    assert len(completions.requests) == 1
    assert delays == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "completion, code",
    [
        (SimpleNamespace(choices=[], usage=None), "OPENROUTER_EMPTY_RESPONSE"),
        (make_completion(""), "OPENROUTER_EMPTY_RESPONSE"),
        (make_completion("not json"), "OPENROUTER_PARSE_ERROR"),
        (make_completion(json.dumps({"sentences": [{"pl_text": "Mam psa."}]})), "OPENROUTER_INVALID_RESPONSE"),
        (make_completion(sentences_json(), usage=None), "OPENROUTER_INVALID_RESPONSE"),
    ],
)
async def test_bad_responses_fail_without_retry(completion, code):
    client, completions, _ = make_client([completion])

    with pytest.raises(OpenRouterError) as exc_info:
        await generate(client)

    assert exc_info.value.code == code
    assert len(completions.requests) == 1


@pytest.mark.asyncio
async def test_missing_api_key_is_a_config_error():
    client = OpenRouterClient(api_key="")

    with pytest.raises(OpenRouterError) as exc_info:
        await generate(client)

    assert exc_info.value.code == "OPENROUTER_CONFIG_ERROR"
