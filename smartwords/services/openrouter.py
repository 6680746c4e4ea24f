"""
OpenRouter chat-completions client used to generate practice sentences.

OpenRouter speaks the OpenAI wire protocol, so the official `openai` SDK is pointed at its base URL.
The SDK's own retries are disabled: this module retries timeouts, network failures, 5xx and 429
itself, waiting 2**attempt seconds between attempts, and reports every failure as an
`OpenRouterError` with a stable code.
"""

import asyncio
import json
import logging
import re
import time
from typing import Any, Awaitable, Callable

import openai
import pydantic
from openai import AsyncOpenAI

from smartwords.config.manager import settings

logger = logging.getLogger(__name__)

INPUT_PRICE_PER_1K = 0.03
OUTPUT_PRICE_PER_1K = 0.06

RETRYABLE_CODES = frozenset(
    {
        "OPENROUTER_TIMEOUT",
        "OPENROUTER_NETWORK_ERROR",
        "OPENROUTER_SERVER_ERROR",
        "OPENROUTER_RATE_LIMIT",
    }
)

_JSON_FENCE_START = re.compile(r"^\s*```(?:json)?\s*", re.IGNORECASE)
_JSON_FENCE_END = re.compile(r"\s*```\s*$")

PROMPT_TEMPLATE = """You help Polish speakers practise English vocabulary.
For every word in the list below write exactly one short, natural sentence in Polish
(at most 10-15 words, suitable for CEFR level {level}) that uses the Polish meaning of the word.
The learner will translate the sentence back into English, so the English word must be the
natural translation of the word used in the sentence.

Words (English - Polish):
{word_list}

Return only JSON of the form:
{{"sentences": [{{"pl_text": "<Polish sentence>", "target_en": "<English word from the list>"}}]}}
Keep the order of the list and do not add any other text."""


class OpenRouterError(Exception):
    def __init__(self, code: str, message: str, status_code: int | None = None):
        self.code = code
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class GeneratedSentenceLLM(pydantic.BaseModel):
    pl_text: str = pydantic.Field(min_length=1)
    target_en: str = pydantic.Field(min_length=1)


class SentenceGenerationLLM(pydantic.BaseModel):
    sentences: list[GeneratedSentenceLLM]


class ProviderUsage(pydantic.BaseModel):
    tokens_in: int = 0
    tokens_out: int = 0
    cost_usd: float = 0.0


class SentenceGenerationResult(pydantic.BaseModel):
    sentences: list[GeneratedSentenceLLM]
    usage: ProviderUsage


def map_status_code_to_error_code(status_code: int) -> str:
    if status_code in (401, 403):
        return "OPENROUTER_AUTH_ERROR"
    if status_code == 429:
        return "OPENROUTER_RATE_LIMIT"
    if status_code in (500, 502, 503):
        return "OPENROUTER_SERVER_ERROR"
    if status_code == 400:
        return "OPENROUTER_INVALID_REQUEST"
    return "OPENROUTER_UNKNOWN_ERROR"


def calculate_cost(tokens_in: int, tokens_out: int) -> float:
    cost = (tokens_in / 1000) * INPUT_PRICE_PER_1K + (tokens_out / 1000) * OUTPUT_PRICE_PER_1K
    return round(cost, 6)


def strip_json_fence(content: str) -> str:
    return _JSON_FENCE_END.sub("", _JSON_FENCE_START.sub("", content)).strip()


def build_response_format() -> dict[str, Any]:
    """Strict JSON schema so compliant models return exactly `{"sentences": [...]}`."""
    return {
        "type": "json_schema",
        "json_schema": {
            "name": "sentence_generation_response",
            "strict": True,
            "schema": {
                "type": "object",
                "properties": {
                    "sentences": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "pl_text": {
                                    "type": "string",
                                    "description": "Polish sentence that uses the word",
                                },
                                "target_en": {
                                    "type": "string",
                                    "description": "English word the sentence practises",
                                },
                            },
                            "required": ["pl_text", "target_en"],
                            "additionalProperties": False,
                        },
                    }
                },
                "required": ["sentences"],
                "additionalProperties": False,
            },
        },
    }


def build_prompt(words: list[dict[str, str]], level: str = "A1") -> str:
    word_list = "\n".join(f"{index}. {word['en']} - {word['pl']}" for index, word in enumerate(words, start=1))
    return PROMPT_TEMPLATE.format(level=level, word_list=word_list)


class OpenRouterClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        max_retries: int | None = None,
        client: Any | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ):
        self._api_key = settings.OPENROUTER_API_KEY if api_key is None else api_key
        self._base_url = base_url or settings.OPENROUTER_BASE_URL
        self._timeout_seconds = timeout_seconds or settings.OPENROUTER_TIMEOUT_SECONDS
        self._max_retries = max(1, max_retries if max_retries is not None else settings.OPENROUTER_MAX_RETRIES)
        self._client = client
        self._sleep = sleep or asyncio.sleep

    def _get_client(self) -> Any:
        if self._client is not None:
            return self._client
        if not self._api_key or not self._api_key.strip():
            raise OpenRouterError("OPENROUTER_CONFIG_ERROR", "OpenRouter API key is required")
        self._client = AsyncOpenAI(
            api_key=self._api_key,
            base_url=self._base_url,
            timeout=float(self._timeout_seconds),
            max_retries=0,
            default_headers={
                "HTTP-Referer": settings.OPENROUTER_APP_URL,
                "X-Title": settings.OPENROUTER_APP_TITLE,
            },
        )
        return self._client

    async def generate_sentences(
        self,
        *,
        words: list[dict[str, str]],
        model_id: str,
        temperature: float,
        prompt_version: str,
        level: str = "A1",
    ) -> SentenceGenerationResult:
        if not words:
            raise OpenRouterError("OPENROUTER_INVALID_REQUEST", "Words list cannot be empty")

        client = self._get_client()
        messages = [{"role": "user", "content": build_prompt(words, level=level)}]

        started = time.perf_counter()
        completion = await self._send_with_retries(
            client=client,
            model=model_id or settings.OPENROUTER_DEFAULT_MODEL,
            messages=messages,
            temperature=temperature,
        )
        latency_ms = int((time.perf_counter() - started) * 1000)

        sentences = self._parse_sentences(completion)

        usage = getattr(completion, "usage", None)
        if usage is None:
            raise OpenRouterError("OPENROUTER_INVALID_RESPONSE", "Response from OpenRouter API is missing usage data")
        tokens_in = int(getattr(usage, "prompt_tokens", 0) or 0)
        tokens_out = int(getattr(usage, "completion_tokens", 0) or 0)

        logger.info(
            "OpenRouter generated %d sentences (model=%s, prompt_version=%s, tokens_in=%d, tokens_out=%d, latency_ms=%d)",
            len(sentences),
            model_id,
            prompt_version,
            tokens_in,
            tokens_out,
            latency_ms,
        )
        return SentenceGenerationResult(
            sentences=sentences,
            usage=ProviderUsage(
                tokens_in=tokens_in,
                tokens_out=tokens_out,
                cost_usd=calculate_cost(tokens_in, tokens_out),
            ),
        )

    async def _send_with_retries(self, *, client: Any, **request: Any) -> Any:
        attempt = 1
        while True:
            try:
                return await client.chat.completions.create(response_format=build_response_format(), **request)
            except openai.APITimeoutError:
                error = OpenRouterError("OPENROUTER_TIMEOUT", "Request to OpenRouter API timed out")
            except openai.APIConnectionError:
                error = OpenRouterError("OPENROUTER_NETWORK_ERROR", "Network error while connecting to OpenRouter API")
            except openai.APIStatusError as exc:
                error = OpenRouterError(
                    map_status_code_to_error_code(exc.status_code),
                    self._status_error_message(exc),
                    status_code=exc.status_code,
                )

            if error.code not in RETRYABLE_CODES or attempt >= self._max_retries:
                raise error

            delay = 2**attempt
            logger.warning(
                "OpenRouter attempt %d/%d failed with %s; retrying in %ss",
                attempt,
                self._max_retries,
                error.code,
                delay,
            )
            await self._sleep(delay)
            attempt += 1

    @staticmethod
    def _status_error_message(exc: openai.APIStatusError) -> str:
        body = exc.body if isinstance(exc.body, dict) else {}
        nested = body.get("error") if isinstance(body.get("error"), dict) else {}
        return str(nested.get("message") or body.get("message") or exc.message or "Unknown error")

    @staticmethod
    def _parse_sentences(completion: Any) -> list[GeneratedSentenceLLM]:
        choices = getattr(completion, "choices", None) or []
        if not choices:
            raise OpenRouterError("OPENROUTER_EMPTY_RESPONSE", "OpenRouter API returned an empty response")
        content = getattr(choices[0].message, "content", None)
        if not content:
            raise OpenRouterError("OPENROUTER_EMPTY_RESPONSE", "OpenRouter API returned an empty response")

        try:
            data = json.loads(strip_json_fence(content))
        except json.JSONDecodeError as exc:
            raise OpenRouterError("OPENROUTER_PARSE_ERROR", "Failed to parse response from OpenRouter API") from exc

        try:
            return SentenceGenerationLLM.model_validate(data).sentences
        except pydantic.ValidationError as exc:
            raise OpenRouterError(
                "OPENROUTER_INVALID_RESPONSE",
                f"Response from OpenRouter API does not match expected schema: {exc.error_count()} error(s)",
            ) from exc


_client: OpenRouterClient | None = None


def get_openrouter_client() -> OpenRouterClient:
    """Process-wide client; the underlying HTTP client is created lazily on first use."""
    global _client
    if _client is None:
        _client = OpenRouterClient()
    return _client
