import logging
from time import perf_counter

import openai
from openai import AsyncOpenAI
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from threatfeed.core.config import get_settings
from threatfeed.core.observability import LLM_CALL_COUNT, LLM_LATENCY
from threatfeed.schemas.common import TextResult
from threatfeed.services.llm.cache import SummaryCache
from threatfeed.services.llm.prompts import SUMMARY_PROMPT, SUMMARY_PROMPT_CHECKSUM, SUMMARY_PROMPT_VERSION
from threatfeed.services.llm.router import select_model

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.RateLimitError,
    openai.InternalServerError,
)


class LLMTransientError(RuntimeError):
    pass


class LLMResponseError(RuntimeError):
    pass


def _build_client() -> AsyncOpenAI:
    settings = get_settings()
    return AsyncOpenAI(
        api_key=settings.llm_api_key,
        base_url=settings.llm_base_url,
        timeout=settings.llm_timeout_seconds,
        max_retries=0,
    )


def _first_message(result) -> str:
    choices = getattr(result, "choices", None) or []
    if not choices:
        raise LLMResponseError("Response has no choices")
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if not isinstance(content, str) or not content.strip():
        raise LLMResponseError("Response message has no content")
    return content.strip()


async def _call_openai(model: str, prompt: str, text: str) -> str:
    client = _build_client()
    try:
        result = await client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": prompt},
                {"role": "user", "content": text},
            ],
        )
    except TRANSIENT_ERRORS as exc:
        raise LLMTransientError(str(exc)) from exc
    except openai.OpenAIError as exc:
        raise LLMResponseError(str(exc)) from exc
    return _first_message(result)


async def _complete(model: str, prompt: str, text: str) -> str:
    settings = get_settings()
    async for attempt in AsyncRetrying(
        wait=wait_exponential(multiplier=1, min=1, max=8),
        stop=stop_after_attempt(settings.llm_max_retries),
        retry=retry_if_exception_type(LLMTransientError),
        reraise=True,
    ):
        with attempt:
            return await _call_openai(model, prompt, text)


async def summarize(text: str) -> TextResult:
    """Summarize article text as a short analyst note.

    Never raises: an empty input, a disabled backend, transport errors,
    malformed responses and unexpected SDK errors all come back as a failed
    result with the reason. Successful calls are logged with the prompt
    version and checksum.
    """
    if not text or not text.strip():
        return TextResult.failure("empty input")

    candidate = select_model()
    if candidate.is_stub:
        LLM_CALL_COUNT.labels(candidate.provider, "skipped").inc()
        return TextResult.failure("llm disabled or no api key configured")

    started = perf_counter()
    try:
        summary = await _complete(candidate.model, SUMMARY_PROMPT, text)
    except (LLMTransientError, LLMResponseError) as exc:
        logger.warning("Summarization via %s:%s failed: %s", candidate.provider, candidate.model, exc)
        LLM_CALL_COUNT.labels(candidate.provider, "failure").inc()
        return TextResult.failure(str(exc))
    except Exception as exc:  # noqa: BLE001
        logger.warning(
            "Summarization via %s:%s raised unexpectedly", candidate.provider, candidate.model, exc_info=True
        )
        LLM_CALL_COUNT.labels(candidate.provider, "failure").inc()
        return TextResult.failure(f"{type(exc).__name__}: {exc}")

    LLM_LATENCY.labels(candidate.provider, candidate.model).observe(perf_counter() - started)
    LLM_CALL_COUNT.labels(candidate.provider, "success").inc()
    logger.debug(
        "Summarized %d chars via %s:%s with prompt %s (%s)",
        len(text),
        candidate.provider,
        candidate.model,
        SUMMARY_PROMPT_VERSION,
        SUMMARY_PROMPT_CHECKSUM,
    )
    return TextResult.success(summary)


async def summarize_cached(text: str, key: str, cache: SummaryCache) -> TextResult:
    return await cache.get_or_create(key, lambda: summarize(text))
