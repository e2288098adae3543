"""
Text-generation providers with retry, timeout and fallback handling.

This module provides a unified interface for plan generation with:
- A retry policy object and a generic execute-with-retry combinator
- Exponential backoff with an injectable sleep for deterministic tests
- A thin swappable HTTP transport (httpx by default)
- Gemini as the primary provider and OpenAI as an optional fallback
- Transport errors classified into the LLM exception family
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, TypeVar
import asyncio
import logging
import threading
import time

import httpx
from openai import (
    AsyncOpenAI,
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    RateLimitError,
)

from ..config import Settings, get_settings
from ..exceptions import (
    AIGenerationFailure,
    LLMAPIError,
    LLMError,
    LLMRateLimitError,
    LLMServiceUnavailableError,
    LLMTimeoutError,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]

SYSTEM_PROMPT = (
    "You are an experienced running coach. "
    "Answer with a single JSON object describing the training plan and nothing else."
)

GEMINI_BLOCKED_FINISH_REASONS = {"SAFETY", "RECITATION", "BLOCKED", "PROHIBITED_CONTENT"}

GEMINI_SAFETY_CATEGORIES = (
    "HARM_CATEGORY_DANGEROUS_CONTENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
)


# ============================================================================
# Retry policy
# ============================================================================

def is_retryable_error(error: Exception) -> bool:
    """Timeouts, connection failures, 5xx and 429 are retryable; other 4xx are not."""
    return isinstance(error, (LLMTimeoutError, LLMRateLimitError, LLMServiceUnavailableError))


class RetryPolicy:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        attempt_timeout: float = 30.0,
        exponential_base: float = 2.0,
        is_retryable: Callable[[Exception], bool] = is_retryable_error,
    ) -> None:
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.attempt_timeout = attempt_timeout
        self.exponential_base = exponential_base
        self.is_retryable = is_retryable

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "RetryPolicy":
        settings = settings or get_settings()
        return cls(
            max_attempts=settings.generation_max_attempts,
            base_delay=settings.generation_base_delay,
            attempt_timeout=settings.generation_attempt_timeout,
        )

    def get_delay(self, attempt: int) -> float:
        """Delay before the retry that follows a failed 1-based attempt."""
        return self.base_delay * (self.exponential_base ** (attempt - 1))

    @property
    def worst_case_seconds(self) -> float:
        """Upper bound on wall-clock time for one provider."""
        backoff = sum(self.get_delay(a) for a in range(1, self.max_attempts))
        return self.max_attempts * self.attempt_timeout + backoff


class GenerationMetrics:
    """Track generation usage metrics."""

    def __init__(self) -> None:
        self.total_attempts = 0
        self.successful_requests = 0
        self.failed_requests = 0
        self.retries = 0
        self.fallbacks = 0
        self._request_times: List[float] = []

    def record_attempt(self, success: bool, duration_ms: Optional[float] = None) -> None:
        """Record a single attempt."""
        self.total_attempts += 1
        if duration_ms is not None:
            self._request_times.append(duration_ms)
            # Keep only last 100 request times
            if len(self._request_times) > 100:
                self._request_times = self._request_times[-100:]
        if success:
            self.successful_requests += 1

    def record_failure(self) -> None:
        """Record a provider giving up."""
        self.failed_requests += 1

    def merge(self, other: "GenerationMetrics") -> None:
        """Add the counts of another collector (e.g. one request's) to this one."""
        self.total_attempts += other.total_attempts
        self.successful_requests += other.successful_requests
        self.failed_requests += other.failed_requests
        self.retries += other.retries
        self.fallbacks += other.fallbacks
        self._request_times = (self._request_times + other._request_times)[-100:]

    @property
    def avg_request_time_ms(self) -> float:
        """Average request time in milliseconds."""
        if not self._request_times:
            return 0.0
        return sum(self._request_times) / len(self._request_times)

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to dictionary."""
        return {
            "total_attempts": self.total_attempts,
            "successful_requests": self.successful_requests,
            "failed_requests": self.failed_requests,
            "retries": self.retries,
            "fallbacks": self.fallbacks,
            "avg_request_time_ms": round(self.avg_request_time_ms, 2),
        }


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    operation_name: str = "LLM request",
    sleep: SleepFunc = asyncio.sleep,
    metrics: Optional[GenerationMetrics] = None,
) -> T:
    """
    Execute an async operation under a retry policy.

    Each attempt is bounded by ``policy.attempt_timeout``. Between attempts
    the combinator awaits ``sleep(policy.get_delay(attempt))``; there is no
    delay after the final attempt.

    Args:
        operation: Async callable to execute
        policy: Retry policy (defaults to RetryPolicy())
        operation_name: Name for logging
        sleep: Awaitable sleep, injectable for tests
        metrics: Optional metrics collector

    Returns:
        The operation result

    Raises:
        LLMError: The last error once attempts are exhausted, or the first
            non-retryable one
    """
    policy = policy or RetryPolicy()

    for attempt in range(1, policy.max_attempts + 1):
        start_time = time.time()
        try:
            result = await asyncio.wait_for(operation(), timeout=policy.attempt_timeout)
            if metrics:
                metrics.record_attempt(success=True, duration_ms=(time.time() - start_time) * 1000)
            return result
        except asyncio.TimeoutError:
            error: LLMError = LLMTimeoutError(timeout_seconds=policy.attempt_timeout)
        except LLMError as e:
            error = e

        if metrics:
            metrics.record_attempt(success=False, duration_ms=(time.time() - start_time) * 1000)

        if not policy.is_retryable(error):
            logger.warning(f"{operation_name} failed with non-retryable error: {error.message}")
            raise error

        if attempt >= policy.max_attempts:
            logger.warning(f"{operation_name} failed after {attempt} attempts: {error.message}")
            raise error

        delay = policy.get_delay(attempt)
        if metrics:
            metrics.retries += 1
        logger.warning(
            f"{operation_name} failed ({error.code.value}). "
            f"Retry {attempt}/{policy.max_attempts - 1} in {delay:.1f}s"
        )
        await sleep(delay)

    # Should not reach here, but just in case
    raise LLMError(message=f"{operation_name} failed after all retries")


# ============================================================================
# HTTP transport
# ============================================================================

@dataclass
class HttpResponse:
    """Minimal HTTP response handed back by a transport."""

    status_code: int
    data: Any = None
    text: str = ""
    headers: Dict[str, str] = field(default_factory=dict)


class HttpTransport(Protocol):
    """Swappable HTTP client used by providers speaking raw HTTP."""

    async def post(
        self,
        url: str,
        body: Dict[str, Any],
        *,
        headers: Dict[str, str],
        timeout: float,
    ) -> HttpResponse:
        ...


class HttpxTransport:
    """
    HttpTransport backed by httpx.

    Network failures are classified here: timeouts become LLMTimeoutError,
    connection and DNS failures become LLMServiceUnavailableError.
    """

    def __init__(self, timeout: float = 30.0) -> None:
        self.timeout = timeout
        self._http_client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client is not None and not self._http_client.is_closed:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def post(
        self,
        url: str,
        body: Dict[str, Any],
        *,
        headers: Dict[str, str],
        timeout: float,
    ) -> HttpResponse:
        client = await self._get_client()
        try:
            response = await client.post(url, json=body, headers=headers, timeout=timeout)
        except httpx.TimeoutException as e:
            raise LLMTimeoutError(timeout_seconds=timeout, details={"error": str(e)})
        except httpx.TransportError as e:
            raise LLMServiceUnavailableError(message=f"Connection to LLM service failed: {e}")

        try:
            data = response.json()
        except ValueError:
            data = None
        return HttpResponse(
            status_code=response.status_code,
            data=data,
            text=response.text,
            headers=dict(response.headers),
        )


def _retry_after(headers: Dict[str, str]) -> Optional[int]:
    for key, value in headers.items():
        if key.lower() == "retry-after":
            try:
                return int(value)
            except ValueError:
                return None
    return None


def raise_for_status(response: HttpResponse, provider: str) -> None:
    """Classify an HTTP error status into the LLM exception family."""
    status = response.status_code
    if status < 400:
        return
    if status == 429:
        raise LLMRateLimitError(retry_after=_retry_after(response.headers))
    if status >= 500:
        raise LLMServiceUnavailableError(
            message=f"{provider} returned HTTP {status}",
            upstream_status=status,
        )
    raise LLMAPIError(
        message=f"{provider} rejected the request with HTTP {status}",
        upstream_status=status,
        details={"body_preview": response.text[:200]},
    )


# ============================================================================
# Providers
# ============================================================================

class TextProvider(Protocol):
    """A single generation backend returning raw text for a prompt."""

    name: str

    async def generate(self, prompt: str) -> str:
        ...


def extract_gemini_text(data: Any) -> str:
    """
    Unwrap generated text from a Gemini generateContent envelope.

    Blocked, empty and metadata-only responses yield an empty string,
    which the response parser treats as "no plan".
    """
    if not isinstance(data, dict):
        return ""

    error = data.get("error")
    if isinstance(error, dict):
        status = error.get("code") if isinstance(error.get("code"), int) else 500
        message = error.get("message", "Unknown Gemini error")
        if status >= 500:
            raise LLMServiceUnavailableError(message=f"Gemini error: {message}", upstream_status=status)
        raise LLMAPIError(message=f"Gemini error: {message}", upstream_status=status)

    feedback = data.get("promptFeedback") or {}
    if feedback.get("blockReason"):
        logger.warning(f"Gemini blocked the prompt: {feedback['blockReason']}")
        return ""

    candidates = data.get("candidates") or []
    if candidates and isinstance(candidates[0], dict):
        candidate = candidates[0]
        finish_reason = candidate.get("finishReason")
        if finish_reason in GEMINI_BLOCKED_FINISH_REASONS:
            logger.warning(f"Gemini stopped generation: {finish_reason}")
            return ""
        parts = (candidate.get("content") or {}).get("parts") or []
        texts = [p.get("text", "") for p in parts if isinstance(p, dict)]
        if texts:
            return "".join(texts)
        if isinstance(candidate.get("text"), str):
            return candidate["text"]

    content = data.get("content")
    if isinstance(content, dict):
        parts = content.get("parts") or []
        texts = [p.get("text", "") for p in parts if isinstance(p, dict)]
        if texts:
            return "".join(texts)

    if isinstance(data.get("text"), str):
        return data["text"]

    if "usageMetadata" in data:
        logger.warning("Gemini returned metadata without generated content")
    return ""


class GeminiProvider:
    """Google Gemini generateContent over an HttpTransport."""

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        api_url: str = "https://generativelanguage.googleapis.com/v1beta/models",
        temperature: float = 0.3,
        top_k: int = 40,
        top_p: float = 0.95,
        max_output_tokens: int = 16384,
        transport: Optional[HttpTransport] = None,
        timeout: float = 30.0,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.api_url = api_url.rstrip("/")
        self.temperature = temperature
        self.top_k = top_k
        self.top_p = top_p
        self.max_output_tokens = max_output_tokens
        self.transport = transport or HttpxTransport(timeout=timeout)
        self.timeout = timeout

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[HttpTransport] = None,
    ) -> "GeminiProvider":
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            api_url=settings.gemini_api_url,
            temperature=settings.gemini_temperature,
            top_k=settings.gemini_top_k,
            top_p=settings.gemini_top_p,
            max_output_tokens=settings.gemini_max_output_tokens,
            transport=transport,
            timeout=settings.generation_attempt_timeout,
        )

    @property
    def url(self) -> str:
        return f"{self.api_url}/{self.model}:generateContent"

    def build_request(self, prompt: str) -> Dict[str, Any]:
        """Build the generateContent request body."""
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "topK": self.top_k,
                "topP": self.top_p,
                "maxOutputTokens": self.max_output_tokens,
                "responseMimeType": "application/json",
            },
            "safetySettings": [
                {"category": category, "threshold": "BLOCK_ONLY_HIGH"}
                for category in GEMINI_SAFETY_CATEGORIES
            ],
        }

    async def generate(self, prompt: str) -> str:
        response = await self.transport.post(
            self.url,
            self.build_request(prompt),
            headers={
                "Content-Type": "application/json",
                "x-goog-api-key": self.api_key,
            },
            timeout=self.timeout,
        )
        raise_for_status(response, "Gemini")
        return extract_gemini_text(response.data)


class OpenAIProvider:
    """OpenAI chat completions, used as the fallback provider."""

    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4.1-mini",
        temperature: float = 0.3,
        max_tokens: int = 16384,
        timeout: float = 30.0,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        # Retries are owned by execute_with_retry
        self.client = client or AsyncOpenAI(api_key=api_key, max_retries=0, timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenAIProvider":
        return cls(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            temperature=settings.openai_temperature,
            max_tokens=settings.openai_max_tokens,
            timeout=settings.generation_attempt_timeout,
        )

    async def generate(self, prompt: str) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                response_format={"type": "json_object"},
            )
        except APITimeoutError:
            raise LLMTimeoutError()
        except RateLimitError:
            raise LLMRateLimitError()
        except APIConnectionError as e:
            raise LLMServiceUnavailableError(message=f"Connection to LLM service failed: {e}")
        except APIStatusError as e:
            if e.status_code >= 500:
                raise LLMServiceUnavailableError(
                    message=f"OpenAI returned HTTP {e.status_code}",
                    upstream_status=e.status_code,
                )
            raise LLMAPIError(
                message=f"OpenAI rejected the request: {e}",
                upstream_status=e.status_code,
            )

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


# ============================================================================
# Generation client
# ============================================================================

class GenerationClient:
    """
    Generates raw plan text with retries and provider fallback.

    The primary provider is tried under the retry policy; when it is
    exhausted (or fails with a non-retryable error) the secondary provider,
    if any, gets its own full set of attempts. Callers only ever see text
    or AIGenerationFailure.
    """

    def __init__(
        self,
        primary: TextProvider,
        secondary: Optional[TextProvider] = None,
        policy: Optional[RetryPolicy] = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self.providers: List[TextProvider] = [primary] + ([secondary] if secondary else [])
        self.policy = policy or RetryPolicy()
        self.sleep = sleep
        self.metrics = GenerationMetrics()
        self._metrics_lock = threading.Lock()

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        transport: Optional[HttpTransport] = None,
    ) -> "GenerationClient":
        """
        Build a client from configuration.

        Raises:
            LLMServiceUnavailableError: If no provider API key is configured
        """
        settings = settings or get_settings()
        providers: List[TextProvider] = []
        if settings.gemini_api_key:
            providers.append(GeminiProvider.from_settings(settings, transport=transport))
        if settings.openai_api_key and (settings.fallback_enabled or not providers):
            providers.append(OpenAIProvider.from_settings(settings))

        if not providers:
            raise LLMServiceUnavailableError(
                message="No generation provider configured",
                details={"configuration_missing": "gemini_api_key or openai_api_key"},
            )
        return cls(
            primary=providers[0],
            secondary=providers[1] if len(providers) > 1 else None,
            policy=RetryPolicy.from_settings(settings),
        )

    async def generate(self, prompt: str) -> str:
        """
        Generate raw text for a prompt.

        Returns:
            Raw model text, possibly empty when the provider declined

        Raises:
            AIGenerationFailure: If every provider is exhausted
        """
        last_status: Optional[int] = None
        # Counted per call, then folded into the shared totals
        call_metrics = GenerationMetrics()

        try:
            for index, provider in enumerate(self.providers):
                if index > 0:
                    call_metrics.fallbacks += 1
                    logger.warning(f"Falling back to {provider.name} provider")
                try:
                    return await execute_with_retry(
                        lambda: provider.generate(prompt),
                        policy=self.policy,
                        operation_name=f"{provider.name} generation",
                        sleep=self.sleep,
                        metrics=call_metrics,
                    )
                except LLMError as e:
                    call_metrics.record_failure()
                    if e.upstream_status is not None:
                        last_status = e.upstream_status
                    logger.error(f"{provider.name} provider exhausted: {e!r}")
        finally:
            with self._metrics_lock:
                self.metrics.merge(call_metrics)

        raise AIGenerationFailure(
            upstream_status=last_status,
            attempts=call_metrics.total_attempts,
        )

    def get_metrics(self) -> Dict[str, Any]:
        """Get current metrics."""
        with self._metrics_lock:
            return self.metrics.to_dict()


# Singleton instance with thread-safe locking
_generation_client: Optional[GenerationClient] = None
_generation_client_lock = threading.Lock()


def get_generation_client() -> GenerationClient:
    """
    Get the generation client singleton (thread-safe).

    Returns:
        The GenerationClient built from settings
    """
    global _generation_client
    # Double-checked locking pattern for thread safety
    if _generation_client is None:
        with _generation_client_lock:
            if _generation_client is None:
                _generation_client = GenerationClient.from_settings()
    return _generation_client


def reset_generation_client() -> None:
    """Reset the generation client singleton (for testing)."""
    global _generation_client
    with _generation_client_lock:
        _generation_client = None
