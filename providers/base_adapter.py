import time
from abc import ABC, abstractmethod

from models.outcome import ErrorKind, ProviderOutcome
from utils.logger import get_logger

logger = get_logger(__name__)

RATE_LIMIT_MARKERS = (
    "rate limit",
    "rate_limit",
    "too many requests",
    "quota",
    "resource_exhausted",
    "resource has been exhausted",
    "payment required",
    "insufficient credits",
    "insufficient_quota",
)
# Quota markers that hold for every model behind the same credential
CREDIT_MARKERS = ("payment required", "insufficient credits", "insufficient_quota")
AUTH_MARKERS = ("unauthorized", "invalid api key", "incorrect api key", "permission denied")


class BaseProviderAdapter(ABC):
    """
    Uniform wrapper around one external generative/search service and one credential.

    Subclasses only implement ``_complete``. ``invoke`` owns the contract:
    it never raises for provider failures and always returns a ProviderOutcome.
    """

    def __init__(
        self,
        provider_name: str,
        model_name: str,
        api_key: str | None,
        *,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ):
        self.provider_name = provider_name
        self.model_name = model_name
        self.api_key = api_key
        self.temperature = temperature
        self.max_tokens = max_tokens

    @property
    def label(self) -> str:
        return f"{self.provider_name}/{self.model_name}"

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @abstractmethod
    def _complete(self, prompt: str, system_context: str, timeout: float) -> str | None:
        """
        Perform the network call and return the raw text of the answer.

        Args:
            prompt: User prompt
            system_context: System instruction for the model
            timeout: Seconds the SDK may spend on the call

        Returns:
            The generated text, or None when the provider answered without text

        Raises:
            Any SDK/transport exception; ``invoke`` classifies it.
        """

    def invoke(self, prompt: str, system_context: str = "", timeout: float = 45.0) -> ProviderOutcome:
        """
        Call the provider once.

        IMPORTANT: Never raises for provider failures - returns a failed ProviderOutcome instead.
        """
        if not self.is_configured:
            return ProviderOutcome.failure(
                self.label, ErrorKind.UNCONFIGURED, f"no credential configured for {self.provider_name}"
            )

        start_time = time.time()
        try:
            text = self._complete(prompt, system_context, timeout)
        except Exception as e:
            latency_ms = self._measure_latency(start_time)
            kind, message = self._classify_error(e)
            credential_exhausted = kind == ErrorKind.RATE_LIMITED and self._exhausts_credential(e)
            logger.warning(
                f"{self.label} call failed: {kind.value}",
                extra={
                    "extra_fields": {
                        "provider": self.label,
                        "error_kind": kind.value,
                        "error_message": message,
                        "error_type": type(e).__name__,
                        "credential_exhausted": credential_exhausted,
                        "latency_ms": latency_ms,
                    }
                },
            )
            return ProviderOutcome.failure(
                self.label, kind, message, latency_ms, credential_exhausted=credential_exhausted
            )

        latency_ms = self._measure_latency(start_time)
        if not text or not text.strip():
            return ProviderOutcome.failure(
                self.label, ErrorKind.EMPTY_RESPONSE, "provider returned no text", latency_ms
            )

        logger.info(
            f"{self.label} completion successful",
            extra={
                "extra_fields": {
                    "provider": self.label,
                    "latency_ms": latency_ms,
                    "chars": len(text),
                }
            },
        )
        return ProviderOutcome.success(self.label, text, latency_ms)

    def _measure_latency(self, start_time: float) -> int:
        return int((time.time() - start_time) * 1000)

    def _status_code(self, exc: Exception) -> int | None:
        # openai.APIStatusError exposes status_code, google.genai.errors.APIError exposes code
        for attr in ("status_code", "code"):
            value = getattr(exc, attr, None)
            if isinstance(value, int):
                return value
        response = getattr(exc, "response", None)
        value = getattr(response, "status_code", None)
        return value if isinstance(value, int) else None

    def _classify_error(self, exc: Exception) -> tuple[ErrorKind, str]:
        """
        Map an SDK/transport exception onto the pipeline's error taxonomy.

        402/429 and quota messages are RATE_LIMITED, 401/403 mean the credential
        is unusable (UNCONFIGURED), everything else (timeouts, connection errors,
        5xx, geo-blocks, other 4xx) is TRANSIENT.
        """
        message = str(exc) or type(exc).__name__
        lowered = message.lower()
        status = self._status_code(exc)

        if status in (402, 429):
            return ErrorKind.RATE_LIMITED, message
        if status in (401, 403):
            return ErrorKind.UNCONFIGURED, f"credential rejected: {message}"
        if status is None:
            if "429" in lowered or "402" in lowered or any(m in lowered for m in RATE_LIMIT_MARKERS):
                return ErrorKind.RATE_LIMITED, message
            if "401" in lowered or any(m in lowered for m in AUTH_MARKERS):
                return ErrorKind.UNCONFIGURED, f"credential rejected: {message}"
        elif any(m in lowered for m in RATE_LIMIT_MARKERS):
            return ErrorKind.RATE_LIMITED, message

        return ErrorKind.TRANSIENT, message

    def _exhausts_credential(self, exc: Exception) -> bool:
        """402 and out-of-credit messages are account-wide; a plain 429 is per model."""
        status = self._status_code(exc)
        if status == 402:
            return True
        lowered = str(exc).lower()
        if status is None and "402" in lowered:
            return True
        return any(m in lowered for m in CREDIT_MARKERS)
