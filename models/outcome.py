from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    UNCONFIGURED = "unconfigured"
    RATE_LIMITED = "rate_limited"
    TRANSIENT = "transient"
    EMPTY_RESPONSE = "empty_response"
    INVALID_RESPONSE = "invalid_response"
    NO_VALID_RECORDS = "no_valid_records"
    ALL_PROVIDERS_EXHAUSTED = "all_providers_exhausted"
    CANCELED = "canceled"
    INVALID_INPUT = "invalid_input"


# Kinds after which the orchestrator moves on to the next provider
ADVANCE_KINDS = frozenset(
    {
        ErrorKind.UNCONFIGURED,
        ErrorKind.RATE_LIMITED,
        ErrorKind.TRANSIENT,
        ErrorKind.EMPTY_RESPONSE,
        ErrorKind.INVALID_RESPONSE,
        ErrorKind.NO_VALID_RECORDS,
    }
)


@dataclass(frozen=True)
class ProviderOutcome:
    """
    Result of one adapter invocation (or of a whole stage).

    Exactly one of ``text`` (success) or ``error`` (failure) is meaningful.
    Use the ``success`` / ``failure`` constructors rather than building it directly.
    """

    provider: str
    text: str = ""
    error: ErrorKind | None = None
    detail: str = ""
    latency_ms: int = 0
    payload: Any = None
    # rate limit that applies to the whole credential, not just this model
    credential_exhausted: bool = False

    def __post_init__(self):
        if self.error is None and not self.text:
            raise ValueError("successful ProviderOutcome requires text")
        if self.error is not None and self.text:
            raise ValueError("failed ProviderOutcome must not carry text")

    @classmethod
    def success(cls, provider: str, text: str, latency_ms: int = 0) -> "ProviderOutcome":
        return cls(provider=provider, text=text, latency_ms=latency_ms)

    @classmethod
    def failure(
        cls,
        provider: str,
        error: ErrorKind,
        detail: str = "",
        latency_ms: int = 0,
        *,
        credential_exhausted: bool = False,
    ) -> "ProviderOutcome":
        return cls(
            provider=provider,
            error=error,
            detail=detail,
            latency_ms=latency_ms,
            credential_exhausted=credential_exhausted,
        )

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_error(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class PipelineResult(Generic[T]):
    success: bool
    data: T | None = None
    provider_used: str | None = None
    error: ErrorKind | None = None
    detail: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: T, provider_used: str | None = None, **metadata: Any) -> "PipelineResult[T]":
        return cls(success=True, data=data, provider_used=provider_used, metadata=metadata)

    @classmethod
    def fail(cls, error: ErrorKind, detail: str = "", **metadata: Any) -> "PipelineResult[T]":
        return cls(success=False, error=error, detail=detail, metadata=metadata)

    def to_dict(self) -> dict[str, Any]:
        data = self.data
        if isinstance(data, list):
            data = [item.to_dict() if hasattr(item, "to_dict") else item for item in data]
        elif hasattr(data, "to_dict"):
            data = data.to_dict()

        return {
            "success": self.success,
            "data": data,
            "providerUsed": self.provider_used,
            "error": self.error.value if self.error else None,
            "detail": self.detail or None,
            "metadata": self.metadata,
        }
