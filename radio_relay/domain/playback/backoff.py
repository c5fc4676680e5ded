"""Reconnect backoff policy."""

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_MAX_RECONNECT_ATTEMPTS = 5
MIN_RECONNECT_ATTEMPTS = 3
MAX_RECONNECT_ATTEMPTS = 5
DEFAULT_BASE_DELAY_MS = 1000
DEFAULT_CAP_DELAY_MS = 10000


class ReconnectPolicy(BaseModel):
    """Bounded exponential backoff.

    The delay before the Nth reconnect attempt is
    ``min(base_delay_ms * 2 ** (N - 1), cap_delay_ms)``.

    Attributes:
        max_attempts: Reconnect attempts allowed before giving up (3-5)
        base_delay_ms: Delay before the first attempt
        cap_delay_ms: Upper bound for any single delay
    """

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(
        default=DEFAULT_MAX_RECONNECT_ATTEMPTS,
        ge=MIN_RECONNECT_ATTEMPTS,
        le=MAX_RECONNECT_ATTEMPTS,
    )
    base_delay_ms: int = Field(default=DEFAULT_BASE_DELAY_MS, gt=0)
    cap_delay_ms: int = Field(default=DEFAULT_CAP_DELAY_MS, gt=0)

    @model_validator(mode="after")
    def _check_cap(self) -> "ReconnectPolicy":
        if self.cap_delay_ms < self.base_delay_ms:
            raise ValueError("cap_delay_ms must be >= base_delay_ms")
        return self

    def delay_for(self, attempt: int) -> int:
        """Return the delay in milliseconds before the given 1-based attempt."""
        if attempt < 1:
            raise ValueError(f"attempt must be >= 1, got {attempt}")
        # exponent is clamped; the cap always wins long before 2**32
        exponent = min(attempt - 1, 32)
        return min(self.base_delay_ms * (2**exponent), self.cap_delay_ms)

    def schedule(self) -> list[int]:
        """All delays this policy will ever use, in order."""
        return [self.delay_for(n) for n in range(1, self.max_attempts + 1)]
