from typing import Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field

from edu_gateway.errors import FailureKind, GenerationFailure

# Upstream statuses worth trying again on the next (cheaper) model
RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


class RetryEntry(BaseModel):
    model: str
    timeout: float = Field(gt=0, description="Seconds allowed until the first delta")


class RetryPlan(BaseModel):
    """Ordered (model, timeout) pairs, highest quality first."""

    entries: List[RetryEntry] = Field(min_length=1)

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, float]]) -> "RetryPlan":
        return cls(entries=[RetryEntry(model=m, timeout=t) for m, t in pairs])

    def led_by(self, model: Optional[str]) -> "RetryPlan":
        """Plan that tries ``model`` first and then the remaining entries."""
        if not model:
            return self
        head = next((e for e in self.entries if e.model == model), None)
        if head is None:
            head = RetryEntry(model=model, timeout=self.entries[0].timeout)
        rest = [e for e in self.entries if e.model != model]
        return RetryPlan(entries=[head, *rest])

    def __len__(self) -> int:
        return len(self.entries)


def is_retryable(exc: BaseException) -> bool:
    """Only failures before the first delta reach this check."""
    if not isinstance(exc, GenerationFailure):
        return False
    if exc.kind in (FailureKind.TIMEOUT, FailureKind.TRANSPORT, FailureKind.INTERRUPTED):
        return True
    if exc.kind is FailureKind.UPSTREAM_REJECTED:
        return exc.status in RETRYABLE_STATUS
    return False
