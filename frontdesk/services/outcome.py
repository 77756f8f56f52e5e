from dataclasses import dataclass, field
from typing import Any, Generic, List, TypeVar

T = TypeVar('T')


@dataclass
class Outcome(Generic[T]):
    """Primary result of a write plus the side effects that failed.

    The primary write has already succeeded when an ``Outcome`` is
    returned; ``failures`` lists best-effort steps (billing, mostly) that
    did not, so callers can surface them without failing the request.
    """
    value: T
    extras: dict = field(default_factory=dict)
    failures: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def fail(self, message: str) -> None:
        self.failures.append(message)

    def __getitem__(self, key: str) -> Any:
        return self.extras[key]
