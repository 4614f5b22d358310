from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Tuple

from speedtrack.core.types import PositionSample

DEFAULT_CAPACITY = 15


@dataclass(frozen=True)
class PositionHistory:
    """Fixed-capacity FIFO of center positions, oldest first.

    The buffer is immutable: `appended()` returns a new history and leaves the
    original untouched, so two tracks can never observe each other's samples.

    Samples must be appended in non-decreasing timestamp order. Equal
    timestamps are allowed (they carry no speed signal); going backwards in
    time or negative timestamps raise ValueError.
    """

    samples: Tuple[PositionSample, ...] = ()
    capacity: int = DEFAULT_CAPACITY

    def __post_init__(self) -> None:
        if int(self.capacity) < 1:
            raise ValueError(f"capacity must be >= 1, got {self.capacity!r}")
        if len(self.samples) > int(self.capacity):
            raise ValueError(
                f"history holds {len(self.samples)} samples, capacity is {self.capacity}"
            )

    @classmethod
    def start(cls, sample: PositionSample, capacity: int = DEFAULT_CAPACITY) -> "PositionHistory":
        """Create a history holding a single sample."""
        return cls(samples=(), capacity=int(capacity)).appended(sample)

    def appended(self, sample: PositionSample) -> "PositionHistory":
        """Return a copy with `sample` added, evicting the oldest on overflow."""
        if sample.timestamp_ms < 0:
            raise ValueError(f"negative timestamp: {sample.timestamp_ms!r}")
        if self.samples and sample.timestamp_ms < self.samples[-1].timestamp_ms:
            raise ValueError(
                f"out-of-order sample: {sample.timestamp_ms!r} < {self.samples[-1].timestamp_ms!r}"
            )
        samples = self.samples + (sample,)
        if len(samples) > self.capacity:
            samples = samples[-self.capacity:]
        return PositionHistory(samples=samples, capacity=self.capacity)

    @property
    def latest(self) -> PositionSample:
        if not self.samples:
            raise IndexError("empty history")
        return self.samples[-1]

    def __len__(self) -> int:
        return len(self.samples)

    def __iter__(self) -> Iterator[PositionSample]:
        return iter(self.samples)
