"""
The scoring capability shared by every feed item shape.

Anything exposing these four read-only attributes can be ranked: the marketplace
models in `fitfeed.domain.models` do, and `ScorableRecord` covers ad-hoc callers.
Which timestamp feeds `reference_timestamp` is the item type's decision (session
time for listings, publish time for packages), not the engine's.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Generic, Protocol, TypeVar, runtime_checkable


@runtime_checkable
class Scorable(Protocol):
    @property
    def sport(self) -> str: ...

    @property
    def rating(self) -> float | None: ...

    @property
    def review_count(self) -> int | None: ...

    @property
    def reference_timestamp(self) -> datetime | None: ...


@dataclass(frozen=True)
class ScorableRecord:
    """Plain scorable item for callers that do not use the marketplace models."""

    sport: str
    rating: float | None = None
    review_count: int | None = None
    reference_timestamp: datetime | None = None
    id: str | None = None


T = TypeVar("T", bound=Scorable)


@dataclass(frozen=True)
class ScoredItem(Generic[T]):
    """An item paired with the score it got in one ranking call."""

    item: T
    score: float
