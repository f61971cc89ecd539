"""Planning horizon model.

The horizon is a finite, totally ordered sequence of period identifiers.
Inventory entering the first period and leaving the last period is zero, so
the model needs first/last and predecessor/successor lookups.
"""

from typing import Dict, Iterator, Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

#: Period identifiers may be integers (1, 2, ...) or labels ("2025-W01")
PeriodId = Union[int, str]


class PlanningHorizon(BaseModel):
    """
    Ordered sequence of planning periods.

    Attributes:
        periods: Period identifiers in chronological order (non-empty, unique)

    Example:
        horizon = PlanningHorizon(periods=(1, 2, 3))
        assert horizon.first == 1
        assert horizon.predecessor(2) == 1
        assert horizon.successor(3) is None
        assert horizon.remaining_periods(2) == 2
    """

    periods: Tuple[PeriodId, ...] = Field(..., description="Periods in chronological order")

    model_config = ConfigDict(frozen=True)

    _position: Dict[PeriodId, int] = PrivateAttr(default_factory=dict)

    @field_validator('periods')
    @classmethod
    def periods_non_empty_and_unique(cls, v):
        """Horizon must contain at least one period and no repeats."""
        if len(v) == 0:
            raise ValueError("Planning horizon must contain at least one period")
        seen = set()
        duplicates = [p for p in v if p in seen or seen.add(p)]
        if duplicates:
            raise ValueError(f"Duplicate periods in horizon: {duplicates}")
        return v

    def model_post_init(self, __context) -> None:
        self._position = {p: i for i, p in enumerate(self.periods)}

    @property
    def first(self) -> PeriodId:
        """First period of the horizon."""
        return self.periods[0]

    @property
    def last(self) -> PeriodId:
        """Last period of the horizon."""
        return self.periods[-1]

    def position(self, period: PeriodId) -> int:
        """Zero-based position of a period.

        Raises:
            KeyError: If period is not in the horizon
        """
        try:
            return self._position[period]
        except KeyError:
            raise KeyError(f"Period {period!r} is not in the planning horizon") from None

    def predecessor(self, period: PeriodId) -> Optional[PeriodId]:
        """Previous period, or None for the first period."""
        pos = self.position(period)
        return self.periods[pos - 1] if pos > 0 else None

    def successor(self, period: PeriodId) -> Optional[PeriodId]:
        """Next period, or None for the last period."""
        pos = self.position(period)
        return self.periods[pos + 1] if pos + 1 < len(self.periods) else None

    def remaining_periods(self, period: PeriodId) -> int:
        """Number of periods from ``period`` to the end, inclusive."""
        return len(self.periods) - self.position(period)

    def __contains__(self, period) -> bool:
        return period in self._position

    def __iter__(self) -> Iterator[PeriodId]:  # type: ignore[override]
        return iter(self.periods)

    def __len__(self) -> int:
        return len(self.periods)

    def __str__(self) -> str:
        """String representation."""
        return f"{len(self.periods)} periods ({self.first} .. {self.last})"
