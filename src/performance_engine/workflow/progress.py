"""Progress aggregation for responsibilities and plans.

Progress is always derived at read time from activity records; nothing here
is stored.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Sequence

from performance_engine.workflow.types import ActivityStatus

if TYPE_CHECKING:
    from performance_engine.workflow.records import Activity, Responsibility


def _to_percent(value: Decimal) -> int:
    """Round a percentage to a whole number, half up."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def responsibility_progress(activities: Sequence[Activity]) -> int:
    """Percentage of completed activities, 0 when there are none."""
    if not activities:
        return 0
    completed = sum(1 for a in activities if a.status == ActivityStatus.COMPLETED)
    return _to_percent(Decimal(completed * 100) / Decimal(len(activities)))


def plan_progress(responsibilities: Sequence[Responsibility]) -> int:
    """Weight-averaged progress of a plan's responsibilities.

    Returns 0 when the total weight is 0.
    """
    total_weight = sum(r.weight for r in responsibilities)
    if total_weight <= 0:
        return 0
    weighted = sum(
        Decimal(r.weight) * responsibility_progress(r.activities)
        for r in responsibilities
    )
    return _to_percent(weighted / Decimal(total_weight))
