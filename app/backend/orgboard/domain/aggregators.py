"""Read-only aggregations over the entity graph (budget totals, headcount gaps)."""

from __future__ import annotations

import math
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal

from orgboard.domain.graph import SHARED_SCOPE, BudgetUnit, EntityGraph, roster_for

ZERO = Decimal("0.00")
Q2 = Decimal("0.01")

_AMOUNT = re.compile(r"\d[\d,]*(?:\.\d+)?k?", re.IGNORECASE)


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2)


@dataclass(frozen=True, slots=True)
class BudgetSummary:
    factory_id: str
    name: str
    total_personnel_cost: Decimal
    total_operational_expenses: Decimal
    total_budget: Decimal
    cost_per_unit: Decimal
    production_volume: int


@dataclass(frozen=True, slots=True)
class HeadcountGap:
    role_id: str
    title: str
    required: int
    available: int

    @property
    def difference(self) -> int:
        return self.available - self.required


def cost_midpoint(cost_range: str | None) -> Decimal:
    """Midpoint of a cost range such as ``"$150,000 - $180,000"`` or ``"70k-90k"``.

    A single number is returned as-is; anything unparsable yields zero.
    """

    if not cost_range or not isinstance(cost_range, str):
        return ZERO

    values: list[Decimal] = []
    for token in _AMOUNT.findall(cost_range):
        multiplier = Decimal(1000) if token.lower().endswith("k") else Decimal(1)
        values.append(Decimal(token.rstrip("kK").replace(",", "")) * multiplier)

    if not values:
        return ZERO
    if len(values) == 1:
        return _q2(values[0])
    return _q2((values[0] + values[1]) / 2)


def summarize_budget(factory_id: str, unit: BudgetUnit) -> BudgetSummary:
    personnel = sum(
        (cost_midpoint(line.cost_range) for category in unit.personnel_costs.values() for line in category.roles),
        ZERO,
    )
    operational = sum((Decimal(item.amount) for item in unit.operational_expenses), ZERO)
    total = _q2(personnel + operational)
    per_unit = _q2(total / unit.production_volume) if unit.production_volume > 0 else ZERO
    return BudgetSummary(
        factory_id=factory_id,
        name=unit.name or factory_id,
        total_personnel_cost=_q2(personnel),
        total_operational_expenses=_q2(operational),
        total_budget=total,
        cost_per_unit=per_unit,
        production_volume=unit.production_volume,
    )


def summarize_all_budgets(graph: EntityGraph) -> list[BudgetSummary]:
    return [summarize_budget(factory_id, unit) for factory_id, unit in graph.budget.items()]


def required_headcount(
    work_orders: Mapping[str, int],
    productivity_metrics: Mapping[str, int],
    role_task_mapping: Mapping[str, Sequence[str]],
) -> dict[str, int]:
    per_task: dict[str, int] = {}
    for task_key, volume in work_orders.items():
        metric = productivity_metrics.get(task_key, 0)
        per_task[task_key] = math.ceil(volume / metric) if volume > 0 and metric > 0 else 0

    return {
        role_id: sum(per_task.get(task_key, 0) for task_key in task_keys)
        for role_id, task_keys in role_task_mapping.items()
    }


def headcount_gaps(
    graph: EntityGraph,
    work_orders: Mapping[str, int],
    productivity_metrics: Mapping[str, int],
    role_task_mapping: Mapping[str, Sequence[str]],
) -> list[HeadcountGap]:
    """Compare required headcount per role with people currently assigned to it.

    Only people assigned within the role's own scope (the active factory, or
    the shared scope for shared roles) count as available. Roles with nothing
    required and nobody assigned are omitted.
    """

    required = required_headcount(work_orders, productivity_metrics, role_task_mapping)
    factory_roles = graph.roles.get(graph.factory_id, {})
    gaps: list[HeadcountGap] = []
    for role_id, role in graph.visible_roles().items():
        scope = graph.factory_id if role_id in factory_roles else SHARED_SCOPE
        needed = required.get(role_id, 0)
        available = len(roster_for(graph, role_id, scope))
        if needed == 0 and available == 0:
            continue
        gaps.append(HeadcountGap(role_id=role_id, title=role.title or role_id, required=needed, available=available))
    return gaps
