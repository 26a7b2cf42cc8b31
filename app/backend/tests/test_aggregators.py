from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

import pytest

from orgboard.domain.aggregators import cost_midpoint, headcount_gaps, summarize_all_budgets, summarize_budget
from orgboard.domain.graph import (
    SHARED_SCOPE,
    BudgetLine,
    BudgetUnit,
    CostCategory,
    EntityGraph,
    OperationalExpense,
    Person,
    Role,
    dangling_next_roles,
    roster_for,
)


def _graph() -> EntityGraph:
    return EntityGraph(
        factory_id="factoryA",
        personnel=(
            Person(id="p1", name="Jane"),
            Person(id="p2", name="Omar", assigned_role="qm", assigned_factory_id="factoryA"),
            Person(id="p3", name="Lee", assigned_role="hr", assigned_factory_id=SHARED_SCOPE),
        ),
        roles={
            "factoryA": {
                "qm": Role(id="qm", title="Quality Manager", next_roles=("plant_director",)),
                "ops": Role(id="ops", title="Operations Lead"),
            },
            SHARED_SCOPE: {"hr": Role(id="hr", title="HR Partner", next_roles=("ops",))},
        },
        budget={
            "factoryA": BudgetUnit(
                name="Factory A",
                personnel_costs={
                    "quality": CostCategory(
                        title="Quality",
                        roles=(
                            BudgetLine(title="Quality Director", count=1, cost_range="$150,000 - $180,000"),
                            BudgetLine(title="Quality Managers", count=3, cost_range="$378,000 - $474,000"),
                        ),
                    )
                },
                operational_expenses=(
                    OperationalExpense(category="Utilities", amount=5000),
                    OperationalExpense(category="Maintenance", amount=8000),
                ),
                production_volume=1000,
            ),
            "factoryB": BudgetUnit(name="", production_volume=0),
        },
    )


@pytest.mark.parametrize(
    ("cost_range", "expected"),
    [
        ("$150,000 - $180,000", Decimal("165000.00")),
        ("70k-90k", Decimal("80000.00")),
        ("$95,000", Decimal("95000.00")),
        ("TBD", Decimal("0.00")),
        ("", Decimal("0.00")),
        (None, Decimal("0.00")),
    ],
)
def test_cost_midpoint(cost_range: str | None, expected: Decimal) -> None:
    assert cost_midpoint(cost_range) == expected


def test_budget_summary_totals() -> None:
    graph = _graph()

    summary = summarize_budget("factoryA", graph.budget["factoryA"])

    assert summary.total_personnel_cost == Decimal("591000.00")
    assert summary.total_operational_expenses == Decimal("13000.00")
    assert summary.total_budget == Decimal("604000.00")
    assert summary.cost_per_unit == Decimal("604.00")


def test_budget_summary_without_volume_has_zero_unit_cost() -> None:
    summaries = {summary.factory_id: summary for summary in summarize_all_budgets(_graph())}

    assert summaries["factoryB"].cost_per_unit == Decimal("0.00")
    assert summaries["factoryB"].name == "factoryB"


def test_headcount_gaps_compare_required_with_roster() -> None:
    gaps = headcount_gaps(
        _graph(),
        work_orders={"inspection": 250},
        productivity_metrics={"inspection": 100},
        role_task_mapping={"qm": ["inspection"], "ops": ["unknown"]},
    )

    by_role = {gap.role_id: gap for gap in gaps}
    assert set(by_role) == {"qm", "hr"}
    assert (by_role["qm"].required, by_role["qm"].available, by_role["qm"].difference) == (3, 1, -2)
    assert (by_role["hr"].required, by_role["hr"].available) == (0, 1)


def test_headcount_gaps_ignore_same_role_in_other_factory() -> None:
    graph = _graph()
    graph = replace(
        graph,
        personnel=graph.personnel
        + (
            Person(id="p4", name="Ana", assigned_role="qm", assigned_factory_id="factoryB"),
            Person(id="p5", name="Kim", assigned_role="hr", assigned_factory_id="factoryB"),
        ),
    )

    gaps = {gap.role_id: gap for gap in headcount_gaps(graph, {}, {}, {})}

    assert gaps["qm"].available == 1
    assert gaps["hr"].available == 1


def test_roster_is_derived_from_assignments() -> None:
    graph = _graph()

    assert [person.id for person in roster_for(graph, "qm")] == ["p2"]
    assert [person.id for person in roster_for(graph, "hr", SHARED_SCOPE)] == ["p3"]
    assert roster_for(graph, "hr", "factoryB") == ()


def test_dangling_next_roles_are_reported() -> None:
    assert dangling_next_roles(_graph()) == {"qm": ("plant_director",)}
