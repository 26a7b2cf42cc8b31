"""In-memory entity graph for the organization dashboard.

The graph is immutable: entities are frozen dataclasses and nested collections
are tuples or mappings that are never written in place. The mutation resolver
builds new containers on every change and shares everything it does not touch.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

SHARED_SCOPE = "_shared"
GLOBAL_SCOPE = "_global"


@dataclass(frozen=True, slots=True)
class Person:
    id: str
    name: str
    skills: tuple[str, ...] = ()
    notes: str = ""
    experience: int = 0
    assigned_role: str | None = None
    assigned_factory_id: str | None = None

    @property
    def is_assigned(self) -> bool:
        return self.assigned_role is not None


@dataclass(frozen=True, slots=True)
class Role:
    id: str
    title: str
    color: str = ""
    salary: str = ""
    department: str = ""
    responsibilities: tuple[str, ...] = ()
    detailed_responsibilities: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    kpis: tuple[str, ...] = ()
    skills: tuple[str, ...] = ()
    next_roles: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class TimelinePhase:
    id: str
    phase: str
    timeframe: str = ""
    activities: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class BudgetLine:
    title: str
    count: int = 0
    cost_range: str = ""


@dataclass(frozen=True, slots=True)
class CostCategory:
    title: str
    roles: tuple[BudgetLine, ...] = ()
    subtotal: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class OperationalExpense:
    category: str
    amount: int = 0


@dataclass(frozen=True, slots=True)
class BudgetUnit:
    name: str
    personnel_costs: Mapping[str, CostCategory] = field(default_factory=dict)
    operational_expenses: tuple[OperationalExpense, ...] = ()
    production_volume: int = 0


@dataclass(frozen=True, slots=True)
class EntityGraph:
    """Everything loaded for one active factory selection."""

    factory_id: str
    personnel: tuple[Person, ...] = ()
    roles: Mapping[str, Mapping[str, Role]] = field(default_factory=dict)
    timeline: tuple[TimelinePhase, ...] = ()
    budget: Mapping[str, BudgetUnit] = field(default_factory=dict)

    def find_person(self, person_id: str) -> tuple[int, Person] | None:
        for index, person in enumerate(self.personnel):
            if person.id == person_id:
                return index, person
        return None

    def find_role(self, role_id: str, scope: str | None = None) -> Role | None:
        return self.roles.get(scope or self.factory_id, {}).get(role_id)

    def visible_roles(self) -> dict[str, Role]:
        """Roles of the active factory followed by shared roles not shadowed by them."""

        merged = dict(self.roles.get(SHARED_SCOPE, {}))
        merged.update(self.roles.get(self.factory_id, {}))
        return merged


def roster_for(graph: EntityGraph, role_id: str, scope: str | None = None) -> tuple[Person, ...]:
    """People currently assigned to ``role_id``.

    Membership is never stored; it is always derived from ``Person.assigned_role``.
    When ``scope`` is given, only people assigned within that factory scope count.
    """

    return tuple(
        person
        for person in graph.personnel
        if person.assigned_role == role_id
        and (scope is None or person.assigned_factory_id in (None, scope))
    )


def available_personnel(graph: EntityGraph) -> tuple[Person, ...]:
    return tuple(person for person in graph.personnel if not person.is_assigned)


def dangling_next_roles(graph: EntityGraph) -> dict[str, tuple[str, ...]]:
    """Report ``nextRoles`` entries that point at roles outside the visible scope."""

    visible = graph.visible_roles()
    report: dict[str, tuple[str, ...]] = {}
    for role_id, role in visible.items():
        missing = tuple(target for target in role.next_roles if target not in visible)
        if missing:
            report[role_id] = missing
    return report


# ---------- Document conversion ----------
def _strings(value: object) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(str(item) for item in value)


def _int(value: object) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return int(value)
    return 0


def person_from_document(person_id: str, payload: Mapping[str, Any]) -> Person:
    return Person(
        id=person_id,
        name=str(payload.get("name") or ""),
        skills=_strings(payload.get("skills")),
        notes=str(payload.get("notes") or ""),
        experience=_int(payload.get("experience")),
        assigned_role=payload.get("assignedRole"),
        assigned_factory_id=payload.get("assignedFactoryId"),
    )


def person_to_document(person: Person) -> dict[str, Any]:
    return {
        "name": person.name,
        "skills": list(person.skills),
        "notes": person.notes,
        "experience": person.experience,
        "assignedRole": person.assigned_role,
        "assignedFactoryId": person.assigned_factory_id,
    }


def role_from_document(role_id: str, payload: Mapping[str, Any]) -> Role:
    detailed = payload.get("detailedResponsibilities") or {}
    return Role(
        id=role_id,
        title=str(payload.get("title") or ""),
        color=str(payload.get("color") or ""),
        salary=str(payload.get("salary") or ""),
        department=str(payload.get("department") or ""),
        responsibilities=_strings(payload.get("responsibilities")),
        detailed_responsibilities={str(key): _strings(items) for key, items in detailed.items()},
        kpis=_strings(payload.get("kpis")),
        skills=_strings(payload.get("skills")),
        next_roles=_strings(payload.get("nextRoles")),
    )


def detailed_responsibilities_to_document(detailed: Mapping[str, tuple[str, ...]]) -> dict[str, list[str]]:
    return {category: list(items) for category, items in detailed.items()}


def role_to_document(role: Role) -> dict[str, Any]:
    return {
        "title": role.title,
        "color": role.color,
        "salary": role.salary,
        "department": role.department,
        "responsibilities": list(role.responsibilities),
        "detailedResponsibilities": detailed_responsibilities_to_document(role.detailed_responsibilities),
        "kpis": list(role.kpis),
        "skills": list(role.skills),
        "nextRoles": list(role.next_roles),
    }


def phase_from_document(phase_id: str, payload: Mapping[str, Any]) -> TimelinePhase:
    return TimelinePhase(
        id=phase_id,
        phase=str(payload.get("phase") or ""),
        timeframe=str(payload.get("timeframe") or ""),
        activities=_strings(payload.get("activities")),
    )


def phase_to_document(phase: TimelinePhase) -> dict[str, Any]:
    return {"phase": phase.phase, "timeframe": phase.timeframe, "activities": list(phase.activities)}


def budget_unit_from_document(payload: Mapping[str, Any]) -> BudgetUnit:
    categories: dict[str, CostCategory] = {}
    for key, raw in (payload.get("personnelCosts") or {}).items():
        lines = tuple(
            BudgetLine(
                title=str(line.get("title") or ""),
                count=_int(line.get("count")),
                cost_range=str(line.get("costRange") or ""),
            )
            for line in raw.get("roles") or []
            if line
        )
        categories[str(key)] = CostCategory(
            title=str(raw.get("title") or key),
            roles=lines,
            subtotal=dict(raw.get("subtotal") or {}),
        )
    expenses = tuple(
        OperationalExpense(category=str(item.get("category") or ""), amount=_int(item.get("amount")))
        for item in payload.get("operationalExpenses") or []
        if item
    )
    return BudgetUnit(
        name=str(payload.get("name") or ""),
        personnel_costs=categories,
        operational_expenses=expenses,
        production_volume=_int(payload.get("productionVolume")),
    )


def personnel_costs_to_document(categories: Mapping[str, CostCategory]) -> dict[str, Any]:
    return {
        key: {
            "title": category.title,
            "roles": [
                {"title": line.title, "count": line.count, "costRange": line.cost_range}
                for line in category.roles
            ],
            "subtotal": dict(category.subtotal),
        }
        for key, category in categories.items()
    }


def operational_expenses_to_document(expenses: tuple[OperationalExpense, ...]) -> list[dict[str, Any]]:
    return [{"category": item.category, "amount": item.amount} for item in expenses]


def budget_unit_to_document(unit: BudgetUnit) -> dict[str, Any]:
    return {
        "name": unit.name,
        "personnelCosts": personnel_costs_to_document(unit.personnel_costs),
        "operationalExpenses": operational_expenses_to_document(unit.operational_expenses),
        "productionVolume": unit.production_volume,
    }


def graph_to_document(graph: EntityGraph) -> dict[str, Any]:
    """Read-only snapshot consumed by exports and charts."""

    return {
        "factoryId": graph.factory_id,
        "personnel": [{"id": person.id, **person_to_document(person)} for person in graph.personnel],
        "roles": {
            scope: {role_id: role_to_document(role) for role_id, role in roles.items()}
            for scope, roles in graph.roles.items()
        },
        "timeline": [{"id": phase.id, **phase_to_document(phase)} for phase in graph.timeline],
        "budget": {factory_id: budget_unit_to_document(unit) for factory_id, unit in graph.budget.items()},
    }
