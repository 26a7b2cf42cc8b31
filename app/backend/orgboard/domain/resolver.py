"""Mutation resolver: reads and copy-on-write updates addressed by field paths."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any

from orgboard.domain.errors import MutationConflictError, PathNotFoundError
from orgboard.domain.field_path import (
    BudgetField,
    BudgetPath,
    EXPENSE_FIELDS,
    FieldPath,
    LINE_FIELDS,
    PersonnelField,
    PersonnelPath,
    RoleField,
    RolePath,
    TimelineField,
    TimelinePath,
)
from orgboard.domain.graph import (
    GLOBAL_SCOPE,
    SHARED_SCOPE,
    BudgetUnit,
    EntityGraph,
    Person,
    Role,
    TimelinePhase,
    detailed_responsibilities_to_document,
    operational_expenses_to_document,
    personnel_costs_to_document,
)

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"^[+-]?\d+")

STORE_PERSONNEL = "personnel"
STORE_ROLES = "roles"
STORE_TIMELINE = "timeline"
STORE_BUDGET = "budget"


@dataclass(frozen=True, slots=True)
class DocumentWrite:
    """Partial update of one stored document produced by a committed edit."""

    domain: str
    scope_id: str
    entity_id: str
    fields: Mapping[str, Any]


# ---------- Value conversion ----------
def coerce_int(value: object) -> int:
    """Parse a leading integer; anything unparsable becomes 0."""

    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    match = _LEADING_INT.match(str(value if value is not None else "").strip())
    if match is None:
        logger.debug("Coerced non-numeric input %r to 0", value)
        return 0
    return int(match.group(0))


def split_skills(value: object) -> tuple[str, ...]:
    if isinstance(value, (list, tuple)):
        items = [str(item) for item in value]
    else:
        items = str(value if value is not None else "").split(",")
    return tuple(item.strip() for item in items if item.strip())


def join_skills(skills: Sequence[str]) -> str:
    return ", ".join(skills)


def _text(value: object) -> str:
    return "" if value is None else str(value)


def _optional_text(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def display_text(value: object) -> str:
    """String form of a leaf value as shown in an editable field."""

    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return join_skills(value)
    return str(value)


def _replace_at(items: tuple[Any, ...], index: int, item: Any) -> tuple[Any, ...]:
    return items[:index] + (item,) + items[index + 1 :]


def _checked_index(path: FieldPath, items: Sequence[Any], index: int | None, label: str) -> int:
    if index is None or not 0 <= index < len(items):
        raise PathNotFoundError(path, f"{label} index {index} out of range")
    return index


# ---------- Personnel ----------
def _locate_person(graph: EntityGraph, path: PersonnelPath) -> tuple[int, Person]:
    found = graph.find_person(path.person_id)
    if found is None:
        raise PathNotFoundError(path, f"person {path.person_id!r} does not exist")
    return found


def _read_personnel(graph: EntityGraph, path: PersonnelPath) -> object:
    _, person = _locate_person(graph, path)
    if path.field is PersonnelField.NAME:
        return person.name
    if path.field is PersonnelField.SKILLS:
        return join_skills(person.skills)
    if path.field is PersonnelField.NOTES:
        return person.notes
    if path.field is PersonnelField.EXPERIENCE:
        return person.experience
    if path.field is PersonnelField.ASSIGNED_ROLE:
        return person.assigned_role
    return person.assigned_factory_id


def _apply_personnel(graph: EntityGraph, path: PersonnelPath, value: object) -> EntityGraph:
    index, person = _locate_person(graph, path)
    if path.field is PersonnelField.NAME:
        updated = replace(person, name=_text(value))
    elif path.field is PersonnelField.SKILLS:
        updated = replace(person, skills=split_skills(value))
    elif path.field is PersonnelField.NOTES:
        updated = replace(person, notes=_text(value))
    elif path.field is PersonnelField.EXPERIENCE:
        updated = replace(person, experience=coerce_int(value))
    elif path.field is PersonnelField.ASSIGNED_ROLE:
        updated = replace(person, assigned_role=_optional_text(value))
    else:
        updated = replace(person, assigned_factory_id=_optional_text(value))
    return replace(graph, personnel=_replace_at(graph.personnel, index, updated))


def _personnel_write(graph: EntityGraph, path: PersonnelPath) -> DocumentWrite:
    _, person = _locate_person(graph, path)
    value: object = _read_personnel(graph, path)
    if path.field is PersonnelField.SKILLS:
        value = list(person.skills)
    return DocumentWrite(STORE_PERSONNEL, GLOBAL_SCOPE, person.id, {path.field.value: value})


# ---------- Roles ----------
def _role_scope(graph: EntityGraph, path: RolePath) -> str:
    return SHARED_SCOPE if path.shared else graph.factory_id


def _locate_role(graph: EntityGraph, path: RolePath) -> Role:
    role = graph.find_role(path.role_id, _role_scope(graph, path))
    if role is None:
        raise PathNotFoundError(path, f"role {path.role_id!r} does not exist in scope {_role_scope(graph, path)!r}")
    return role


def _locate_category(role: Role, path: RolePath) -> tuple[str, ...]:
    if path.category not in role.detailed_responsibilities:
        raise PathNotFoundError(path, f"responsibility category {path.category!r} does not exist")
    return role.detailed_responsibilities[path.category]


def _read_role(graph: EntityGraph, path: RolePath) -> object:
    role = _locate_role(graph, path)
    if path.field is RoleField.TITLE:
        return role.title
    if path.field is RoleField.RESPONSIBILITY:
        return role.responsibilities[_checked_index(path, role.responsibilities, path.index, "responsibility")]
    items = _locate_category(role, path)
    if path.field is RoleField.CATEGORY:
        return path.category
    return items[_checked_index(path, items, path.index, "detailed responsibility")]


def _rename_category(role: Role, path: RolePath, new_name: str) -> Role:
    if new_name != path.category and new_name in role.detailed_responsibilities:
        raise MutationConflictError(f"Responsibility category {new_name!r} already exists on role {role.id!r}.")
    renamed = {
        (new_name if category == path.category else category): items
        for category, items in role.detailed_responsibilities.items()
    }
    return replace(role, detailed_responsibilities=renamed)


def _apply_role(graph: EntityGraph, path: RolePath, value: object) -> EntityGraph:
    role = _locate_role(graph, path)
    text = _text(value)
    if path.field is RoleField.TITLE:
        updated = replace(role, title=text)
    elif path.field is RoleField.RESPONSIBILITY:
        index = _checked_index(path, role.responsibilities, path.index, "responsibility")
        updated = replace(role, responsibilities=_replace_at(role.responsibilities, index, text))
    elif path.field is RoleField.CATEGORY:
        _locate_category(role, path)
        updated = _rename_category(role, path, text)
    else:
        items = _locate_category(role, path)
        index = _checked_index(path, items, path.index, "detailed responsibility")
        detailed = dict(role.detailed_responsibilities)
        detailed[path.category] = _replace_at(items, index, text)
        updated = replace(role, detailed_responsibilities=detailed)

    scope = _role_scope(graph, path)
    scoped_roles = {**graph.roles[scope], role.id: updated}
    return replace(graph, roles={**graph.roles, scope: scoped_roles})


def _role_write(graph: EntityGraph, path: RolePath) -> DocumentWrite:
    role = _locate_role(graph, path)
    scope = _role_scope(graph, path)
    if path.field is RoleField.TITLE:
        fields: dict[str, Any] = {"title": role.title}
    elif path.field is RoleField.RESPONSIBILITY:
        fields = {"responsibilities": list(role.responsibilities)}
    else:
        fields = {
            "detailedResponsibilities": detailed_responsibilities_to_document(role.detailed_responsibilities)
        }
    return DocumentWrite(STORE_ROLES, scope, role.id, fields)


# ---------- Timeline ----------
def _locate_phase(graph: EntityGraph, path: TimelinePath) -> tuple[int, TimelinePhase]:
    index = _checked_index(path, graph.timeline, path.phase_index, "phase")
    return index, graph.timeline[index]


def _read_timeline(graph: EntityGraph, path: TimelinePath) -> object:
    _, phase = _locate_phase(graph, path)
    if path.field is TimelineField.PHASE:
        return phase.phase
    if path.field is TimelineField.TIMEFRAME:
        return phase.timeframe
    return phase.activities[_checked_index(path, phase.activities, path.activity_index, "activity")]


def _apply_timeline(graph: EntityGraph, path: TimelinePath, value: object) -> EntityGraph:
    index, phase = _locate_phase(graph, path)
    text = _text(value)
    if path.field is TimelineField.PHASE:
        updated = replace(phase, phase=text)
    elif path.field is TimelineField.TIMEFRAME:
        updated = replace(phase, timeframe=text)
    else:
        activity = _checked_index(path, phase.activities, path.activity_index, "activity")
        updated = replace(phase, activities=_replace_at(phase.activities, activity, text))
    return replace(graph, timeline=_replace_at(graph.timeline, index, updated))


def _timeline_write(graph: EntityGraph, path: TimelinePath) -> DocumentWrite:
    _, phase = _locate_phase(graph, path)
    if path.field is TimelineField.ACTIVITY:
        fields: dict[str, Any] = {"activities": list(phase.activities)}
    else:
        fields = {path.field.value: getattr(phase, path.field.value)}
    return DocumentWrite(STORE_TIMELINE, graph.factory_id, phase.id, fields)


# ---------- Budget ----------
def _locate_unit(graph: EntityGraph, path: BudgetPath) -> BudgetUnit:
    unit = graph.budget.get(path.factory_id)
    if unit is None:
        raise PathNotFoundError(path, f"budget unit {path.factory_id!r} does not exist")
    return unit


def _read_budget(graph: EntityGraph, path: BudgetPath) -> object:
    unit = _locate_unit(graph, path)
    if path.field in LINE_FIELDS:
        category = unit.personnel_costs.get(path.category)
        if category is None:
            raise PathNotFoundError(path, f"cost category {path.category!r} does not exist")
        line = category.roles[_checked_index(path, category.roles, path.index, "cost line")]
        if path.field is BudgetField.LINE_TITLE:
            return line.title
        if path.field is BudgetField.LINE_COUNT:
            return line.count
        return line.cost_range
    if path.field in EXPENSE_FIELDS:
        expense = unit.operational_expenses[
            _checked_index(path, unit.operational_expenses, path.index, "operational expense")
        ]
        if path.field is BudgetField.EXPENSE_AMOUNT:
            return expense.amount
        return expense.category
    if path.field is BudgetField.PRODUCTION_VOLUME:
        return unit.production_volume
    return unit.name


def _apply_budget(graph: EntityGraph, path: BudgetPath, value: object) -> EntityGraph:
    unit = _locate_unit(graph, path)
    if path.field in LINE_FIELDS:
        category = unit.personnel_costs.get(path.category)
        if category is None:
            raise PathNotFoundError(path, f"cost category {path.category!r} does not exist")
        index = _checked_index(path, category.roles, path.index, "cost line")
        line = category.roles[index]
        if path.field is BudgetField.LINE_TITLE:
            line = replace(line, title=_text(value))
        elif path.field is BudgetField.LINE_COUNT:
            line = replace(line, count=coerce_int(value))
        else:
            line = replace(line, cost_range=_text(value))
        category = replace(category, roles=_replace_at(category.roles, index, line))
        updated = replace(unit, personnel_costs={**unit.personnel_costs, path.category: category})
    elif path.field in EXPENSE_FIELDS:
        index = _checked_index(path, unit.operational_expenses, path.index, "operational expense")
        expense = unit.operational_expenses[index]
        if path.field is BudgetField.EXPENSE_AMOUNT:
            expense = replace(expense, amount=coerce_int(value))
        else:
            expense = replace(expense, category=_text(value))
        updated = replace(unit, operational_expenses=_replace_at(unit.operational_expenses, index, expense))
    elif path.field is BudgetField.PRODUCTION_VOLUME:
        updated = replace(unit, production_volume=coerce_int(value))
    else:
        updated = replace(unit, name=_text(value))
    return replace(graph, budget={**graph.budget, path.factory_id: updated})


def _budget_write(graph: EntityGraph, path: BudgetPath) -> DocumentWrite:
    unit = _locate_unit(graph, path)
    if path.field in LINE_FIELDS:
        fields: dict[str, Any] = {"personnelCosts": personnel_costs_to_document(unit.personnel_costs)}
    elif path.field in EXPENSE_FIELDS:
        fields = {"operationalExpenses": operational_expenses_to_document(unit.operational_expenses)}
    elif path.field is BudgetField.PRODUCTION_VOLUME:
        fields = {"productionVolume": unit.production_volume}
    else:
        fields = {"name": unit.name}
    return DocumentWrite(STORE_BUDGET, GLOBAL_SCOPE, path.factory_id, fields)


_READERS = {
    PersonnelPath: _read_personnel,
    RolePath: _read_role,
    TimelinePath: _read_timeline,
    BudgetPath: _read_budget,
}
_APPLIERS = {
    PersonnelPath: _apply_personnel,
    RolePath: _apply_role,
    TimelinePath: _apply_timeline,
    BudgetPath: _apply_budget,
}
_WRITERS = {
    PersonnelPath: _personnel_write,
    RolePath: _role_write,
    TimelinePath: _timeline_write,
    BudgetPath: _budget_write,
}


def _handler(table: Mapping[type, Any], path: FieldPath) -> Any:
    try:
        return table[type(path)]
    except KeyError:
        raise TypeError(f"Unsupported field path type: {type(path).__name__}") from None


def read(graph: EntityGraph, path: FieldPath) -> object:
    """Return the leaf value addressed by ``path``.

    Skills are returned in their display form (comma-joined).
    """

    return _handler(_READERS, path)(graph, path)


def apply(graph: EntityGraph, path: FieldPath, value: object) -> EntityGraph:
    """Return a new graph with the leaf at ``path`` set to ``value``.

    ``graph`` is left untouched; only the containers along ``path`` are rebuilt.
    Raises PathNotFoundError when ``path`` does not resolve.
    """

    return _handler(_APPLIERS, path)(graph, path, value)


def relocated(path: FieldPath, value: object) -> FieldPath:
    """Path that addresses the leaf after ``apply(graph, path, value)``.

    Renaming a responsibility category moves the heading under its new name;
    every other leaf stays where it is.
    """

    if isinstance(path, RolePath) and path.field is RoleField.CATEGORY:
        return replace(path, category=_text(value))
    return path


def persisted_update(graph: EntityGraph, path: FieldPath) -> DocumentWrite:
    """Document write that persists the current value at ``path``."""

    return _handler(_WRITERS, path)(graph, path)


# ---------- Personnel membership ----------
def insert_person(graph: EntityGraph, person: Person, index: int | None = None) -> EntityGraph:
    if graph.find_person(person.id) is not None:
        raise MutationConflictError(f"Person {person.id!r} already exists.")
    position = len(graph.personnel) if index is None else max(0, min(index, len(graph.personnel)))
    personnel = graph.personnel[:position] + (person,) + graph.personnel[position:]
    return replace(graph, personnel=personnel)


def remove_person(graph: EntityGraph, person_id: str) -> tuple[EntityGraph, int, Person]:
    """Drop a person; returns the new graph plus the removed position and entity."""

    found = graph.find_person(person_id)
    if found is None:
        raise PathNotFoundError(person_id, f"person {person_id!r} does not exist")
    index, person = found
    return replace(graph, personnel=graph.personnel[:index] + graph.personnel[index + 1 :]), index, person
