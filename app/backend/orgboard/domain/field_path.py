"""Typed field paths and the edit-id codec.

A field path names exactly one editable leaf of the entity graph. In Python the
path is a tagged union of four frozen dataclasses, one per domain. The UI still
needs a flat string to tag editable elements with, so the codec maps every path
to a fixed-arity, delimiter-joined edit id and back::

    [domain, entityId, section, key, index, leaf]

Every id has exactly six segments, since a budget personnel-cost line needs a
section, a category, an index and a leaf at once. Shorter forms such as
``personnel-p1-name`` are rejected as malformed. Unused positions hold the
``na`` placeholder. Segment values are escaped so that ids containing the
delimiter, the scope separator or the placeholder text still round-trip.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar
from urllib.parse import unquote

from orgboard.domain.errors import MalformedPathError
from orgboard.domain.graph import SHARED_SCOPE

DELIMITER = "-"
PLACEHOLDER = "na"
PATH_ARITY = 6
SCOPE_SEPARATOR = ":"

_ESCAPES = {"%": "%25", DELIMITER: "%2D", SCOPE_SEPARATOR: "%3A"}
_ESCAPED_PLACEHOLDER = "%6E%61"


class Domain(str, Enum):
    PERSONNEL = "personnel"
    ROLE = "role"
    TIMELINE = "timeline"
    BUDGET = "budget"


class PersonnelField(str, Enum):
    NAME = "name"
    SKILLS = "skills"
    NOTES = "notes"
    EXPERIENCE = "experience"
    ASSIGNED_ROLE = "assignedRole"
    ASSIGNED_FACTORY_ID = "assignedFactoryId"


class RoleField(str, Enum):
    TITLE = "title"
    RESPONSIBILITY = "responsibility"
    CATEGORY = "category"
    DETAILED_RESPONSIBILITY = "detailedResponsibility"


class TimelineField(str, Enum):
    PHASE = "phase"
    TIMEFRAME = "timeframe"
    ACTIVITY = "activity"


class BudgetField(str, Enum):
    LINE_TITLE = "title"
    LINE_COUNT = "count"
    LINE_COST_RANGE = "costRange"
    EXPENSE_CATEGORY = "category"
    EXPENSE_AMOUNT = "amount"
    PRODUCTION_VOLUME = "productionVolume"
    NAME = "name"


SECTION_RESPONSIBILITIES = "responsibilities"
SECTION_DETAILED = "detailedResponsibilities"
SECTION_ACTIVITIES = "activities"
SECTION_PERSONNEL_COSTS = "personnelCosts"
SECTION_OPERATIONAL_EXPENSES = "operationalExpenses"

LINE_FIELDS = frozenset({BudgetField.LINE_TITLE, BudgetField.LINE_COUNT, BudgetField.LINE_COST_RANGE})
EXPENSE_FIELDS = frozenset({BudgetField.EXPENSE_CATEGORY, BudgetField.EXPENSE_AMOUNT})
UNIT_FIELDS = frozenset({BudgetField.PRODUCTION_VOLUME, BudgetField.NAME})
NUMERIC_BUDGET_FIELDS = frozenset(
    {BudgetField.LINE_COUNT, BudgetField.EXPENSE_AMOUNT, BudgetField.PRODUCTION_VOLUME}
)


@dataclass(frozen=True, slots=True)
class PersonnelPath:
    person_id: str
    field: PersonnelField

    domain: ClassVar[Domain] = Domain.PERSONNEL

    @property
    def entity_id(self) -> str:
        return self.person_id

    @property
    def subpath(self) -> tuple[str, ...]:
        return (self.field.value,)


@dataclass(frozen=True, slots=True)
class RolePath:
    role_id: str
    field: RoleField
    shared: bool = False
    category: str | None = None
    index: int | None = None

    domain: ClassVar[Domain] = Domain.ROLE

    @property
    def entity_id(self) -> str:
        if self.shared:
            return f"{SHARED_SCOPE}{SCOPE_SEPARATOR}{self.role_id}"
        return self.role_id

    @property
    def subpath(self) -> tuple[str, ...]:
        parts = [self.field.value]
        if self.category is not None:
            parts.append(self.category)
        if self.index is not None:
            parts.append(str(self.index))
        return tuple(parts)


@dataclass(frozen=True, slots=True)
class TimelinePath:
    phase_index: int
    field: TimelineField
    activity_index: int | None = None

    domain: ClassVar[Domain] = Domain.TIMELINE

    @property
    def entity_id(self) -> str:
        return str(self.phase_index)

    @property
    def subpath(self) -> tuple[str, ...]:
        if self.activity_index is None:
            return (self.field.value,)
        return (self.field.value, str(self.activity_index))


@dataclass(frozen=True, slots=True)
class BudgetPath:
    factory_id: str
    field: BudgetField
    category: str | None = None
    index: int | None = None

    domain: ClassVar[Domain] = Domain.BUDGET

    @property
    def entity_id(self) -> str:
        return self.factory_id

    @property
    def subpath(self) -> tuple[str, ...]:
        if self.field in LINE_FIELDS:
            return (SECTION_PERSONNEL_COSTS, str(self.category), str(self.index), self.field.value)
        if self.field in EXPENSE_FIELDS:
            return (SECTION_OPERATIONAL_EXPENSES, str(self.index), self.field.value)
        return (self.field.value,)

    @property
    def is_numeric(self) -> bool:
        return self.field in NUMERIC_BUDGET_FIELDS


FieldPath = PersonnelPath | RolePath | TimelinePath | BudgetPath


# ---------- Builders ----------
def _require_index(value: int, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{label} must be a non-negative integer, got {value!r}.")
    return value


def personnel_path(person_id: str, field: PersonnelField | str) -> PersonnelPath:
    return PersonnelPath(person_id=str(person_id), field=PersonnelField(field))


def role_title_path(role_id: str, *, shared: bool = False) -> RolePath:
    return RolePath(role_id=role_id, field=RoleField.TITLE, shared=shared)


def role_responsibility_path(role_id: str, index: int, *, shared: bool = False) -> RolePath:
    return RolePath(
        role_id=role_id,
        field=RoleField.RESPONSIBILITY,
        shared=shared,
        index=_require_index(index, "index"),
    )


def role_category_path(role_id: str, category: str, *, shared: bool = False) -> RolePath:
    return RolePath(role_id=role_id, field=RoleField.CATEGORY, shared=shared, category=category)


def role_detail_path(role_id: str, category: str, index: int, *, shared: bool = False) -> RolePath:
    return RolePath(
        role_id=role_id,
        field=RoleField.DETAILED_RESPONSIBILITY,
        shared=shared,
        category=category,
        index=_require_index(index, "index"),
    )


def timeline_phase_path(phase_index: int, field: TimelineField | str) -> TimelinePath:
    field = TimelineField(field)
    if field is TimelineField.ACTIVITY:
        raise ValueError("Use timeline_activity_path for activity leaves.")
    return TimelinePath(phase_index=_require_index(phase_index, "phase_index"), field=field)


def timeline_activity_path(phase_index: int, activity_index: int) -> TimelinePath:
    return TimelinePath(
        phase_index=_require_index(phase_index, "phase_index"),
        field=TimelineField.ACTIVITY,
        activity_index=_require_index(activity_index, "activity_index"),
    )


def budget_line_path(factory_id: str, category: str, index: int, field: BudgetField | str) -> BudgetPath:
    field = BudgetField(field)
    if field not in LINE_FIELDS:
        raise ValueError(f"{field.value} is not a personnel-cost line field.")
    return BudgetPath(
        factory_id=factory_id,
        field=field,
        category=category,
        index=_require_index(index, "index"),
    )


def budget_expense_path(factory_id: str, index: int, field: BudgetField | str) -> BudgetPath:
    field = BudgetField(field)
    if field not in EXPENSE_FIELDS:
        raise ValueError(f"{field.value} is not an operational-expense field.")
    return BudgetPath(factory_id=factory_id, field=field, index=_require_index(index, "index"))


def budget_volume_path(factory_id: str) -> BudgetPath:
    return BudgetPath(factory_id=factory_id, field=BudgetField.PRODUCTION_VOLUME)


def budget_name_path(factory_id: str) -> BudgetPath:
    return BudgetPath(factory_id=factory_id, field=BudgetField.NAME)


# ---------- Codec ----------
def _escape(value: str) -> str:
    if value == PLACEHOLDER:
        return _ESCAPED_PLACEHOLDER
    return "".join(_ESCAPES.get(char, char) for char in value)


def _segment(value: object | None) -> str:
    if value is None:
        return PLACEHOLDER
    return _escape(str(value))


def _segments(path: FieldPath) -> tuple[object | None, ...]:
    if isinstance(path, PersonnelPath):
        return (path.person_id, None, None, None, path.field.value)

    if isinstance(path, RolePath):
        if path.field is RoleField.TITLE:
            section = None
        elif path.field is RoleField.RESPONSIBILITY:
            section = SECTION_RESPONSIBILITIES
        else:
            section = SECTION_DETAILED
        return (path.role_id, section, path.category, path.index, path.field.value)

    if isinstance(path, TimelinePath):
        section = SECTION_ACTIVITIES if path.field is TimelineField.ACTIVITY else None
        return (path.phase_index, section, None, path.activity_index, path.field.value)

    if isinstance(path, BudgetPath):
        if path.field in LINE_FIELDS:
            return (path.factory_id, SECTION_PERSONNEL_COSTS, path.category, path.index, path.field.value)
        if path.field in EXPENSE_FIELDS:
            return (path.factory_id, SECTION_OPERATIONAL_EXPENSES, path.index, None, path.field.value)
        return (path.factory_id, None, None, None, path.field.value)

    raise TypeError(f"Unsupported field path type: {type(path).__name__}")


def encode(path: FieldPath) -> str:
    """Render ``path`` as a six-segment edit id."""

    entity, section, key, index, leaf = _segments(path)
    entity_segment = _segment(entity)
    if isinstance(path, RolePath) and path.shared:
        entity_segment = f"{SHARED_SCOPE}{SCOPE_SEPARATOR}{entity_segment}"
    parts = [path.domain.value, entity_segment, _segment(section), _segment(key), _segment(index), _segment(leaf)]
    return DELIMITER.join(parts)


class _Decoder:
    """Decodes one raw edit id; every failure becomes a MalformedPathError."""

    def __init__(self, raw: str) -> None:
        self.raw = raw

    def fail(self, reason: str) -> MalformedPathError:
        return MalformedPathError(self.raw, reason)

    @staticmethod
    def present(segment: str) -> bool:
        return segment != PLACEHOLDER

    def text(self, segment: str, label: str) -> str:
        if not self.present(segment):
            raise self.fail(f"{label} is required")
        return unquote(segment)

    def absent(self, segment: str, label: str) -> None:
        if self.present(segment):
            raise self.fail(f"{label} must be {PLACEHOLDER!r}")

    def number(self, segment: str, label: str) -> int:
        value = self.text(segment, label)
        if not (value.isascii() and value.isdigit()):
            raise self.fail(f"{label} must be a non-negative integer")
        return int(value)

    def expect_section(self, segment: str, section: str | None) -> None:
        if section is None:
            self.absent(segment, "section")
        elif not self.present(segment) or unquote(segment) != section:
            raise self.fail(f"section must be {section!r}")

    def leaf(self, segment: str, enum_cls: type[Enum]) -> Enum:
        value = self.text(segment, "leaf")
        try:
            return enum_cls(value)
        except ValueError as exc:
            raise self.fail(f"unknown leaf {value!r}") from exc

    def decode(self) -> FieldPath:
        parts = self.raw.split(DELIMITER)
        if len(parts) != PATH_ARITY:
            raise self.fail(f"expected {PATH_ARITY} segments, got {len(parts)}")

        domain_raw, entity, section, key, index, leaf = parts
        try:
            domain = Domain(domain_raw)
        except ValueError as exc:
            raise self.fail(f"unknown domain {domain_raw!r}") from exc

        if domain is Domain.PERSONNEL:
            return self.personnel(entity, section, key, index, leaf)
        if domain is Domain.ROLE:
            return self.role(entity, section, key, index, leaf)
        if domain is Domain.TIMELINE:
            return self.timeline(entity, section, key, index, leaf)
        return self.budget(entity, section, key, index, leaf)

    def personnel(self, entity: str, section: str, key: str, index: str, leaf: str) -> PersonnelPath:
        self.expect_section(section, None)
        self.absent(key, "key")
        self.absent(index, "index")
        return PersonnelPath(person_id=self.text(entity, "entity id"), field=self.leaf(leaf, PersonnelField))

    def role(self, entity: str, section: str, key: str, index: str, leaf: str) -> RolePath:
        shared = False
        scope, separator, rest = entity.partition(SCOPE_SEPARATOR)
        if separator:
            if scope != SHARED_SCOPE:
                raise self.fail(f"unknown role scope {scope!r}")
            shared = True
            entity = rest
        role_id = self.text(entity, "entity id")
        field = self.leaf(leaf, RoleField)

        if field is RoleField.TITLE:
            self.expect_section(section, None)
            self.absent(key, "key")
            self.absent(index, "index")
            return RolePath(role_id=role_id, field=field, shared=shared)
        if field is RoleField.RESPONSIBILITY:
            self.expect_section(section, SECTION_RESPONSIBILITIES)
            self.absent(key, "key")
            return RolePath(role_id=role_id, field=field, shared=shared, index=self.number(index, "index"))

        self.expect_section(section, SECTION_DETAILED)
        category = self.text(key, "category")
        if field is RoleField.CATEGORY:
            self.absent(index, "index")
            return RolePath(role_id=role_id, field=field, shared=shared, category=category)
        return RolePath(
            role_id=role_id,
            field=field,
            shared=shared,
            category=category,
            index=self.number(index, "index"),
        )

    def timeline(self, entity: str, section: str, key: str, index: str, leaf: str) -> TimelinePath:
        phase_index = self.number(entity, "phase index")
        field = self.leaf(leaf, TimelineField)
        self.absent(key, "key")
        if field is TimelineField.ACTIVITY:
            self.expect_section(section, SECTION_ACTIVITIES)
            return TimelinePath(phase_index=phase_index, field=field, activity_index=self.number(index, "index"))
        self.expect_section(section, None)
        self.absent(index, "index")
        return TimelinePath(phase_index=phase_index, field=field)

    def budget(self, entity: str, section: str, key: str, index: str, leaf: str) -> BudgetPath:
        factory_id = self.text(entity, "entity id")
        field = self.leaf(leaf, BudgetField)

        if self.present(section) and unquote(section) == SECTION_PERSONNEL_COSTS:
            if field not in LINE_FIELDS:
                raise self.fail(f"{field.value!r} is not a personnel-cost field")
            return BudgetPath(
                factory_id=factory_id,
                field=field,
                category=self.text(key, "category"),
                index=self.number(index, "index"),
            )
        if self.present(section) and unquote(section) == SECTION_OPERATIONAL_EXPENSES:
            if field not in EXPENSE_FIELDS:
                raise self.fail(f"{field.value!r} is not an operational-expense field")
            self.absent(index, "index")
            return BudgetPath(factory_id=factory_id, field=field, index=self.number(key, "index"))

        self.expect_section(section, None)
        if field not in UNIT_FIELDS:
            raise self.fail(f"{field.value!r} requires a section")
        self.absent(key, "key")
        self.absent(index, "index")
        return BudgetPath(factory_id=factory_id, field=field)


def decode(raw: str) -> FieldPath:
    """Parse an edit id into a typed field path.

    Pure and total for ids produced by :func:`encode`; performs no graph lookups.
    """

    if not isinstance(raw, str) or not raw:
        raise MalformedPathError(str(raw), "edit id must be a non-empty string")
    return _Decoder(raw).decode()
