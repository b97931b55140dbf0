"""
Translate dashboard list requests into a single SQLAlchemy select over issues.

Filters are AND-ed. Field names and sort keys come from explicit tables below;
anything outside them is rejected as a bad request.
"""
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from sqlalchemy import and_, func, or_, select
from sqlalchemy.sql import Select

from apps.issues.filters import FilterCriteria, parse_filters
from apps.issues.permissions import can_use_assigned_filter, require
from common.exceptions import BadRequestError
from models.category import Category
from models.issue import Issue
from models.priority import Priority
from models.status import Status
from models.user import User

ALL_SENTINEL = "all"
ME = "me"
PRIORITY_SORT_KEY = "priority.sortOrder"


def _normalize(key: str) -> str:
    return key.replace("_", "").strip().lower()


def _lookup_name(model, fk_column):
    return select(model.name).where(model.id == fk_column).correlate(Issue).scalar_subquery()


def _user_name(fk_column):
    return select(User.full_name).where(User.id == fk_column).correlate(Issue).scalar_subquery()


# Advanced filter field -> SQL expression
FILTERABLE_FIELDS: Dict[str, Callable] = {
    "title": lambda: Issue.title,
    "description": lambda: Issue.description,
    "category": lambda: _lookup_name(Category, Issue.category_id),
    "status": lambda: _lookup_name(Status, Issue.status_id),
    "reporter": lambda: _user_name(Issue.reporter_id),
    "assignee": lambda: _user_name(Issue.assignee_id),
}

# Sort key -> SQL expression
SORTABLE_FIELDS: Dict[str, Callable] = {
    "id": lambda: Issue.id,
    "title": lambda: Issue.title,
    "createdat": lambda: Issue.created_at,
    "updatedat": lambda: Issue.updated_at,
    "startdate": lambda: Issue.start_date,
    "duedate": lambda: Issue.due_date,
    "category": lambda: _lookup_name(Category, Issue.category_id),
    "status": lambda: _lookup_name(Status, Issue.status_id),
    "priority.sortorder": lambda: (
        select(Priority.sort_order).where(Priority.id == Issue.priority_id).correlate(Issue).scalar_subquery()
    ),
}


@dataclass(frozen=True)
class SortOrder:
    key: str
    descending: bool = False


def _like_operand(value: str) -> str:
    return (value or "").lower()


# Wildcards in user text are matched literally
def _contains(column, value: str):
    return func.lower(column).contains(_like_operand(value), autoescape=True)


def _operator_predicate(column, criteria: FilterCriteria):
    op = criteria.operator.strip().lower()
    value = criteria.value
    if op == "equals":
        return column == value
    if op == "notequal":
        return column != value
    if op == "contains":
        return _contains(column, value)
    if op == "doesnotcontain":
        return ~_contains(column, value)
    if op == "startswith":
        return func.lower(column).startswith(_like_operand(value), autoescape=True)
    if op == "endswith":
        return func.lower(column).endswith(_like_operand(value), autoescape=True)
    if op == "isempty":
        return or_(column.is_(None), column == "")
    if op == "isnotempty":
        return and_(column.is_not(None), column != "")
    raise BadRequestError(f"Unsupported filter operator: {criteria.operator}")


def _advanced_predicate(criteria: FilterCriteria):
    field = _normalize(criteria.field)
    if field == "priority":
        # Reference field: always exact match on name, operator ignored
        return Issue.priority_id.in_(select(Priority.id).where(Priority.name == criteria.value))
    accessor = FILTERABLE_FIELDS.get(field)
    if accessor is None:
        raise BadRequestError(f"Unsupported filter field: {criteria.field}")
    return _operator_predicate(accessor(), criteria)


def _is_active_lookup(value: Optional[str]) -> bool:
    return bool(value and value.strip()) and value.strip().lower() != ALL_SENTINEL


def build_issue_query(
    actor: User,
    search: Optional[str] = None,
    category: Optional[str] = None,
    status: Optional[str] = None,
    reported_by: Optional[str] = None,
    assigned_to: Optional[str] = None,
    advanced_filters: Optional[Sequence[str]] = None,
) -> Select:
    """
    Build the filtered (unsorted, unpaginated) select over Issue for `actor`.

    `assigned_to=me` is authorized before anything else is evaluated,
    including the advanced filter strings.
    """
    assigned_to_me = bool(assigned_to) and assigned_to.strip().lower() == ME
    if assigned_to_me:
        require(can_use_assigned_filter(actor), "You do not have permission to use the 'assignedTo' filter.")

    predicates = []

    if search and search.strip():
        predicates.append(or_(_contains(Issue.title, search), _contains(Issue.description, search)))

    if _is_active_lookup(category):
        predicates.append(Issue.category_id.in_(select(Category.id).where(Category.name == category)))

    if _is_active_lookup(status):
        predicates.append(Issue.status_id.in_(select(Status.id).where(Status.name == status)))

    if reported_by and reported_by.strip().lower() == ME:
        predicates.append(Issue.reporter_id == actor.id)

    if assigned_to_me:
        predicates.append(Issue.assignee_id == actor.id)

    for criteria in parse_filters(advanced_filters):
        predicates.append(_advanced_predicate(criteria))

    stmt = select(Issue)
    if predicates:
        stmt = stmt.where(and_(*predicates))
    return stmt


def parse_sort(raw_sorts: Optional[Sequence[str]]) -> List[SortOrder]:
    """
    Parse `field[,asc|desc]` entries. Direction defaults to ascending.
    """
    orders: List[SortOrder] = []
    for entry in raw_sorts or []:
        if entry is None or not entry.strip():
            continue
        parts = [p.strip() for p in entry.split(",")]
        key = parts[0]
        direction = parts[1].lower() if len(parts) > 1 and parts[1] else "asc"
        if not key or len(parts) > 2 or direction not in ("asc", "desc"):
            raise BadRequestError(f"Invalid sort format. Expected format is field[,asc|desc], but got: {entry}")
        orders.append(SortOrder(key=key, descending=direction == "desc"))
    return orders


def remap_sort(orders: Sequence[SortOrder]) -> List[SortOrder]:
    """
    Sorting by priority means sorting by its numeric rank, never by its name.
    """
    remapped: List[SortOrder] = []
    for order in orders:
        if _normalize(order.key) == "priority":
            remapped.append(SortOrder(key=PRIORITY_SORT_KEY, descending=order.descending))
        else:
            remapped.append(order)
    return remapped


def apply_sort(stmt: Select, orders: Sequence[SortOrder]) -> Select:
    """
    Attach ORDER BY. Defaults to newest first; Issue.id is always the final tiebreaker.
    """
    orders = list(orders) or [SortOrder(key="createdAt", descending=True)]
    clauses = []
    has_id = False
    for order in orders:
        normalized = _normalize(order.key)
        accessor = SORTABLE_FIELDS.get(normalized)
        if accessor is None:
            raise BadRequestError(f"Unsupported sort field: {order.key}")
        has_id = has_id or normalized == "id"
        expr = accessor()
        clauses.append(expr.desc() if order.descending else expr.asc())
    if not has_id:
        clauses.append(Issue.id.desc() if orders[-1].descending else Issue.id.asc())
    return stmt.order_by(*clauses)


def count_query(stmt: Select) -> Select:
    return select(func.count()).select_from(stmt.with_only_columns(Issue.id).order_by(None).subquery())
