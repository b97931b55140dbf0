from dataclasses import dataclass
from typing import List, Optional, Sequence

from common.exceptions import BadRequestError


@dataclass(frozen=True)
class FilterCriteria:
    """One `field:operator:value` advanced filter entry."""

    field: str
    operator: str
    value: str


def parse_filters(raw_filters: Optional[Sequence[str]]) -> List[FilterCriteria]:
    """
    Parse advanced filter strings into FilterCriteria, preserving input order.

    - blank entries are skipped
    - only the first two colons split; the value keeps any further colons
    - parts are returned exactly as split; field and operator are not validated here
    """
    criteria: List[FilterCriteria] = []
    if not raw_filters:
        return criteria

    for entry in raw_filters:
        if entry is None or not entry.strip():
            continue
        parts = entry.split(":", 2)
        if len(parts) != 3:
            raise BadRequestError(
                f"Invalid filter format. Expected format is field:operator:value, but got: {entry}"
            )
        field, operator, value = parts
        criteria.append(FilterCriteria(field=field, operator=operator, value=value))
    return criteria
