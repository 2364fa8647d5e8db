from datetime import date
from typing import Optional

from errors import ValidationFailed

VALID_TYPES = {"capital", "revenue", "consumable"}
VALID_AUDIT_ACTIONS = {"CREATE", "UPDATE", "DELETE"}
VALID_AUDIT_ENTITIES = {"ASSET", "USER", "DEPARTMENT", "ASSET_ITEM"}


def blank_to_none(value: Optional[str]) -> Optional[str]:
    if value == "":
        return None
    return value


def normalize_type(asset_type: Optional[str]) -> Optional[str]:
    if asset_type in VALID_TYPES:
        return asset_type
    return None


def normalize_choice(value: Optional[str], choices: set[str]) -> Optional[str]:
    if value in choices:
        return value
    return None


def normalize_page(page: int) -> int:
    if page < 1:
        return 1
    return page


def normalize_limit(limit: int, *, min_value: int = 1, max_value: int = 100) -> int:
    if limit < min_value:
        return min_value
    if limit > max_value:
        return max_value
    return limit


def parse_date(value: Optional[str], *, field: str) -> Optional[date]:
    value = blank_to_none(value)
    if value is None:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        raise ValidationFailed("Invalid date, expected YYYY-MM-DD", field=field)
