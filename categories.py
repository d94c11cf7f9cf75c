from dataclasses import dataclass
from typing import Optional

from rapidfuzz.distance import Levenshtein


@dataclass(frozen=True)
class CategoryInfo:
    key: str
    name: str
    icon: str


EXPENSE_CATEGORIES: tuple[CategoryInfo, ...] = (
    CategoryInfo("food", "Food", "fastfood"),
    CategoryInfo("rent", "Rent", "home"),
    CategoryInfo("transportation", "Transportation", "directions_bus"),
    CategoryInfo("utilities", "Utilities", "power"),
    CategoryInfo("entertainment", "Entertainment", "sports_esports"),
    CategoryInfo("education", "Education", "school"),
    CategoryInfo("tuition", "Tuition", "account_balance"),
    CategoryInfo("books", "Books", "book"),
    CategoryInfo("shopping", "Shopping", "shopping_cart"),
    CategoryInfo("health", "Health", "local_hospital"),
    CategoryInfo("other", "Other", "more_horiz"),
)

INCOME_SOURCES: tuple[CategoryInfo, ...] = (
    CategoryInfo("job", "Part-time Job", "work"),
    CategoryInfo("scholarship", "Scholarship", "school"),
    CategoryInfo("family", "Family Support", "family_restroom"),
    CategoryInfo("grants", "Grants", "payments"),
    CategoryInfo("loans", "Student Loans", "account_balance"),
    CategoryInfo("refund", "Refund", "assignment_return"),
    CategoryInfo("other", "Other", "more_horiz"),
)


class CategoryAmbiguous(ValueError):
    pass


class CategoryNearMiss(ValueError):
    def __init__(self, raw: str, suggestion: str) -> None:
        super().__init__(f"Unknown category '{raw}'; did you mean '{suggestion}'?")
        self.suggestion = suggestion


def _find(catalog: tuple[CategoryInfo, ...], key: str) -> Optional[CategoryInfo]:
    for info in catalog:
        if info.key == key:
            return info
    return None


def expense_category(key: str) -> CategoryInfo:
    return _find(EXPENSE_CATEGORIES, key) or EXPENSE_CATEGORIES[-1]


def income_source(key: str) -> CategoryInfo:
    return _find(INCOME_SOURCES, key) or CategoryInfo(key, key, "more_horiz")


def resolve_key(raw: str, catalog: tuple[CategoryInfo, ...]) -> str:
    """Map free text onto a catalog key.

    Only exact key or display-name matches (case-insensitive) map onto a key.
    Input within one edit of a catalog entry is rejected with the suggested key
    rather than rewritten. Anything further away is kept, lowercased.
    """
    clean = raw.strip()
    if not clean:
        raise ValueError("Category cannot be empty")
    input_lower = clean.lower()
    for info in catalog:
        if input_lower in (info.key, info.name.lower()):
            return info.key

    best_distance: Optional[int] = None
    best: list[CategoryInfo] = []
    for info in catalog:
        dist = min(
            int(Levenshtein.distance(input_lower, info.key)),
            int(Levenshtein.distance(input_lower, info.name.lower())),
        )
        if best_distance is None or dist < best_distance:
            best_distance = dist
            best = [info]
        elif dist == best_distance:
            best.append(info)

    if best_distance is not None and best_distance <= 1:
        if len(best) > 1:
            options = ", ".join(sorted(info.key for info in best))
            raise CategoryAmbiguous(
                f"Category '{clean}' is ambiguous; matches: {options}"
            )
        raise CategoryNearMiss(clean, best[0].key)
    return input_lower
