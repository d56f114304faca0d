from .offense_taxonomy import (
    OFFENSE_CATEGORY_MAP,
    KNOWN_OFFENSES,
    OFFENSES_BY_CATEGORY,
    PROPERTY_OFFENSES,
    categorize_offense,
    expand_categories,
)

__all__ = [
    "OFFENSE_CATEGORY_MAP",
    "KNOWN_OFFENSES",
    "OFFENSES_BY_CATEGORY",
    "PROPERTY_OFFENSES",
    "categorize_offense",
    "expand_categories",
]
