"""Utility helpers for grouping DC MPD offense labels into higher-level categories."""

from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, Optional, Tuple


VIOLENT = "Violent"
PROPERTY = "Property"
UNCLASSIFIED = "Unclassified"

# The nine offense labels published in the MPD "Crime Incidents" extracts.
OFFENSE_CATEGORY_MAP: Dict[str, str] = {
    "HOMICIDE": VIOLENT,
    "SEX ABUSE": VIOLENT,
    "ASSAULT W/DANGEROUS WEAPON": VIOLENT,
    "ROBBERY": VIOLENT,
    "BURGLARY": PROPERTY,
    "MOTOR VEHICLE THEFT": PROPERTY,
    "THEFT F/AUTO": PROPERTY,
    "THEFT/OTHER": PROPERTY,
    "ARSON": PROPERTY,
}

# Universe used for area sub-counts when no category filter is active.
KNOWN_OFFENSES: Tuple[str, ...] = tuple(OFFENSE_CATEGORY_MAP)


def categorize_offense(offense: Optional[str]) -> str:
    """Map a raw MPD offense label to Violent, Property or Unclassified."""
    if not offense:
        return UNCLASSIFIED
    return OFFENSE_CATEGORY_MAP.get(offense.upper().strip(), UNCLASSIFIED)


def expand_categories(offenses: Iterable[str]) -> Dict[str, Tuple[str, ...]]:
    """Group offense labels by category, each group sorted."""
    grouped: Dict[str, set] = {}
    for offense in offenses:
        grouped.setdefault(categorize_offense(offense), set()).add(offense)
    return {category: tuple(sorted(members)) for category, members in grouped.items()}


OFFENSES_BY_CATEGORY: Dict[str, Tuple[str, ...]] = expand_categories(KNOWN_OFFENSES)

# Share-of-total insight on the area rollup; ARSON is left out.
PROPERTY_OFFENSES: Tuple[str, ...] = tuple(
    o for o in OFFENSES_BY_CATEGORY[PROPERTY] if o != "ARSON"
)

# Night-time share in the temporal patterns summary; SEX ABUSE is left out.
NIGHT_VIOLENT_OFFENSES: FrozenSet[str] = frozenset(OFFENSES_BY_CATEGORY[VIOLENT]) - {"SEX ABUSE"}


__all__ = [
    "OFFENSE_CATEGORY_MAP",
    "KNOWN_OFFENSES",
    "OFFENSES_BY_CATEGORY",
    "PROPERTY_OFFENSES",
    "NIGHT_VIOLENT_OFFENSES",
    "VIOLENT",
    "PROPERTY",
    "UNCLASSIFIED",
    "categorize_offense",
    "expand_categories",
]
