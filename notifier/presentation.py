"""
Severity banding and presentation attributes (colour, label, icon, mention).

Out-of-range severities are clamped to the nearest band; nothing here raises.
"""

import math
from typing import List, Optional, Sequence, Tuple

from config import (
    PURPOSE_ICONS,
    SEVERITY_BANDS,
    SEVERITY_MAX,
    SEVERITY_MIN,
    TIER_COLOURS,
    TIER_ICONS,
    TIER_MENTIONS,
)
from models import ColorTier, PresentationAttributes, TypeTaxonomy


def clamp_severity(severity: float) -> float:
    if math.isnan(severity):
        return SEVERITY_MIN
    return min(max(severity, SEVERITY_MIN), SEVERITY_MAX)


def severity_tier(severity: float, bands: Optional[Sequence[Tuple[float, str]]] = None) -> ColorTier:
    """
    Return the tier whose band contains `severity`.

    Bands are (inclusive lower bound, tier name) pairs; the highest matching lower
    bound wins, so the top band includes SEVERITY_MAX.
    """
    ordered: List[Tuple[float, str]] = sorted(SEVERITY_BANDS if bands is None else bands)
    value = clamp_severity(severity)
    tier = ordered[0][1]
    for lower, name in ordered:
        if value >= lower:
            tier = name
    return ColorTier(tier)


def display_label(tier: ColorTier, taxonomy: TypeTaxonomy) -> str:
    if taxonomy.recognized:
        return f"{tier.label} {taxonomy.threat_purpose}"
    return f"{tier.label} finding ({taxonomy.raw or 'unknown type'})"


def icon_ref(tier: ColorTier, taxonomy: TypeTaxonomy) -> str:
    if taxonomy.recognized and taxonomy.threat_purpose in PURPOSE_ICONS:
        return PURPOSE_ICONS[taxonomy.threat_purpose]
    return TIER_ICONS[tier.value]


def present(
    severity: float,
    taxonomy: TypeTaxonomy,
    bands: Optional[Sequence[Tuple[float, str]]] = None,
) -> PresentationAttributes:
    """
    Map a severity score and classification to presentation attributes.
    """
    tier = severity_tier(severity, bands)
    return PresentationAttributes(
        color_tier=tier,
        color=TIER_COLOURS[tier.value],
        display_label=display_label(tier, taxonomy),
        icon_ref=icon_ref(tier, taxonomy),
        mention=TIER_MENTIONS[tier.value],
    )
