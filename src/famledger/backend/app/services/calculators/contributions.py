"""Monthly social security contribution on the owner's draw."""

from __future__ import annotations

from decimal import Decimal

from famledger.backend.config.schema import SocialContributionConfig
from famledger.backend.money import ZERO, round_currency


def calculate_contribution(config: SocialContributionConfig | None) -> Decimal:
    """Return ``min(pro_labore, ceiling) * rate`` rounded to cents."""

    if config is None or config.pro_labore <= 0:
        return ZERO

    base = min(config.pro_labore, config.ceiling)
    return round_currency(base * config.rate)


def ytd_contribution(months: int, config: SocialContributionConfig | None) -> Decimal:
    """Return the contribution accumulated over ``months`` (capped at 12)."""

    if months <= 0:
        return ZERO
    return calculate_contribution(config) * min(months, 12)


__all__ = ["calculate_contribution", "ytd_contribution"]
