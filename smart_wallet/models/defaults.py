"""
Default taxonomy and assets for a fresh wallet.

Used when no snapshot exists, when a snapshot fails to load, and when
a reset clears the settings.
"""

from decimal import Decimal

from smart_wallet.models.ledger import (
    AppState,
    InvestmentSettings,
    LifePillar,
    MetalId,
    PreciousMetal,
    SubCategory,
)


def default_pillars() -> list[LifePillar]:
    return [
        LifePillar(id="1", name="Car", icon="🚗", color="#ef4444"),
        LifePillar(id="2", name="Home", icon="🏠", color="#3b82f6"),
        LifePillar(id="3", name="Children", icon="🎓", color="#10b981"),
        LifePillar(id="4", name="Work", icon="💼", color="#f59e0b"),
        LifePillar(id="5", name="Leisure", icon="🎬", color="#8b5cf6"),
    ]


def default_sub_categories() -> list[SubCategory]:
    return [
        SubCategory(id="s1", pillar_id="1", name="Fuel"),
        SubCategory(id="s2", pillar_id="1", name="Maintenance"),
        SubCategory(id="s3", pillar_id="1", name="Insurance"),
        SubCategory(id="s4", pillar_id="2", name="Rent"),
        SubCategory(id="s5", pillar_id="2", name="Bills"),
        SubCategory(id="s6", pillar_id="3", name="School fees"),
    ]


def default_metals() -> list[PreciousMetal]:
    return [
        PreciousMetal(
            id=MetalId.GOLD,
            name="Gold",
            karat=21,
            current_price_per_gram=Decimal("3500"),
        ),
        PreciousMetal(
            id=MetalId.SILVER,
            name="Silver",
            current_price_per_gram=Decimal("45"),
        ),
    ]


def default_investment_settings() -> InvestmentSettings:
    return InvestmentSettings(enabled=True, threshold_percentage=50, min_days=30)


def default_state() -> AppState:
    """An empty wallet with the default taxonomy."""
    return AppState(
        pillars=default_pillars(),
        sub_categories=default_sub_categories(),
        metals=default_metals(),
        investment_settings=default_investment_settings(),
    )
