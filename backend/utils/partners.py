"""Partner entitlements derived from the pricing tier catalog."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Tuple

from models import Partner, ProductRequest
from utils.pricing import FulfillmentQuote, TierCatalog, TierConfig, calculate_fulfillment


def apply_tier(partner: Partner, tier: TierConfig) -> None:
    """Copy fee, quota and feature entitlements of ``tier`` onto the partner."""
    partner.pricing_tier = tier.tier_id
    partner.fixed_payment = tier.fixed_payment
    partner.commission_rate = tier.commission_tiers[0].rate
    partner.max_product_requests = tier.max_product_requests
    partner.features = dict(tier.features)


def serialize_partner(partner: Partner) -> dict:
    return {
        "id": partner.id,
        "user_id": partner.user_id,
        "username": partner.user.username if partner.user else None,
        "business_name": partner.business_name,
        "description": partner.description,
        "pricing_tier": partner.pricing_tier,
        "fixed_payment": partner.fixed_payment,
        "commission_rate": partner.commission_rate,
        "max_product_requests": partner.max_product_requests,
        "unlimited_product_requests": partner.max_product_requests == -1,
        "features": partner.features or {},
        "total_sales": partner.total_sales,
        **_figures_dict(partner),
        "created_at": partner.created_at.isoformat() if partner.created_at else None,
    }


def _month_start(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def monthly_request_count(partner_id: int, now: Optional[datetime] = None) -> int:
    start = _month_start(now or datetime.utcnow())
    return ProductRequest.query.filter(
        ProductRequest.partner_id == partner_id,
        ProductRequest.created_at >= start,
    ).count()


def month_figures(partner: Partner, now: Optional[datetime] = None) -> Tuple[float, float, int]:
    """Sales, cost of goods and units delivered in the month of ``now``.

    Counters recorded for an earlier month read as zero until the next
    delivery rolls them over.
    """
    if partner.figures_month != _month_start(now or datetime.utcnow()):
        return 0.0, 0.0, 0
    return partner.monthly_sales or 0, partner.monthly_cost or 0, partner.monthly_units or 0


def _figures_dict(partner: Partner) -> dict:
    sales, cost, units = month_figures(partner)
    return {"monthly_sales": sales, "monthly_cost": cost, "monthly_units": units}


def record_delivery(
    partner: Partner, amount: float, cost: float, units: int, now: Optional[datetime] = None
) -> None:
    """Add a delivered order to the partner's sales, restarting the month counters if needed."""
    period = _month_start(now or datetime.utcnow())
    if partner.figures_month != period:
        partner.monthly_sales = 0
        partner.monthly_cost = 0
        partner.monthly_units = 0
        partner.figures_month = period
    partner.total_sales = (partner.total_sales or 0) + amount
    partner.monthly_sales += amount
    partner.monthly_cost += cost
    partner.monthly_units += units


def fee_summary(
    partner: Partner, catalog: TierCatalog, now: Optional[datetime] = None
) -> FulfillmentQuote:
    """Fee quote for the partner's figures in the month of ``now``."""
    tier = catalog.get_tier_config(partner.pricing_tier)
    sales, cost, units = month_figures(partner, now)
    return calculate_fulfillment(sales, cost, units, tier)
