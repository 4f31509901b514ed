"""Fulfillment pricing: tier catalog, net profit, commission and fee totals."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

# Flat tax withheld from profit before the fulfillment fee, identical for every tier.
TAX_RATE = 0.03

UNLIMITED = -1


class InvalidTierConfigError(ValueError):
    """Raised when a tier definition breaks the bracket invariants."""


class UnknownTierError(LookupError):
    """Raised when a tier identifier is not part of the catalog."""

    def __init__(self, tier_id, known: Tuple[str, ...] = ()):
        self.tier_id = tier_id
        self.known = tuple(known)
        super().__init__(f"Unknown pricing tier: {tier_id!r}")


@dataclass(frozen=True)
class CommissionBracket:
    """Upper net-profit bound (inclusive) and the rate charged up to it."""

    threshold: float
    rate: float

    @property
    def unbounded(self) -> bool:
        return math.isinf(self.threshold)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "threshold": None if self.unbounded else self.threshold,
            "rate": self.rate,
        }


@dataclass(frozen=True)
class TierConfig:
    tier_id: str
    name: str
    fixed_payment: float
    spt_cost: float
    commission_tiers: Tuple[CommissionBracket, ...]
    max_product_requests: int = UNLIMITED
    trial_period: int = 0
    description: str = ""
    features: Mapping[str, bool] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        brackets = tuple(self.commission_tiers)
        if not brackets:
            raise InvalidTierConfigError(f"Tier {self.tier_id!r} has no commission brackets")
        for field_name in ("fixed_payment", "spt_cost"):
            if not math.isfinite(getattr(self, field_name)):
                raise InvalidTierConfigError(
                    f"Tier {self.tier_id!r}: {field_name} must be a finite number"
                )
        previous = -math.inf
        for bracket in brackets:
            if math.isnan(bracket.threshold):
                raise InvalidTierConfigError(f"Tier {self.tier_id!r}: threshold is not a number")
            if bracket.threshold <= previous:
                raise InvalidTierConfigError(
                    f"Tier {self.tier_id!r}: thresholds must be strictly increasing"
                )
            if not 0 <= bracket.rate <= 100:
                raise InvalidTierConfigError(
                    f"Tier {self.tier_id!r}: rate {bracket.rate} is outside 0-100"
                )
            previous = bracket.threshold
        if not brackets[-1].unbounded:
            raise InvalidTierConfigError(
                f"Tier {self.tier_id!r}: last bracket must be unbounded"
            )
        if self.max_product_requests < UNLIMITED:
            raise InvalidTierConfigError(
                f"Tier {self.tier_id!r}: max_product_requests must be -1 or non-negative"
            )
        object.__setattr__(self, "commission_tiers", brackets)
        object.__setattr__(self, "features", MappingProxyType(dict(self.features)))

    @property
    def has_unlimited_requests(self) -> bool:
        return self.max_product_requests == UNLIMITED

    def request_quota_reached(self, used: int) -> bool:
        """True once ``used`` requests exhaust the quota; never for unlimited tiers."""
        if self.has_unlimited_requests:
            return False
        return used >= self.max_product_requests

    def has_feature(self, feature: str) -> bool:
        return bool(self.features.get(feature, False))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.tier_id,
            "name": self.name,
            "description": self.description,
            "fixed_payment": self.fixed_payment,
            "spt_cost": self.spt_cost,
            "commission_tiers": [b.to_dict() for b in self.commission_tiers],
            "max_product_requests": self.max_product_requests,
            "unlimited_product_requests": self.has_unlimited_requests,
            "trial_period": self.trial_period,
            "features": dict(self.features),
        }


_DEFAULT_TIERS: Dict[str, Dict[str, Any]] = {
    "basic": {
        "name": "Basic",
        "description": "Nol xavfli boshlash - yangi hamkorlar uchun",
        "fixed_payment": 0,
        "spt_cost": 2000,
        "commission_tiers": [
            {"threshold": 5_000_000, "rate": 45},
            {"threshold": 15_000_000, "rate": 40},
            {"threshold": 30_000_000, "rate": 35},
            {"threshold": None, "rate": 30},
        ],
        "max_product_requests": 25,
        "trial_period": 60,
        "features": {
            "analytics": True,
            "priority_support": False,
            "custom_integrations": False,
            "advanced_reports": False,
            "api_access": False,
            "custom_branding": False,
            "personal_manager": True,
            "weekly_reports": True,
        },
    },
    "professional": {
        "name": "Business Standard",
        "description": "Kichik biznes uchun barqaror variant",
        "fixed_payment": 3_500_000,
        "spt_cost": 2000,
        "commission_tiers": [
            {"threshold": 10_000_000, "rate": 25},
            {"threshold": 25_000_000, "rate": 22},
            {"threshold": 50_000_000, "rate": 20},
            {"threshold": None, "rate": 18},
        ],
        "max_product_requests": 100,
        "trial_period": 30,
        "features": {
            "analytics": True,
            "priority_support": True,
            "custom_integrations": False,
            "advanced_reports": True,
            "api_access": True,
            "custom_branding": False,
            "personal_manager": False,
            "weekly_reports": True,
            "monthly_reports": True,
            "marketing_support": True,
        },
    },
    "professional_plus": {
        "name": "Professional Plus",
        "description": "O'rta-katta hajmli savdo uchun premium variant",
        "fixed_payment": 6_000_000,
        "spt_cost": 2000,
        "commission_tiers": [
            {"threshold": 15_000_000, "rate": 20},
            {"threshold": 50_000_000, "rate": 18},
            {"threshold": None, "rate": 15},
        ],
        "max_product_requests": UNLIMITED,
        "trial_period": 30,
        "features": {
            "analytics": True,
            "priority_support": True,
            "custom_integrations": False,
            "advanced_reports": True,
            "api_access": True,
            "custom_branding": False,
            "personal_manager": True,
            "weekly_reports": True,
            "monthly_reports": True,
            "marketing_support": True,
            "custom_dashboard": True,
            "priority_queue": True,
        },
    },
    "enterprise": {
        "name": "Enterprise Elite",
        "description": "Yirik biznes uchun maxsus xizmat",
        "fixed_payment": 10_000_000,
        "spt_cost": 2000,
        "commission_tiers": [
            {"threshold": 25_000_000, "rate": 18},
            {"threshold": 50_000_000, "rate": 16},
            {"threshold": 100_000_000, "rate": 14},
            {"threshold": None, "rate": 12},
        ],
        "max_product_requests": UNLIMITED,
        "trial_period": 30,
        "features": {
            "analytics": True,
            "priority_support": True,
            "custom_integrations": True,
            "advanced_reports": True,
            "api_access": True,
            "custom_branding": True,
            "personal_manager": True,
            "weekly_reports": True,
            "monthly_reports": True,
            "marketing_support": True,
            "custom_dashboard": True,
            "priority_queue": True,
            "custom_packaging": True,
            "direct_executive_access": True,
        },
    },
}


def _parse_threshold(value) -> float:
    if value is None:
        return math.inf
    if isinstance(value, str) and value.strip().lower() in {"inf", "infinity"}:
        return math.inf
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidTierConfigError(f"Invalid bracket threshold: {value!r}") from exc


def _tier_from_dict(tier_id: str, raw: Mapping[str, Any]) -> TierConfig:
    try:
        brackets = tuple(
            CommissionBracket(
                threshold=_parse_threshold(b.get("threshold")),
                rate=float(b["rate"]),
            )
            for b in raw["commission_tiers"]
        )
        return TierConfig(
            tier_id=tier_id,
            name=raw.get("name", tier_id),
            description=raw.get("description", ""),
            fixed_payment=float(raw.get("fixed_payment", 0)),
            spt_cost=float(raw.get("spt_cost", 0)),
            commission_tiers=brackets,
            max_product_requests=int(raw.get("max_product_requests", UNLIMITED)),
            trial_period=int(raw.get("trial_period", 0)),
            features=raw.get("features") or {},
        )
    except InvalidTierConfigError:
        raise
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidTierConfigError(f"Malformed definition for tier {tier_id!r}: {exc}") from exc


class TierCatalog:
    """Read-only set of tiers, injected wherever fees are computed."""

    def __init__(self, tiers: Mapping[str, TierConfig]):
        if not tiers:
            raise InvalidTierConfigError("A tier catalog needs at least one tier")
        for tier_id, config in tiers.items():
            if config.tier_id != tier_id:
                raise InvalidTierConfigError(
                    f"Tier registered as {tier_id!r} declares id {config.tier_id!r}"
                )
        self._tiers = MappingProxyType(dict(tiers))

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Mapping[str, Any]]) -> "TierCatalog":
        return cls({tier_id: _tier_from_dict(tier_id, data) for tier_id, data in raw.items()})

    @classmethod
    def from_json_file(cls, path) -> "TierCatalog":
        with open(Path(path), encoding="utf-8") as fh:
            raw = json.load(fh)
        catalog = cls.from_mapping(raw)
        logger.info("Loaded %d pricing tiers from %s", len(catalog), path)
        return catalog

    @classmethod
    def default(cls) -> "TierCatalog":
        return cls.from_mapping(_DEFAULT_TIERS)

    @property
    def tier_ids(self) -> Tuple[str, ...]:
        return tuple(self._tiers)

    def get_tier_config(self, tier_id) -> TierConfig:
        try:
            return self._tiers[tier_id]
        except (KeyError, TypeError):
            raise UnknownTierError(tier_id, self.tier_ids) from None

    def __contains__(self, tier_id) -> bool:
        try:
            return tier_id in self._tiers
        except TypeError:
            return False

    def __iter__(self) -> Iterator[TierConfig]:
        return iter(self._tiers.values())

    def __len__(self) -> int:
        return len(self._tiers)


@dataclass(frozen=True)
class NetProfit:
    packaging_cost: float
    before_tax: float
    tax: float
    net_profit: float


@dataclass(frozen=True)
class CommissionResult:
    rate: float
    amount: float


@dataclass(frozen=True)
class FeeResult:
    fixed_payment: float
    commission_amount: float
    total_fee: float
    net_profit: float
    partner_profit: float


@dataclass(frozen=True)
class FulfillmentQuote:
    tier: TierConfig
    sales: float
    cost_price: float
    unit_count: int
    profit: NetProfit
    commission: CommissionResult
    fee: FeeResult
    profit_percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tier": self.tier.tier_id,
            "tier_name": self.tier.name,
            "sales": self.sales,
            "cost_price": self.cost_price,
            "unit_count": self.unit_count,
            "packaging_cost": self.profit.packaging_cost,
            "before_tax": self.profit.before_tax,
            "tax": self.profit.tax,
            "net_profit": self.profit.net_profit,
            "fixed_payment": self.fee.fixed_payment,
            "commission_rate": self.commission.rate,
            "commission_amount": self.commission.amount,
            "total_fee": self.fee.total_fee,
            "partner_profit": self.fee.partner_profit,
            "profit_percentage": self.profit_percentage,
        }


def total_spt_cost(tier: TierConfig, item_count: int = 1) -> float:
    return tier.spt_cost * item_count


def derive_net_profit(
    sales: float, cost_price: float, unit_count: int, tier: TierConfig
) -> NetProfit:
    """Sales minus cost of goods, packaging and tax.

    The result is not clamped: a loss-making order yields a negative net
    profit, which callers display as a loss.
    """
    packaging_cost = total_spt_cost(tier, unit_count)
    before_tax = sales - cost_price - packaging_cost
    tax = before_tax * TAX_RATE
    return NetProfit(
        packaging_cost=packaging_cost,
        before_tax=before_tax,
        tax=tax,
        net_profit=before_tax - tax,
    )


def resolve_commission(net_profit: float, tier: TierConfig) -> CommissionResult:
    """Charge the whole net profit at the rate of the first bracket that holds it.

    This is a cliff schedule, not a marginal one: crossing a threshold moves
    the entire amount to the next rate, so the commission can drop when
    profit grows by a single unit.
    """
    for bracket in tier.commission_tiers:
        if net_profit <= bracket.threshold:
            return CommissionResult(rate=bracket.rate, amount=net_profit * bracket.rate / 100)
    # Only NaN gets here, the last threshold is unbounded.
    raise ValueError(f"Net profit is not a number: {net_profit!r}")


def aggregate_fee(
    tier: TierConfig, commission: CommissionResult, net_profit: float
) -> FeeResult:
    total_fee = tier.fixed_payment + commission.amount
    return FeeResult(
        fixed_payment=tier.fixed_payment,
        commission_amount=commission.amount,
        total_fee=total_fee,
        net_profit=net_profit,
        partner_profit=net_profit - total_fee,
    )


def calculate_fulfillment(
    sales: float,
    cost_price: float,
    unit_count: int,
    tier: TierConfig,
) -> FulfillmentQuote:
    """Run the full fee pipeline for one set of commercial figures."""
    profit = derive_net_profit(sales, cost_price, unit_count, tier)
    commission = resolve_commission(profit.net_profit, tier)
    fee = aggregate_fee(tier, commission, profit.net_profit)
    profit_percentage = (fee.partner_profit / sales * 100) if sales > 0 else 0.0
    logger.debug(
        "Fee quote tier=%s sales=%s net_profit=%s rate=%s total_fee=%s",
        tier.tier_id,
        sales,
        profit.net_profit,
        commission.rate,
        fee.total_fee,
    )
    return FulfillmentQuote(
        tier=tier,
        sales=sales,
        cost_price=cost_price,
        unit_count=unit_count,
        profit=profit,
        commission=commission,
        fee=fee,
        profit_percentage=profit_percentage,
    )


def current_catalog(app=None) -> TierCatalog:
    """Return the catalog attached to the running Flask application."""
    if app is None:
        from flask import current_app

        app = current_app
    return app.extensions["tier_catalog"]


def load_catalog(path: Optional[str]) -> TierCatalog:
    if path:
        return TierCatalog.from_json_file(path)
    return TierCatalog.default()
