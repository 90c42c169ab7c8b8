import math

from pydantic import BaseModel, ConfigDict

from services.risk_api.src.risk_api.domain.models import (
    SafetyTier,
    SimulationMode,
    ValidationCode,
)


def finite_or_none(value: float | None) -> float | None:
    """JSON has no infinity: infinite health factors and distances become null."""
    if value is None or not math.isfinite(value):
        return None
    return value


class RatesResponse(BaseModel):
    """Utilization and rates, all in percent."""

    model_config = ConfigDict(from_attributes=True)

    utilization_pct: float
    borrow_apr_pct: float
    supply_apr_pct: float


class RateCurveResponse(BaseModel):
    optimal_utilization_pct: float
    points: list[RatesResponse]


class SimulationResponse(BaseModel):
    """Projected position. Health factors are null when there is no debt."""

    current_health_factor: float | None
    projected_health_factor: float | None
    projected_supplied_value_usd: float
    projected_collateral_value_usd: float
    projected_borrow_value_usd: float
    safety_tier: SafetyTier
    safety_label: str
    mode: SimulationMode
    estimated_liquidation_price: float | None = None


class ValidationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    accepted: bool
    code: ValidationCode
    rejection_reason: str | None = None
    caution_note: str | None = None


class BorrowingPowerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: float
    used: float
    available: float
    utilization_pct: float


class LiquidationDistanceResponse(BaseModel):
    # null when there is no debt
    distance_usd: float | None
    percent_to_liquidation: float
    is_at_risk: bool


class MaxSafeAmountResponse(BaseModel):
    amount: float
    target_health_factor: float


class PortfolioRiskResponse(BaseModel):
    total_supplied_usd: float
    total_borrowed_usd: float
    borrowing_power: float
    adjusted_borrow_value: float
    liquidation_value: float
    health_factor: float | None
    health_factor_display: str
    borrow_limit_pct: float
    available_to_borrow: float
    is_healthy: bool
    is_liquidatable: bool


class EModeResponse(BaseModel):
    """Effect of a position entering an E-Mode category."""

    category_name: str
    can_enter: bool
    reason: str | None = None
    normal_borrowing_power: float
    emode_borrowing_power: float
    improvement: float
    improvement_pct: float
    normal_health_factor: float | None
    emode_health_factor: float | None
    # Outcome of switching back from E-Mode to normal parameters
    exit_check: ValidationResponse


class NetAprResponse(BaseModel):
    """Annual yield of a position. Rates in percent, earnings in USD per year."""

    model_config = ConfigDict(from_attributes=True)

    net_apr_pct: float
    net_apy_pct: float
    supply_apr_pct: float
    borrow_apr_pct: float
    reward_apr_pct: float
    supply_earnings_usd: float
    borrow_costs_usd: float
    reward_earnings_usd: float
    net_earnings_usd: float
