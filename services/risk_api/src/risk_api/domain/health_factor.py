"""Health factor, collateral and borrowing power calculations."""

import math
from collections.abc import Iterable, Sequence

from services.risk_api.src.risk_api.domain.models import (
    PERCENTAGE_FACTOR,
    AssetPosition,
    BorrowingPower,
    CollateralPosition,
    EModeCategory,
    LiquidationDistance,
    PortfolioRisk,
    PortfolioSnapshot,
    SafetyTier,
)
from services.risk_api.src.risk_api.domain.policy import DEFAULT_POLICY, RiskPolicy


def health_factor(
    collateral_value_usd: float,
    borrow_value_usd: float,
    policy: RiskPolicy = DEFAULT_POLICY,
) -> float:
    """
    Calculate health factor.

    HF = risk-weighted collateral / borrowed value

    Returns math.inf if there is no debt. Never returns NaN: a NaN input
    yields 0.0 so the position classifies as Danger.
    """
    if borrow_value_usd < policy.debt_epsilon:
        return math.inf
    result = collateral_value_usd / borrow_value_usd
    if math.isnan(result):
        return 0.0
    return result


def collateral_value(supplied_usd: float, liquidation_threshold_bips: int) -> float:
    """Supplied value counted as liquidation-safe collateral."""
    return supplied_usd * liquidation_threshold_bips / PERCENTAGE_FACTOR


def aggregate_collateral_value(
    positions: Iterable[CollateralPosition | tuple[float, int]],
) -> float:
    """
    Total risk-weighted collateral across assets.

    HF numerator = Σ(supplied_i × liquidationThreshold_i)

    Accepts CollateralPosition objects or (supplied_usd, threshold_bips) pairs.
    """
    total = 0.0
    for position in positions:
        if isinstance(position, CollateralPosition):
            total += collateral_value(position.supplied_usd, position.liquidation_threshold_bips)
        else:
            supplied_usd, threshold_bips = position
            total += collateral_value(supplied_usd, threshold_bips)
    return total


def borrowing_power(portfolio: PortfolioSnapshot, loan_to_value_bips: int) -> BorrowingPower:
    total = portfolio.total_supplied_usd * loan_to_value_bips / PERCENTAGE_FACTOR
    used = portfolio.total_borrowed_usd
    return BorrowingPower(
        total=total,
        used=used,
        available=max(0.0, total - used),
        utilization_pct=100 * used / total if total > 0 else 0.0,
    )


def liquidation_distance(
    portfolio: PortfolioSnapshot,
    liquidation_threshold_bips: int,
    policy: RiskPolicy = DEFAULT_POLICY,
) -> LiquidationDistance:
    """
    How much collateral value the position can lose before liquidation.

    is_at_risk uses the portfolio's reported health factor.
    """
    if portfolio.total_borrowed_usd < policy.debt_epsilon:
        return LiquidationDistance(distance_usd=math.inf, percent_to_liquidation=0.0, is_at_risk=False)

    collateral = collateral_value(portfolio.total_supplied_usd, liquidation_threshold_bips)
    distance = collateral - portfolio.total_borrowed_usd
    percent = 100 * distance / collateral if collateral > 0 else 0.0

    return LiquidationDistance(
        distance_usd=distance,
        percent_to_liquidation=percent,
        is_at_risk=portfolio.health_factor < policy.at_risk,
    )


def classify_safety_tier(hf: float, policy: RiskPolicy = DEFAULT_POLICY) -> SafetyTier:
    if math.isnan(hf):
        return SafetyTier.DANGER
    if hf >= policy.safe_moderate:
        return SafetyTier.SAFE
    if hf >= policy.caution:
        return SafetyTier.CAUTION
    return SafetyTier.DANGER


def health_factor_label(hf: float, policy: RiskPolicy = DEFAULT_POLICY) -> str:
    if hf == math.inf:
        return "No Borrows"
    if hf >= policy.safe_strong:
        return "Safe"
    if hf >= policy.safe_moderate:
        return "Moderate"
    if hf >= policy.caution:
        return "Caution"
    return "High Risk"


def format_health_factor(hf: float) -> str:
    if hf == math.inf:
        return "∞"
    if math.isnan(hf):
        return "-"
    if hf > 999:
        return ">999"
    return f"{hf:.2f}"


def is_liquidatable(hf: float, policy: RiskPolicy = DEFAULT_POLICY) -> bool:
    """True if HF < 1."""
    return hf < policy.liquidation


def portfolio_risk(
    deposits: Sequence[AssetPosition],
    borrows: Sequence[AssetPosition],
    policy: RiskPolicy = DEFAULT_POLICY,
    emode: EModeCategory | None = None,
) -> PortfolioRisk:
    """
    Full risk metrics for a multi-asset position.

    Borrowing power is LTV-weighted, debt is adjusted by each asset's borrow
    factor (adjusted = value / borrow_factor) and the health factor is
    liquidation value over adjusted debt. With an E-Mode category, eligible
    deposits count at the category's LTV and liquidation threshold.
    """
    total_supplied = sum(d.value_usd for d in deposits)
    total_borrowed = sum(b.value_usd for b in borrows)

    if emode is None:
        parameters = [(d.ltv_bips, d.liquidation_threshold_bips) for d in deposits]
    else:
        parameters = [emode.parameters_for(d) for d in deposits]

    power = sum(d.value_usd * ltv / PERCENTAGE_FACTOR for d, (ltv, _) in zip(deposits, parameters))
    liquidation_value = aggregate_collateral_value(
        (d.value_usd, threshold) for d, (_, threshold) in zip(deposits, parameters)
    )

    adjusted_borrow = 0.0
    for b in borrows:
        if b.borrow_factor_bips <= 0:
            raise ValueError(f"borrow_factor_bips must be positive for {b.symbol}")
        adjusted_borrow += b.value_usd * PERCENTAGE_FACTOR / b.borrow_factor_bips

    hf = health_factor(liquidation_value, adjusted_borrow, policy)

    return PortfolioRisk(
        total_supplied_usd=total_supplied,
        total_borrowed_usd=total_borrowed,
        borrowing_power=power,
        adjusted_borrow_value=adjusted_borrow,
        liquidation_value=liquidation_value,
        health_factor=hf,
        borrow_limit_pct=100 * adjusted_borrow / power if power > 0 else 0.0,
        available_to_borrow=max(0.0, power - adjusted_borrow),
        is_healthy=adjusted_borrow <= power,
        is_liquidatable=is_liquidatable(hf, policy),
    )
