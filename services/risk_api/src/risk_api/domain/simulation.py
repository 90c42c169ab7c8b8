"""Project a position's health factor after a hypothetical action."""

import logging
import math

from services.risk_api.src.risk_api.domain.health_factor import (
    aggregate_collateral_value,
    classify_safety_tier,
    collateral_value,
    health_factor,
)
from services.risk_api.src.risk_api.domain.models import (
    ActionKind,
    CollateralPosition,
    PortfolioSnapshot,
    ReserveRiskParameters,
    SafetyTier,
    SimulationMode,
    SimulationResult,
)
from services.risk_api.src.risk_api.domain.policy import DEFAULT_POLICY, RiskPolicy

logger = logging.getLogger(__name__)


def _project_positions(
    positions: tuple[CollateralPosition, ...],
    kind: ActionKind,
    reserve: ReserveRiskParameters,
    amount_usd: float,
) -> tuple[CollateralPosition, ...]:
    """Apply a supply/withdraw to the position of the acted-on asset."""
    if kind not in (ActionKind.SUPPLY, ActionKind.WITHDRAW):
        return positions

    delta = amount_usd if kind == ActionKind.SUPPLY else -amount_usd
    projected = []
    matched = False
    for p in positions:
        if p.symbol == reserve.symbol:
            matched = True
            projected.append(
                CollateralPosition(
                    symbol=p.symbol,
                    supplied_usd=max(0.0, p.supplied_usd + delta),
                    liquidation_threshold_bips=p.liquidation_threshold_bips,
                )
            )
        else:
            projected.append(p)

    if not matched and kind == ActionKind.SUPPLY:
        projected.append(
            CollateralPosition(
                symbol=reserve.symbol,
                supplied_usd=amount_usd,
                liquidation_threshold_bips=reserve.liquidation_threshold_bips,
            )
        )

    return tuple(projected)


def _breakdown_mismatch(
    portfolio: PortfolioSnapshot, kind: ActionKind, reserve: ReserveRiskParameters
) -> str | None:
    """Why the collateral breakdown cannot model this action, or None if it can."""
    if not portfolio.collateral_positions:
        return "portfolio has no collateral breakdown"

    breakdown_total = sum(p.supplied_usd for p in portfolio.collateral_positions)
    if not math.isclose(breakdown_total, portfolio.total_supplied_usd, rel_tol=1e-6, abs_tol=1e-6):
        return (
            f"collateral breakdown sums to ${breakdown_total:.2f}, "
            f"total supplied is ${portfolio.total_supplied_usd:.2f}"
        )

    if kind == ActionKind.WITHDRAW and all(
        p.symbol != reserve.symbol for p in portfolio.collateral_positions
    ):
        return f"collateral breakdown has no {reserve.symbol} position to withdraw from"

    return None


def simulate(
    portfolio: PortfolioSnapshot,
    kind: ActionKind,
    reserve: ReserveRiskParameters,
    amount: float,
    mode: SimulationMode = SimulationMode.PER_ASSET,
    policy: RiskPolicy = DEFAULT_POLICY,
) -> SimulationResult:
    """
    Simulate health factor change after an action.

    Args:
        portfolio: Current position
        kind: Action to simulate
        reserve: Reserve the action is on (price and thresholds)
        amount: Amount in display units
        mode: Collateral model. PER_ASSET needs portfolio.collateral_positions
            summing to the supplied total (and, for a withdraw, a position in
            the reserve's asset); otherwise it falls back to SINGLE_RESERVE.
        policy: Thresholds for the safety tier

    Returns:
        SimulationResult. Repay and withdraw never drive a balance below zero.
    """
    amount_usd = amount * reserve.price_usd

    if mode == SimulationMode.PER_ASSET:
        mismatch = _breakdown_mismatch(portfolio, kind, reserve)
        if mismatch:
            logger.debug(f"Simulating with a single reserve: {mismatch}")
            mode = SimulationMode.SINGLE_RESERVE

    if not math.isfinite(amount_usd):
        logger.warning(f"Non-finite {kind.value} amount for {reserve.symbol}: {amount}")
        return SimulationResult(
            current_health_factor=portfolio.health_factor,
            projected_health_factor=0.0,
            projected_supplied_value_usd=portfolio.total_supplied_usd,
            projected_collateral_value_usd=0.0,
            projected_borrow_value_usd=portfolio.total_borrowed_usd,
            safety_tier=SafetyTier.DANGER,
            mode=mode,
        )

    supplied = portfolio.total_supplied_usd
    borrowed = portfolio.total_borrowed_usd
    if kind == ActionKind.SUPPLY:
        supplied += amount_usd
    elif kind == ActionKind.BORROW:
        borrowed += amount_usd
    elif kind == ActionKind.WITHDRAW:
        supplied = max(0.0, supplied - amount_usd)
    elif kind == ActionKind.REPAY:
        borrowed = max(0.0, borrowed - amount_usd)

    if mode == SimulationMode.PER_ASSET:
        positions = _project_positions(portfolio.collateral_positions, kind, reserve, amount_usd)
        collateral = aggregate_collateral_value(positions)
    else:
        collateral = collateral_value(supplied, reserve.liquidation_threshold_bips)

    projected_hf = health_factor(collateral, borrowed, policy)
    if math.isfinite(collateral) and math.isfinite(borrowed):
        tier = classify_safety_tier(projected_hf, policy)
    else:
        tier = SafetyTier.DANGER

    liquidation_price = None
    if kind in (ActionKind.BORROW, ActionKind.WITHDRAW) and borrowed > 0 and collateral > 0:
        # Price at which collateral would exactly cover the (fixed) borrow value
        estimate = reserve.price_usd * borrowed / collateral
        if math.isfinite(estimate):
            liquidation_price = estimate

    return SimulationResult(
        current_health_factor=portfolio.health_factor,
        projected_health_factor=projected_hf,
        projected_supplied_value_usd=supplied,
        projected_collateral_value_usd=collateral,
        projected_borrow_value_usd=borrowed,
        safety_tier=tier,
        mode=mode,
        estimated_liquidation_price=liquidation_price,
    )


def project_health_factor(
    portfolio: PortfolioSnapshot,
    supply_change_usd: float,
    borrow_change_usd: float,
    liquidation_threshold_bips: int,
    policy: RiskPolicy = DEFAULT_POLICY,
) -> float:
    """
    Health factor after shifting supplied and borrowed USD by signed deltas.

    Both totals are clamped at zero. Collateral is the projected supplied value
    at a single liquidation threshold.
    """
    supplied = max(0.0, portfolio.total_supplied_usd + supply_change_usd)
    borrowed = max(0.0, portfolio.total_borrowed_usd + borrow_change_usd)
    if not (math.isfinite(supplied) and math.isfinite(borrowed)):
        return 0.0
    return health_factor(collateral_value(supplied, liquidation_threshold_bips), borrowed, policy)


def max_safe_amount(
    portfolio: PortfolioSnapshot,
    kind: ActionKind,
    reserve: ReserveRiskParameters,
    supplied_amount: float | None = None,
    target_health_factor: float | None = None,
    policy: RiskPolicy = DEFAULT_POLICY,
) -> float:
    """
    Largest borrow or withdraw (display units) that keeps HF at the target.

    Uses the reserve's liquidation threshold for the whole position.
    supplied_amount caps a withdrawal at what the user actually holds.
    """
    if kind not in (ActionKind.BORROW, ActionKind.WITHDRAW):
        raise ValueError(f"max_safe_amount only supports borrow and withdraw, got {kind.value}")

    target = policy.safe_moderate if target_health_factor is None else target_health_factor
    price = reserve.price_usd
    if price <= 0:
        return 0.0

    threshold = reserve.liquidation_threshold

    if kind == ActionKind.BORROW:
        max_borrow_value = portfolio.total_supplied_usd * threshold / target - portfolio.total_borrowed_usd
        return max(0.0, max_borrow_value / price)

    if portfolio.total_borrowed_usd < policy.debt_epsilon:
        return supplied_amount if supplied_amount is not None else portfolio.total_supplied_usd / price

    if threshold <= 0:
        return 0.0

    min_required_supply = portfolio.total_borrowed_usd * target / threshold
    max_withdraw = max(0.0, (portfolio.total_supplied_usd - min_required_supply) / price)
    if supplied_amount is not None:
        return min(max_withdraw, supplied_amount)
    return max_withdraw
