"""Kinked utilization interest rate model and position yield."""

import logging
from collections.abc import Sequence

from services.risk_api.src.risk_api.domain.models import (
    PERCENTAGE_FACTOR,
    InterestRateCurveConfig,
    NetApr,
    RateSnapshot,
    ReserveRiskParameters,
    YieldPosition,
)

logger = logging.getLogger(__name__)


def borrow_rate_at(curve: InterestRateCurveConfig, utilization_pct: float) -> float:
    """
    Borrow APR (percent) at a given utilization (percent).

    Below or at the kink the rate interpolates from min to optimal; above it,
    from optimal to max over the remaining utilization range.
    """
    utilization = min(max(utilization_pct, 0.0), 100.0)
    optimal_utilization = curve.optimal_utilization_pct

    if optimal_utilization == 0:
        # Every utilization is past the kink
        rate = curve.optimal_borrow_rate_pct + (
            curve.max_borrow_rate_pct - curve.optimal_borrow_rate_pct
        )
    elif utilization <= optimal_utilization:
        rate = curve.min_borrow_rate_pct + (
            curve.optimal_borrow_rate_pct - curve.min_borrow_rate_pct
        ) * (utilization / optimal_utilization)
    elif optimal_utilization >= 100:
        rate = curve.optimal_borrow_rate_pct
    else:
        excess_ratio = (utilization - optimal_utilization) / (100 - optimal_utilization)
        rate = curve.optimal_borrow_rate_pct + (
            curve.max_borrow_rate_pct - curve.optimal_borrow_rate_pct
        ) * excess_ratio

    return max(0.0, rate)


def supply_rate_at(borrow_apr_pct: float, utilization_pct: float, reserve_factor_bips: int = 0) -> float:
    """Supply APR: borrow APR scaled by utilization, net of the protocol's reserve cut."""
    rate = (
        borrow_apr_pct
        * (utilization_pct / 100)
        * (1 - reserve_factor_bips / PERCENTAGE_FACTOR)
    )
    return max(0.0, rate)


def compute_rates(
    curve: InterestRateCurveConfig,
    total_borrowed_base_units: int,
    total_cash_available_base_units: int,
    reserve_factor_bips: int = 0,
) -> RateSnapshot:
    """
    Compute utilization, borrow APR and supply APR for a reserve.

    Args:
        curve: Interest rate curve of the reserve
        total_borrowed_base_units: Outstanding borrows
        total_cash_available_base_units: Cash left in the pool
        reserve_factor_bips: Protocol cut of borrow interest

    Returns:
        RateSnapshot with all values in percent. All zero for an empty pool.
    """
    total_supply = total_borrowed_base_units + total_cash_available_base_units
    if total_supply == 0:
        return RateSnapshot(utilization_pct=0.0, borrow_apr_pct=0.0, supply_apr_pct=0.0)

    utilization_pct = 100 * total_borrowed_base_units / total_supply
    borrow_apr = borrow_rate_at(curve, utilization_pct)
    supply_apr = supply_rate_at(borrow_apr, utilization_pct, reserve_factor_bips)

    logger.debug(
        f"Rates: utilization={utilization_pct:.2f}% borrow={borrow_apr:.2f}% "
        f"supply={supply_apr:.2f}% reserve_factor={reserve_factor_bips / 100:.2f}%"
    )
    return RateSnapshot(
        utilization_pct=utilization_pct,
        borrow_apr_pct=borrow_apr,
        supply_apr_pct=supply_apr,
    )


def compute_reserve_rates(reserve: ReserveRiskParameters) -> RateSnapshot | None:
    """Rates for a reserve snapshot, or None if it carries no curve."""
    if reserve.interest_rate_curve is None:
        return None
    return compute_rates(
        reserve.interest_rate_curve,
        reserve.total_borrowed_base_units,
        reserve.total_cash_available_base_units,
        reserve.reserve_factor_bips,
    )


def rate_curve(
    curve: InterestRateCurveConfig,
    reserve_factor_bips: int = 0,
    points: int = 21,
) -> list[RateSnapshot]:
    """Sample the rate curve from 0% to 100% utilization, kink included."""
    if points < 2:
        raise ValueError("points must be at least 2")

    utilizations = {100 * i / (points - 1) for i in range(points)}
    utilizations.add(curve.optimal_utilization_pct)

    samples = []
    for utilization in sorted(utilizations):
        borrow_apr = borrow_rate_at(curve, utilization)
        samples.append(
            RateSnapshot(
                utilization_pct=utilization,
                borrow_apr_pct=borrow_apr,
                supply_apr_pct=supply_rate_at(borrow_apr, utilization, reserve_factor_bips),
            )
        )
    return samples


def weighted_supply_apr(supplies: Sequence[YieldPosition]) -> float:
    """
    Value-weighted supply APR including rewards.

    Σ(value × (apr + reward_apr)) / Σ(value), 0 for an empty position.
    """
    total_value = sum(s.value_usd for s in supplies)
    if total_value == 0:
        return 0.0
    return sum(s.value_usd * (s.apr_pct + s.reward_apr_pct) for s in supplies) / total_value


def weighted_borrow_apr(borrows: Sequence[YieldPosition]) -> float:
    """Value-weighted borrow APR. Rewards reduce the cost."""
    total_value = sum(b.value_usd for b in borrows)
    if total_value == 0:
        return 0.0
    return sum(b.value_usd * (b.apr_pct - b.reward_apr_pct) for b in borrows) / total_value


def total_reward_apr(supplies: Sequence[YieldPosition], borrows: Sequence[YieldPosition]) -> float:
    """Reward APR over the combined supplied and borrowed value."""
    positions = [*supplies, *borrows]
    total_value = sum(p.value_usd for p in positions)
    if total_value == 0:
        return 0.0
    return sum(p.value_usd * p.reward_apr_pct for p in positions) / total_value


def net_apr(supplies: Sequence[YieldPosition], borrows: Sequence[YieldPosition]) -> NetApr:
    """
    Net annual yield of a position.

    Args:
        supplies: Supplied values with their supply APR
        borrows: Borrowed values with their borrow APR

    Returns:
        NetApr. Base interest and rewards are counted once each:
        net = supply interest - borrow interest + rewards on both sides,
        and net_apr_pct is net over total (supplied + borrowed) value.
    """
    supply_earnings = sum(s.value_usd * s.apr_pct for s in supplies) / 100
    borrow_costs = sum(b.value_usd * b.apr_pct for b in borrows) / 100
    reward_earnings = sum(p.value_usd * p.reward_apr_pct for p in [*supplies, *borrows]) / 100
    net_earnings = supply_earnings - borrow_costs + reward_earnings

    total_value = sum(s.value_usd for s in supplies) + sum(b.value_usd for b in borrows)

    return NetApr(
        net_apr_pct=100 * net_earnings / total_value if total_value > 0 else 0.0,
        supply_apr_pct=weighted_supply_apr(supplies),
        borrow_apr_pct=weighted_borrow_apr(borrows),
        reward_apr_pct=total_reward_apr(supplies, borrows),
        supply_earnings_usd=supply_earnings,
        borrow_costs_usd=borrow_costs,
        reward_earnings_usd=reward_earnings,
        net_earnings_usd=net_earnings,
    )


def apr_to_apy(apr_pct: float, compounding_periods: int = 365) -> float:
    """APY (percent) of an APR (percent) compounded n times a year."""
    if compounding_periods < 1:
        raise ValueError("compounding_periods must be at least 1")
    return 100 * ((1 + apr_pct / 100 / compounding_periods) ** compounding_periods - 1)


def apy_to_apr(apy_pct: float, compounding_periods: int = 365) -> float:
    if compounding_periods < 1:
        raise ValueError("compounding_periods must be at least 1")
    if apy_pct <= -100:
        raise ValueError("apy_pct must be above -100")
    return 100 * compounding_periods * ((1 + apy_pct / 100) ** (1 / compounding_periods) - 1)


def projected_earnings(
    principal_usd: float,
    apr_pct: float,
    days_held: float,
    compounding: bool = True,
) -> float:
    """Interest earned on a principal over a holding period, compounded daily or simple."""
    rate = apr_pct / 100
    if compounding:
        return principal_usd * (1 + rate / 365) ** days_held - principal_usd
    return principal_usd * rate * days_held / 365
