"""Health factor simulation and action validation API routes."""

from fastapi import APIRouter, Depends, HTTPException

from services.risk_api.src.risk_api.config import get_policy
from services.risk_api.src.risk_api.domain.emode import (
    can_enter_emode,
    compare_normal_vs_emode,
    validate_emode_transition,
)
from services.risk_api.src.risk_api.domain.health_factor import (
    borrowing_power,
    format_health_factor,
    health_factor_label,
    liquidation_distance,
    portfolio_risk,
)
from services.risk_api.src.risk_api.domain.models import (
    ActionKind,
    InvalidCurveConfig,
    ReserveRiskParameters,
)
from services.risk_api.src.risk_api.domain.policy import RiskPolicy
from services.risk_api.src.risk_api.domain.simulation import max_safe_amount, simulate
from services.risk_api.src.risk_api.domain.validation import validate
from services.risk_api.src.risk_api.schemas.requests import (
    BorrowingPowerRequest,
    EModeRequest,
    LiquidationDistanceRequest,
    MaxSafeAmountRequest,
    PortfolioRiskRequest,
    ReserveRequest,
    SimulateRequest,
    ValidateRequest,
)
from services.risk_api.src.risk_api.schemas.responses import (
    BorrowingPowerResponse,
    EModeResponse,
    LiquidationDistanceResponse,
    MaxSafeAmountResponse,
    PortfolioRiskResponse,
    SimulationResponse,
    ValidationResponse,
    finite_or_none,
)

router = APIRouter(prefix="/risk", tags=["risk"])


def build_reserve(reserve: ReserveRequest) -> ReserveRiskParameters:
    try:
        return reserve.to_domain()
    except InvalidCurveConfig as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/simulate", response_model=SimulationResponse)
def simulate_action(
    request: SimulateRequest,
    policy: RiskPolicy = Depends(get_policy),
) -> SimulationResponse:
    """
    Preview the effect of a supply, borrow, repay or withdraw on the health factor.

    Health factors are null when the position has no debt.
    """
    result = simulate(
        request.portfolio.to_domain(),
        request.action,
        build_reserve(request.reserve),
        request.amount,
        mode=request.mode,
        policy=policy,
    )
    return SimulationResponse(
        current_health_factor=finite_or_none(result.current_health_factor),
        projected_health_factor=finite_or_none(result.projected_health_factor),
        projected_supplied_value_usd=result.projected_supplied_value_usd,
        projected_collateral_value_usd=result.projected_collateral_value_usd,
        projected_borrow_value_usd=result.projected_borrow_value_usd,
        safety_tier=result.safety_tier,
        safety_label=health_factor_label(result.projected_health_factor, policy),
        mode=result.mode,
        estimated_liquidation_price=result.estimated_liquidation_price,
    )


@router.post("/validate", response_model=ValidationResponse)
def validate_action(
    request: ValidateRequest,
    policy: RiskPolicy = Depends(get_policy),
) -> ValidationResponse:
    """Pre-flight check of an action. Rejections are returned with status 200."""
    portfolio = request.portfolio.to_domain() if request.portfolio else None
    result = validate(
        request.to_action(),
        build_reserve(request.reserve),
        portfolio,
        mode=request.mode,
        policy=policy,
    )
    return ValidationResponse.model_validate(result)


@router.post("/borrowing-power", response_model=BorrowingPowerResponse)
def get_borrowing_power(request: BorrowingPowerRequest) -> BorrowingPowerResponse:
    power = borrowing_power(request.portfolio.to_domain(), request.loan_to_value_bips)
    return BorrowingPowerResponse.model_validate(power)


@router.post("/liquidation-distance", response_model=LiquidationDistanceResponse)
def get_liquidation_distance(
    request: LiquidationDistanceRequest,
    policy: RiskPolicy = Depends(get_policy),
) -> LiquidationDistanceResponse:
    distance = liquidation_distance(
        request.portfolio.to_domain(), request.liquidation_threshold_bips, policy
    )
    return LiquidationDistanceResponse(
        distance_usd=finite_or_none(distance.distance_usd),
        percent_to_liquidation=distance.percent_to_liquidation,
        is_at_risk=distance.is_at_risk,
    )


@router.post("/max-safe-amount", response_model=MaxSafeAmountResponse)
def get_max_safe_amount(
    request: MaxSafeAmountRequest,
    policy: RiskPolicy = Depends(get_policy),
) -> MaxSafeAmountResponse:
    """Largest borrow or withdraw that keeps the health factor at the target."""
    if request.action not in (ActionKind.BORROW, ActionKind.WITHDRAW):
        raise HTTPException(
            status_code=422,
            detail=f"max-safe-amount supports borrow and withdraw, got {request.action.value}",
        )

    target = (
        policy.safe_moderate
        if request.target_health_factor is None
        else request.target_health_factor
    )
    amount = max_safe_amount(
        request.portfolio.to_domain(),
        request.action,
        build_reserve(request.reserve),
        supplied_amount=request.supplied_amount,
        target_health_factor=target,
        policy=policy,
    )
    return MaxSafeAmountResponse(amount=amount, target_health_factor=target)


@router.post("/portfolio", response_model=PortfolioRiskResponse)
def get_portfolio_risk(
    request: PortfolioRiskRequest,
    policy: RiskPolicy = Depends(get_policy),
) -> PortfolioRiskResponse:
    """Risk metrics for a multi-asset position, optionally in an E-Mode category."""
    try:
        risk = portfolio_risk(
            [d.to_domain() for d in request.deposits],
            [b.to_domain() for b in request.borrows],
            policy,
            emode=request.emode.to_domain() if request.emode else None,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return PortfolioRiskResponse(
        total_supplied_usd=risk.total_supplied_usd,
        total_borrowed_usd=risk.total_borrowed_usd,
        borrowing_power=risk.borrowing_power,
        adjusted_borrow_value=risk.adjusted_borrow_value,
        liquidation_value=risk.liquidation_value,
        health_factor=finite_or_none(risk.health_factor),
        health_factor_display=format_health_factor(risk.health_factor),
        borrow_limit_pct=risk.borrow_limit_pct,
        available_to_borrow=risk.available_to_borrow,
        is_healthy=risk.is_healthy,
        is_liquidatable=risk.is_liquidatable,
    )


@router.post("/emode", response_model=EModeResponse)
def get_emode_effect(
    request: EModeRequest,
    policy: RiskPolicy = Depends(get_policy),
) -> EModeResponse:
    """Compare a position's borrowing power and health factor with and without E-Mode."""
    deposits = [d.to_domain() for d in request.deposits]
    borrows = [b.to_domain() for b in request.borrows]
    try:
        category = request.category.to_domain()
        normal = portfolio_risk(deposits, borrows, policy)
        emode = portfolio_risk(deposits, borrows, policy, emode=category)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    entry = can_enter_emode((d.symbol for d in deposits), category)
    comparison = compare_normal_vs_emode(deposits, category)
    exit_check = validate_emode_transition(emode.health_factor, normal.health_factor, policy)

    return EModeResponse(
        category_name=category.name,
        can_enter=entry.accepted,
        reason=entry.rejection_reason,
        normal_borrowing_power=comparison.normal_borrowing_power,
        emode_borrowing_power=comparison.emode_borrowing_power,
        improvement=comparison.improvement,
        improvement_pct=comparison.improvement_pct,
        normal_health_factor=finite_or_none(normal.health_factor),
        emode_health_factor=finite_or_none(emode.health_factor),
        exit_check=ValidationResponse.model_validate(exit_check),
    )
