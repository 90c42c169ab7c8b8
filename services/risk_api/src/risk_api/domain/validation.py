"""Pre-flight checks for supply, borrow, repay and withdraw.

Each validator runs its checks in a fixed order and returns on the first
failure, so callers always get a single rejection reason. Outcomes are
returned as ValidationResult values, never raised.
"""

import logging
import math

from services.risk_api.src.risk_api.domain.models import (
    ActionKind,
    ActionRequest,
    PortfolioSnapshot,
    ReserveRiskParameters,
    SimulationMode,
    ValidationCode,
    ValidationResult,
)
from services.risk_api.src.risk_api.domain.policy import DEFAULT_POLICY, RiskPolicy
from services.risk_api.src.risk_api.domain.simulation import simulate
from services.risk_api.src.risk_api.utils.units import to_base_units, to_display_units

logger = logging.getLogger(__name__)


def _is_invalid_amount(amount: float) -> bool:
    return not math.isfinite(amount) or amount <= 0


def _exceeds_available(amount: float, available: float) -> bool:
    # A balance or liquidity that is not a finite number covers nothing
    return not math.isfinite(available) or amount > available


def _invalid_amount() -> ValidationResult:
    return ValidationResult.reject(ValidationCode.INVALID_AMOUNT, "Amount must be greater than 0")


def _insufficient_balance(balance: float, symbol: str) -> ValidationResult:
    return ValidationResult.reject(
        ValidationCode.INSUFFICIENT_BALANCE,
        f"Insufficient balance. You have {balance:.6f} {symbol}",
    )


def _exceeds_limit(current_base_units: int, amount: float, limit: int | None, decimals: int) -> bool:
    # 0 and None both mean the reserve has no limit
    if not limit:
        return False
    return current_base_units + to_base_units(amount, decimals) > limit


def validate_supply(
    reserve: ReserveRiskParameters,
    amount: float,
    spendable_balance: float,
    policy: RiskPolicy = DEFAULT_POLICY,
) -> ValidationResult:
    if _is_invalid_amount(amount):
        return _invalid_amount()

    if _exceeds_available(amount, spendable_balance):
        return _insufficient_balance(spendable_balance, reserve.symbol)

    if amount < policy.min_action_amount:
        return ValidationResult.reject(
            ValidationCode.BELOW_MINIMUM,
            f"Minimum supply amount is {policy.min_action_amount} {reserve.symbol}",
        )

    if _exceeds_limit(
        reserve.total_supply_base_units, amount, reserve.deposit_limit_base_units, reserve.decimals
    ):
        return ValidationResult.reject(
            ValidationCode.DEPOSIT_LIMIT_EXCEEDED,
            "Deposit would exceed protocol deposit limit for this asset",
        )

    return ValidationResult.accept()


def validate_borrow(
    reserve: ReserveRiskParameters,
    amount: float,
    portfolio: PortfolioSnapshot | None,
    available_liquidity: float | None = None,
    mode: SimulationMode = SimulationMode.PER_ASSET,
    policy: RiskPolicy = DEFAULT_POLICY,
) -> ValidationResult:
    """
    Validate a borrow.

    available_liquidity defaults to the reserve's cash in display units.
    Borrows projected below the hard floor are rejected; below the caution
    floor they are accepted with a note.
    """
    if _is_invalid_amount(amount):
        return _invalid_amount()

    if portfolio is None or portfolio.total_supplied_usd <= 0:
        return ValidationResult.reject(
            ValidationCode.COLLATERAL_REQUIRED,
            "You must supply collateral before borrowing",
        )

    liquidity = reserve.available_liquidity if available_liquidity is None else available_liquidity
    if _exceeds_available(amount, liquidity):
        return ValidationResult.reject(
            ValidationCode.INSUFFICIENT_LIQUIDITY,
            f"Insufficient liquidity. Only {liquidity:.6f} {reserve.symbol} available",
        )

    max_borrow_value = portfolio.total_supplied_usd * reserve.loan_to_value
    available_power = max_borrow_value - portfolio.total_borrowed_usd
    if amount * reserve.price_usd > available_power:
        return ValidationResult.reject(
            ValidationCode.BORROWING_POWER_EXCEEDED,
            f"Insufficient borrowing power. Max: ${max(0.0, available_power):.2f}",
        )

    if _exceeds_limit(
        reserve.total_borrowed_base_units, amount, reserve.borrow_limit_base_units, reserve.decimals
    ):
        return ValidationResult.reject(
            ValidationCode.BORROW_LIMIT_EXCEEDED,
            "Borrow would exceed protocol borrow limit for this asset",
        )

    if amount < policy.min_action_amount:
        return ValidationResult.reject(
            ValidationCode.BELOW_MINIMUM,
            f"Minimum borrow amount is {policy.min_action_amount} {reserve.symbol}",
        )

    projected = simulate(portfolio, ActionKind.BORROW, reserve, amount, mode, policy)
    hf = projected.projected_health_factor

    if hf < policy.borrow_hard_floor:
        return ValidationResult.reject(
            ValidationCode.HEALTH_FACTOR_TOO_LOW,
            f"Health factor too low ({hf:.2f}). Risk of liquidation!",
        )

    if hf < policy.borrow_caution_floor:
        return ValidationResult.caution(f"Health factor will be {hf:.2f}. Consider borrowing less.")

    return ValidationResult.accept()


def validate_repay(
    reserve: ReserveRiskParameters,
    amount: float,
    spendable_balance: float,
    borrowed_amount: float,
) -> ValidationResult:
    """Validate a repay. Over-repayment is accepted; only the debt gets repaid."""
    if _is_invalid_amount(amount):
        return _invalid_amount()

    if not math.isfinite(borrowed_amount) or borrowed_amount <= 0:
        return ValidationResult.reject(
            ValidationCode.NOTHING_BORROWED,
            f"You don't have any {reserve.symbol} borrowed",
        )

    if _exceeds_available(amount, spendable_balance):
        return _insufficient_balance(spendable_balance, reserve.symbol)

    if amount > borrowed_amount:
        return ValidationResult.caution(
            f"Repay amount exceeds borrowed amount. Will repay {borrowed_amount:.6f} {reserve.symbol}",
            code=ValidationCode.OVER_REPAYMENT,
        )

    return ValidationResult.accept()


def validate_withdraw(
    reserve: ReserveRiskParameters,
    amount: float,
    supplied_amount: float,
    portfolio: PortfolioSnapshot | None,
    mode: SimulationMode = SimulationMode.PER_ASSET,
    policy: RiskPolicy = DEFAULT_POLICY,
) -> ValidationResult:
    """Validate a withdraw. Without outstanding debt any held amount may be withdrawn."""
    if _is_invalid_amount(amount):
        return _invalid_amount()

    if not math.isfinite(supplied_amount) or supplied_amount <= 0:
        return ValidationResult.reject(
            ValidationCode.NOTHING_SUPPLIED,
            f"You don't have any {reserve.symbol} supplied",
        )

    if amount > supplied_amount:
        return ValidationResult.reject(
            ValidationCode.EXCEEDS_SUPPLIED,
            f"Withdraw exceeds supplied amount. You have {supplied_amount:.6f} {reserve.symbol} supplied",
        )

    if portfolio is None or portfolio.total_borrowed_usd <= 0:
        return ValidationResult.accept()

    projected = simulate(portfolio, ActionKind.WITHDRAW, reserve, amount, mode, policy)
    hf = projected.projected_health_factor

    if hf < policy.withdraw_liquidation_floor:
        return ValidationResult.reject(
            ValidationCode.LIQUIDATION_FLOOR,
            f"Cannot withdraw. Health factor would drop to {hf:.2f} "
            f"(below {policy.withdraw_liquidation_floor})",
        )

    if hf < policy.withdraw_hard_floor:
        return ValidationResult.reject(
            ValidationCode.HEALTH_FACTOR_TOO_LOW,
            f"Health factor too low ({hf:.2f}). Risk of liquidation!",
        )

    if hf < policy.withdraw_caution_floor:
        return ValidationResult.caution(f"Health factor will be {hf:.2f}. Consider withdrawing less.")

    return ValidationResult.accept()


def validate(
    request: ActionRequest,
    reserve: ReserveRiskParameters,
    portfolio: PortfolioSnapshot | None,
    mode: SimulationMode = SimulationMode.PER_ASSET,
    policy: RiskPolicy = DEFAULT_POLICY,
) -> ValidationResult:
    """Dispatch an ActionRequest to the validator for its kind."""
    if request.kind == ActionKind.SUPPLY:
        result = validate_supply(reserve, request.amount, request.spendable_balance, policy)
    elif request.kind == ActionKind.BORROW:
        result = validate_borrow(
            reserve, request.amount, portfolio, request.available_liquidity, mode, policy
        )
    elif request.kind == ActionKind.REPAY:
        borrowed = to_display_units(request.asset_borrowed_base_units, reserve.decimals)
        result = validate_repay(reserve, request.amount, request.spendable_balance, borrowed)
    elif request.kind == ActionKind.WITHDRAW:
        supplied = to_display_units(request.asset_supplied_base_units, reserve.decimals)
        result = validate_withdraw(reserve, request.amount, supplied, portfolio, mode, policy)
    else:
        raise ValueError(f"Unknown action kind: {request.kind}")

    if not result.accepted:
        logger.debug(f"{request.kind.value} {reserve.symbol} rejected: {result.rejection_reason}")
    return result
