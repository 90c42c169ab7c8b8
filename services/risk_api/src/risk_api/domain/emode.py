"""Efficiency mode (E-Mode) borrowing power, eligibility and transitions."""

from collections.abc import Iterable, Sequence

from services.risk_api.src.risk_api.domain.health_factor import aggregate_collateral_value
from services.risk_api.src.risk_api.domain.models import (
    PERCENTAGE_FACTOR,
    AssetPosition,
    EModeCategory,
    EModeComparison,
    ValidationCode,
    ValidationResult,
)
from services.risk_api.src.risk_api.domain.policy import DEFAULT_POLICY, RiskPolicy


def emode_borrowing_power(deposits: Sequence[AssetPosition], category: EModeCategory) -> float:
    """LTV-weighted deposit value with the category's raised LTV on eligible assets."""
    total = 0.0
    for d in deposits:
        ltv_bips, _ = category.parameters_for(d)
        total += d.value_usd * ltv_bips / PERCENTAGE_FACTOR
    return total


def emode_liquidation_value(deposits: Sequence[AssetPosition], category: EModeCategory) -> float:
    """Risk-weighted collateral (HF numerator) in E-Mode."""
    return aggregate_collateral_value(
        (d.value_usd, category.parameters_for(d)[1]) for d in deposits
    )


def compare_normal_vs_emode(
    deposits: Sequence[AssetPosition], category: EModeCategory
) -> EModeComparison:
    normal = sum(d.value_usd * d.ltv_bips / PERCENTAGE_FACTOR for d in deposits)
    emode = emode_borrowing_power(deposits, category)
    improvement = emode - normal
    return EModeComparison(
        normal_borrowing_power=normal,
        emode_borrowing_power=emode,
        improvement=improvement,
        improvement_pct=100 * improvement / normal if normal > 0 else 0.0,
    )


def can_enter_emode(deposit_symbols: Iterable[str], category: EModeCategory) -> ValidationResult:
    """A position may enter a category only if every deposit is eligible for it."""
    ineligible = sorted({s for s in deposit_symbols if not category.is_eligible(s)})
    if ineligible:
        return ValidationResult.reject(
            ValidationCode.EMODE_INELIGIBLE,
            f"Some assets are not eligible for {category.name} E-Mode: {', '.join(ineligible)}",
        )
    return ValidationResult.accept()


def can_borrow_in_emode(symbol: str, category: EModeCategory) -> bool:
    """In E-Mode only assets of the same category can be borrowed."""
    return category.is_eligible(symbol)


def validate_emode_transition(
    current_health_factor: float,
    target_health_factor: float,
    policy: RiskPolicy = DEFAULT_POLICY,
) -> ValidationResult:
    """
    Check a switch into or out of E-Mode.

    Rejects when the health factor after the switch is below
    policy.safe_moderate. Cautions when it falls below
    policy.emode_exit_caution_ratio of the current value.
    """
    if target_health_factor < policy.safe_moderate:
        return ValidationResult.reject(
            ValidationCode.HEALTH_FACTOR_TOO_LOW,
            f"Health factor would drop to {target_health_factor:.2f}. "
            f"Minimum safe level is {policy.safe_moderate}",
        )

    if target_health_factor < current_health_factor * policy.emode_exit_caution_ratio:
        return ValidationResult.caution("Health factor will decrease significantly. Proceed with caution.")

    return ValidationResult.accept()
