import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

# Bips are scaled by 1e4, i.e. 8000 = 80%
PERCENTAGE_FACTOR = 10_000


class InvalidCurveConfig(ValueError):
    """Raised when an interest rate curve violates its invariants."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Invalid interest rate curve field {field}: {message}")


class InvalidEModeCategory(ValueError):
    """Raised when an E-Mode category has out-of-range risk parameters."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Invalid E-Mode category field {field}: {message}")


class ActionKind(str, Enum):
    SUPPLY = "supply"
    BORROW = "borrow"
    REPAY = "repay"
    WITHDRAW = "withdraw"


class SafetyTier(str, Enum):
    SAFE = "safe"
    CAUTION = "caution"
    DANGER = "danger"


class SimulationMode(str, Enum):
    """Collateral model used when projecting a health factor.

    PER_ASSET weights each deposited asset by its own liquidation threshold.
    SINGLE_RESERVE applies the acted-on reserve's threshold to the whole
    supplied value and is an approximation.
    """

    PER_ASSET = "per_asset"
    SINGLE_RESERVE = "single_reserve"


class ValidationCode(str, Enum):
    ACCEPTED = "accepted"
    CAUTION = "caution"
    OVER_REPAYMENT = "over_repayment"
    INVALID_AMOUNT = "invalid_amount"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    BELOW_MINIMUM = "below_minimum"
    DEPOSIT_LIMIT_EXCEEDED = "deposit_limit_exceeded"
    COLLATERAL_REQUIRED = "collateral_required"
    INSUFFICIENT_LIQUIDITY = "insufficient_liquidity"
    BORROWING_POWER_EXCEEDED = "borrowing_power_exceeded"
    BORROW_LIMIT_EXCEEDED = "borrow_limit_exceeded"
    HEALTH_FACTOR_TOO_LOW = "health_factor_too_low"
    NOTHING_BORROWED = "nothing_borrowed"
    NOTHING_SUPPLIED = "nothing_supplied"
    EXCEEDS_SUPPLIED = "exceeds_supplied"
    LIQUIDATION_FLOOR = "liquidation_floor"
    EMODE_INELIGIBLE = "emode_ineligible"


@dataclass(frozen=True)
class InterestRateCurveConfig:
    """Kinked borrow rate model. Rates are annualized percentages."""

    min_borrow_rate_pct: float
    optimal_borrow_rate_pct: float
    max_borrow_rate_pct: float
    optimal_utilization_pct: float

    def __post_init__(self) -> None:
        for name in (
            "min_borrow_rate_pct",
            "optimal_borrow_rate_pct",
            "max_borrow_rate_pct",
            "optimal_utilization_pct",
        ):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise InvalidCurveConfig(name, f"must be a finite non-negative number, got {value}")
        if not self.min_borrow_rate_pct <= self.optimal_borrow_rate_pct <= self.max_borrow_rate_pct:
            raise InvalidCurveConfig(
                "optimal_borrow_rate_pct",
                "rates must satisfy min <= optimal <= max",
            )
        if self.optimal_utilization_pct > 100:
            raise InvalidCurveConfig("optimal_utilization_pct", "must be at most 100")


@dataclass(frozen=True)
class ReserveRiskParameters:
    """Risk configuration and current state of a single reserve."""

    symbol: str
    decimals: int
    loan_to_value_bips: int
    liquidation_threshold_bips: int
    reserve_factor_bips: int = 0
    # None (or 0) means no limit
    deposit_limit_base_units: Optional[int] = None
    borrow_limit_base_units: Optional[int] = None
    price_usd: float = 0.0
    total_borrowed_base_units: int = 0
    total_cash_available_base_units: int = 0
    borrow_factor_bips: int = PERCENTAGE_FACTOR
    interest_rate_curve: Optional[InterestRateCurveConfig] = None

    @property
    def total_supply_base_units(self) -> int:
        return self.total_borrowed_base_units + self.total_cash_available_base_units

    @property
    def available_liquidity(self) -> float:
        """Cash available to borrow, in display units."""
        return self.total_cash_available_base_units / 10**self.decimals

    @property
    def loan_to_value(self) -> float:
        return self.loan_to_value_bips / PERCENTAGE_FACTOR

    @property
    def liquidation_threshold(self) -> float:
        return self.liquidation_threshold_bips / PERCENTAGE_FACTOR


@dataclass(frozen=True)
class CollateralPosition:
    """Supplied value of one asset and the threshold it counts toward collateral with."""

    symbol: str
    supplied_usd: float
    liquidation_threshold_bips: int


@dataclass(frozen=True)
class PortfolioSnapshot:
    total_supplied_usd: float
    total_borrowed_usd: float
    health_factor: float = math.inf
    # Optional per-asset breakdown of total_supplied_usd
    collateral_positions: tuple[CollateralPosition, ...] = ()

    @property
    def net_balance_usd(self) -> float:
        return self.total_supplied_usd - self.total_borrowed_usd

    def with_totals(self, supplied_usd: float, borrowed_usd: float) -> "PortfolioSnapshot":
        return replace(self, total_supplied_usd=supplied_usd, total_borrowed_usd=borrowed_usd)


@dataclass(frozen=True)
class ActionRequest:
    """A hypothetical action on one reserve.

    Amounts and balances are in display units; the user's position in the
    acted-on asset is in base units.
    """

    kind: ActionKind
    amount: float
    spendable_balance: float = 0.0
    # Defaults to the reserve's cash when not supplied
    available_liquidity: Optional[float] = None
    asset_supplied_base_units: int = 0
    asset_borrowed_base_units: int = 0


@dataclass(frozen=True)
class ValidationResult:
    accepted: bool
    code: ValidationCode
    rejection_reason: Optional[str] = None
    caution_note: Optional[str] = None

    @classmethod
    def accept(cls) -> "ValidationResult":
        return cls(accepted=True, code=ValidationCode.ACCEPTED)

    @classmethod
    def caution(cls, note: str, code: ValidationCode = ValidationCode.CAUTION) -> "ValidationResult":
        return cls(accepted=True, code=code, caution_note=note)

    @classmethod
    def reject(cls, code: ValidationCode, reason: str) -> "ValidationResult":
        return cls(accepted=False, code=code, rejection_reason=reason)


@dataclass(frozen=True)
class SimulationResult:
    current_health_factor: float
    projected_health_factor: float
    projected_supplied_value_usd: float
    projected_collateral_value_usd: float
    projected_borrow_value_usd: float
    safety_tier: SafetyTier
    mode: SimulationMode
    estimated_liquidation_price: Optional[float] = None


@dataclass(frozen=True)
class RateSnapshot:
    utilization_pct: float
    borrow_apr_pct: float
    supply_apr_pct: float


@dataclass(frozen=True)
class BorrowingPower:
    total: float
    used: float
    available: float
    utilization_pct: float


@dataclass(frozen=True)
class LiquidationDistance:
    distance_usd: float
    percent_to_liquidation: float
    is_at_risk: bool


@dataclass(frozen=True)
class AssetPosition:
    """A deposit or borrow of one asset, valued at its current price."""

    symbol: str
    amount: float
    price_usd: float
    ltv_bips: int
    liquidation_threshold_bips: int
    borrow_factor_bips: int = PERCENTAGE_FACTOR

    @property
    def value_usd(self) -> float:
        return self.amount * self.price_usd


@dataclass(frozen=True)
class PortfolioRisk:
    total_supplied_usd: float
    total_borrowed_usd: float
    borrowing_power: float
    adjusted_borrow_value: float
    liquidation_value: float
    health_factor: float
    borrow_limit_pct: float
    available_to_borrow: float
    is_healthy: bool
    is_liquidatable: bool


@dataclass(frozen=True)
class EModeCategory:
    """Efficiency mode for a group of correlated assets.

    Deposits of eligible assets count at the category's raised LTV and
    liquidation threshold; other deposits keep their own parameters.
    """

    category_id: int
    name: str
    loan_to_value_bips: int
    liquidation_threshold_bips: int
    liquidation_penalty_bips: int = 0
    eligible_symbols: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if not 0 <= self.loan_to_value_bips <= self.liquidation_threshold_bips <= PERCENTAGE_FACTOR:
            raise InvalidEModeCategory(
                "loan_to_value_bips",
                "must satisfy 0 <= loan_to_value_bips <= liquidation_threshold_bips <= 10000",
            )
        if not 0 <= self.liquidation_penalty_bips <= PERCENTAGE_FACTOR:
            raise InvalidEModeCategory("liquidation_penalty_bips", "must be between 0 and 10000")

    def is_eligible(self, symbol: str) -> bool:
        return symbol in self.eligible_symbols

    def parameters_for(self, position: AssetPosition) -> tuple[int, int]:
        """(ltv_bips, liquidation_threshold_bips) a deposit counts at in this mode."""
        if self.is_eligible(position.symbol):
            return self.loan_to_value_bips, self.liquidation_threshold_bips
        return position.ltv_bips, position.liquidation_threshold_bips


@dataclass(frozen=True)
class EModeComparison:
    normal_borrowing_power: float
    emode_borrowing_power: float
    improvement: float
    improvement_pct: float


@dataclass(frozen=True)
class YieldPosition:
    """A supplied or borrowed USD value with its base and reward APR (percent)."""

    symbol: str
    value_usd: float
    apr_pct: float
    reward_apr_pct: float = 0.0


@dataclass(frozen=True)
class NetApr:
    """Annual yield of a whole position. Earnings and costs are USD per year."""

    net_apr_pct: float
    supply_apr_pct: float
    borrow_apr_pct: float
    reward_apr_pct: float
    supply_earnings_usd: float
    borrow_costs_usd: float
    reward_earnings_usd: float
    net_earnings_usd: float
