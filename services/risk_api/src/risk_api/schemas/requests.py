import math
from typing import Annotated

from pydantic import BaseModel, Field, model_validator

from services.risk_api.src.risk_api.domain.models import (
    ActionKind,
    ActionRequest,
    AssetPosition,
    CollateralPosition,
    EModeCategory,
    InterestRateCurveConfig,
    PortfolioSnapshot,
    ReserveRiskParameters,
    SimulationMode,
    YieldPosition,
)

BipsValue = Annotated[int, Field(ge=0, le=10000)]


class RateCurveRequest(BaseModel):
    """Interest rate curve, rates in annualized percent."""

    min_borrow_rate_pct: float = Field(..., ge=0)
    optimal_borrow_rate_pct: float = Field(..., ge=0)
    max_borrow_rate_pct: float = Field(..., ge=0)
    optimal_utilization_pct: float = Field(..., ge=0, le=100)

    def to_domain(self) -> InterestRateCurveConfig:
        return InterestRateCurveConfig(
            min_borrow_rate_pct=self.min_borrow_rate_pct,
            optimal_borrow_rate_pct=self.optimal_borrow_rate_pct,
            max_borrow_rate_pct=self.max_borrow_rate_pct,
            optimal_utilization_pct=self.optimal_utilization_pct,
        )


class RatesRequest(BaseModel):
    curve: RateCurveRequest
    total_borrowed_base_units: int = Field(..., ge=0)
    total_cash_available_base_units: int = Field(..., ge=0)
    reserve_factor_bips: int = Field(default=0, ge=0, le=10000)


class RateCurveSamplesRequest(BaseModel):
    curve: RateCurveRequest
    reserve_factor_bips: int = Field(default=0, ge=0, le=10000)
    points: int = Field(default=21, ge=2, le=1001)


class ReserveRequest(BaseModel):
    symbol: str
    decimals: int = Field(..., ge=0, le=36)
    loan_to_value_bips: BipsValue
    liquidation_threshold_bips: BipsValue
    reserve_factor_bips: int = Field(default=0, ge=0, le=10000)
    deposit_limit_base_units: int | None = Field(default=None, ge=0)
    borrow_limit_base_units: int | None = Field(default=None, ge=0)
    price_usd: float = Field(default=0.0, ge=0)
    total_borrowed_base_units: int = Field(default=0, ge=0)
    total_cash_available_base_units: int = Field(default=0, ge=0)
    borrow_factor_bips: int = Field(default=10000, gt=0)
    interest_rate_curve: RateCurveRequest | None = None

    def to_domain(self) -> ReserveRiskParameters:
        return ReserveRiskParameters(
            symbol=self.symbol,
            decimals=self.decimals,
            loan_to_value_bips=self.loan_to_value_bips,
            liquidation_threshold_bips=self.liquidation_threshold_bips,
            reserve_factor_bips=self.reserve_factor_bips,
            deposit_limit_base_units=self.deposit_limit_base_units,
            borrow_limit_base_units=self.borrow_limit_base_units,
            price_usd=self.price_usd,
            total_borrowed_base_units=self.total_borrowed_base_units,
            total_cash_available_base_units=self.total_cash_available_base_units,
            borrow_factor_bips=self.borrow_factor_bips,
            interest_rate_curve=(
                self.interest_rate_curve.to_domain() if self.interest_rate_curve else None
            ),
        )


class CollateralPositionRequest(BaseModel):
    symbol: str
    supplied_usd: float = Field(..., ge=0)
    liquidation_threshold_bips: BipsValue


class PortfolioRequest(BaseModel):
    total_supplied_usd: float = Field(..., ge=0)
    total_borrowed_usd: float = Field(..., ge=0)
    # None is only allowed without debt (infinite health factor)
    health_factor: float | None = Field(default=None, gt=0)
    collateral_positions: list[CollateralPositionRequest] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_health_factor_with_debt(self) -> "PortfolioRequest":
        if self.health_factor is None and self.total_borrowed_usd > 0:
            raise ValueError("health_factor is required when total_borrowed_usd is positive")
        return self

    def to_domain(self) -> PortfolioSnapshot:
        return PortfolioSnapshot(
            total_supplied_usd=self.total_supplied_usd,
            total_borrowed_usd=self.total_borrowed_usd,
            health_factor=math.inf if self.health_factor is None else self.health_factor,
            collateral_positions=tuple(
                CollateralPosition(
                    symbol=p.symbol,
                    supplied_usd=p.supplied_usd,
                    liquidation_threshold_bips=p.liquidation_threshold_bips,
                )
                for p in self.collateral_positions
            ),
        )


class SimulateRequest(BaseModel):
    portfolio: PortfolioRequest
    reserve: ReserveRequest
    action: ActionKind
    amount: float = Field(..., ge=0)
    mode: SimulationMode = SimulationMode.PER_ASSET


class ValidateRequest(BaseModel):
    portfolio: PortfolioRequest | None = None
    reserve: ReserveRequest
    action: ActionKind
    # Not range-checked here: non-positive amounts are a validation outcome
    amount: float
    spendable_balance: float = Field(default=0.0, ge=0)
    available_liquidity: float | None = Field(default=None, ge=0)
    asset_supplied_base_units: int = Field(default=0, ge=0)
    asset_borrowed_base_units: int = Field(default=0, ge=0)
    mode: SimulationMode = SimulationMode.PER_ASSET

    def to_action(self) -> ActionRequest:
        return ActionRequest(
            kind=self.action,
            amount=self.amount,
            spendable_balance=self.spendable_balance,
            available_liquidity=self.available_liquidity,
            asset_supplied_base_units=self.asset_supplied_base_units,
            asset_borrowed_base_units=self.asset_borrowed_base_units,
        )


class BorrowingPowerRequest(BaseModel):
    portfolio: PortfolioRequest
    loan_to_value_bips: BipsValue


class LiquidationDistanceRequest(BaseModel):
    portfolio: PortfolioRequest
    liquidation_threshold_bips: BipsValue


class MaxSafeAmountRequest(BaseModel):
    portfolio: PortfolioRequest
    reserve: ReserveRequest
    action: ActionKind
    supplied_amount: float | None = Field(default=None, ge=0)
    target_health_factor: float | None = Field(default=None, gt=0)


class AssetPositionRequest(BaseModel):
    symbol: str
    amount: float = Field(..., ge=0)
    price_usd: float = Field(..., ge=0)
    ltv_bips: BipsValue
    liquidation_threshold_bips: BipsValue
    borrow_factor_bips: int = Field(default=10000, gt=0)

    def to_domain(self) -> AssetPosition:
        return AssetPosition(
            symbol=self.symbol,
            amount=self.amount,
            price_usd=self.price_usd,
            ltv_bips=self.ltv_bips,
            liquidation_threshold_bips=self.liquidation_threshold_bips,
            borrow_factor_bips=self.borrow_factor_bips,
        )


class EModeCategoryRequest(BaseModel):
    category_id: int
    name: str
    loan_to_value_bips: BipsValue
    liquidation_threshold_bips: BipsValue
    liquidation_penalty_bips: BipsValue = 0
    eligible_symbols: list[str] = Field(default_factory=list)

    def to_domain(self) -> EModeCategory:
        return EModeCategory(
            category_id=self.category_id,
            name=self.name,
            loan_to_value_bips=self.loan_to_value_bips,
            liquidation_threshold_bips=self.liquidation_threshold_bips,
            liquidation_penalty_bips=self.liquidation_penalty_bips,
            eligible_symbols=frozenset(self.eligible_symbols),
        )


class PortfolioRiskRequest(BaseModel):
    deposits: list[AssetPositionRequest] = Field(default_factory=list)
    borrows: list[AssetPositionRequest] = Field(default_factory=list)
    emode: EModeCategoryRequest | None = None


class EModeRequest(BaseModel):
    deposits: list[AssetPositionRequest] = Field(default_factory=list)
    borrows: list[AssetPositionRequest] = Field(default_factory=list)
    category: EModeCategoryRequest


class YieldPositionRequest(BaseModel):
    symbol: str
    value_usd: float = Field(..., ge=0)
    apr_pct: float
    reward_apr_pct: float = Field(default=0.0, ge=0)

    def to_domain(self) -> YieldPosition:
        return YieldPosition(
            symbol=self.symbol,
            value_usd=self.value_usd,
            apr_pct=self.apr_pct,
            reward_apr_pct=self.reward_apr_pct,
        )


class NetAprRequest(BaseModel):
    supplies: list[YieldPositionRequest] = Field(default_factory=list)
    borrows: list[YieldPositionRequest] = Field(default_factory=list)
    compounding_periods: int = Field(default=365, ge=1)
