"""Tests for action simulation."""

import math

import pytest

from services.risk_api.src.risk_api.domain.models import (
    ActionKind,
    CollateralPosition,
    PortfolioSnapshot,
    ReserveRiskParameters,
    SafetyTier,
    SimulationMode,
)
from services.risk_api.src.risk_api.domain.simulation import (
    max_safe_amount,
    project_health_factor,
    simulate,
)


@pytest.fixture
def apt_reserve():
    return ReserveRiskParameters(
        symbol="APT",
        decimals=8,
        loan_to_value_bips=7000,
        liquidation_threshold_bips=8000,
        price_usd=10.0,
    )


@pytest.fixture
def portfolio():
    """$1000 supplied, $300 borrowed."""
    return PortfolioSnapshot(total_supplied_usd=1000.0, total_borrowed_usd=300.0, health_factor=800 / 300)


@pytest.fixture
def mixed_portfolio():
    """$600 APT and $400 USDC supplied, $300 borrowed."""
    return PortfolioSnapshot(
        total_supplied_usd=1000.0,
        total_borrowed_usd=300.0,
        health_factor=2.0,
        collateral_positions=(
            CollateralPosition(symbol="APT", supplied_usd=600.0, liquidation_threshold_bips=8000),
            CollateralPosition(symbol="USDC", supplied_usd=400.0, liquidation_threshold_bips=9000),
        ),
    )


class TestSimulateSingleReserve:
    def test_supply_raises_health_factor(self, portfolio, apt_reserve):
        result = simulate(portfolio, ActionKind.SUPPLY, apt_reserve, 10)

        assert result.projected_supplied_value_usd == pytest.approx(1100.0)
        assert result.projected_collateral_value_usd == pytest.approx(880.0)
        assert result.projected_borrow_value_usd == pytest.approx(300.0)
        assert result.projected_health_factor == pytest.approx(880 / 300)
        assert result.current_health_factor == pytest.approx(800 / 300)
        assert result.safety_tier == SafetyTier.SAFE
        assert result.estimated_liquidation_price is None

    def test_falls_back_to_single_reserve_without_breakdown(self, portfolio, apt_reserve):
        result = simulate(portfolio, ActionKind.SUPPLY, apt_reserve, 10)
        assert result.mode == SimulationMode.SINGLE_RESERVE

    def test_borrow_lowers_health_factor(self, portfolio, apt_reserve):
        result = simulate(portfolio, ActionKind.BORROW, apt_reserve, 20)

        assert result.projected_borrow_value_usd == pytest.approx(500.0)
        assert result.projected_health_factor == pytest.approx(1.6)
        assert result.safety_tier == SafetyTier.SAFE
        # 10 * 500 / 800
        assert result.estimated_liquidation_price == pytest.approx(6.25)

    def test_withdraw_into_caution(self, portfolio, apt_reserve):
        result = simulate(portfolio, ActionKind.WITHDRAW, apt_reserve, 50)

        assert result.projected_supplied_value_usd == pytest.approx(500.0)
        assert result.projected_health_factor == pytest.approx(400 / 300)
        assert result.safety_tier == SafetyTier.CAUTION
        assert result.estimated_liquidation_price == pytest.approx(7.5)

    def test_borrow_into_danger(self, apt_reserve):
        portfolio = PortfolioSnapshot(total_supplied_usd=1000.0, total_borrowed_usd=900.0, health_factor=1.05)
        reserve = ReserveRiskParameters(
            symbol="USDC",
            decimals=6,
            loan_to_value_bips=9500,
            liquidation_threshold_bips=9500,
            price_usd=1.0,
        )

        result = simulate(portfolio, ActionKind.BORROW, reserve, 10)

        assert result.projected_health_factor == pytest.approx(950 / 910)
        assert result.safety_tier == SafetyTier.DANGER

    def test_repay_everything_is_infinite(self, portfolio, apt_reserve):
        result = simulate(portfolio, ActionKind.REPAY, apt_reserve, 30)

        assert result.projected_borrow_value_usd == 0
        assert result.projected_health_factor == math.inf
        assert result.safety_tier == SafetyTier.SAFE

    def test_over_repay_matches_exact_repay(self, portfolio, apt_reserve):
        exact = simulate(portfolio, ActionKind.REPAY, apt_reserve, 30)
        over = simulate(portfolio, ActionKind.REPAY, apt_reserve, 500)

        assert over.projected_borrow_value_usd == 0
        assert over.projected_health_factor == exact.projected_health_factor

    def test_withdraw_more_than_supplied_clamps_at_zero(self, portfolio, apt_reserve):
        result = simulate(portfolio, ActionKind.WITHDRAW, apt_reserve, 1000)

        assert result.projected_supplied_value_usd == 0
        assert result.projected_health_factor == 0
        assert result.safety_tier == SafetyTier.DANGER
        assert result.estimated_liquidation_price is None

    def test_no_liquidation_price_without_debt(self, apt_reserve):
        portfolio = PortfolioSnapshot(total_supplied_usd=1000.0, total_borrowed_usd=0.0)

        result = simulate(portfolio, ActionKind.WITHDRAW, apt_reserve, 10)

        assert result.projected_health_factor == math.inf
        assert result.estimated_liquidation_price is None

    def test_non_finite_amount_is_danger_without_nan(self, portfolio, apt_reserve):
        result = simulate(portfolio, ActionKind.SUPPLY, apt_reserve, math.nan)

        assert result.safety_tier == SafetyTier.DANGER
        assert not math.isnan(result.projected_health_factor)
        assert not math.isnan(result.projected_collateral_value_usd)

    def test_does_not_mutate_portfolio(self, portfolio, apt_reserve):
        simulate(portfolio, ActionKind.BORROW, apt_reserve, 20)
        assert portfolio.total_borrowed_usd == 300.0


class TestSimulatePerAsset:
    def test_withdraw_uses_per_asset_thresholds(self, mixed_portfolio, apt_reserve):
        result = simulate(mixed_portfolio, ActionKind.WITHDRAW, apt_reserve, 30)

        assert result.mode == SimulationMode.PER_ASSET
        # APT 300 * 0.8 + USDC 400 * 0.9
        assert result.projected_collateral_value_usd == pytest.approx(600.0)
        assert result.projected_health_factor == pytest.approx(2.0)

    def test_single_reserve_mode_is_an_approximation(self, mixed_portfolio, apt_reserve):
        result = simulate(
            mixed_portfolio, ActionKind.WITHDRAW, apt_reserve, 30, mode=SimulationMode.SINGLE_RESERVE
        )

        assert result.mode == SimulationMode.SINGLE_RESERVE
        assert result.projected_collateral_value_usd == pytest.approx(560.0)

    def test_supply_of_new_asset_adds_position(self, apt_reserve):
        portfolio = PortfolioSnapshot(
            total_supplied_usd=400.0,
            total_borrowed_usd=100.0,
            health_factor=3.6,
            collateral_positions=(
                CollateralPosition(symbol="USDC", supplied_usd=400.0, liquidation_threshold_bips=9000),
            ),
        )

        result = simulate(portfolio, ActionKind.SUPPLY, apt_reserve, 10)

        # USDC 400 * 0.9 + APT 100 * 0.8
        assert result.projected_collateral_value_usd == pytest.approx(440.0)
        assert result.projected_supplied_value_usd == pytest.approx(500.0)

    def test_withdraw_of_asset_missing_from_breakdown_uses_single_reserve(self):
        portfolio = PortfolioSnapshot(
            total_supplied_usd=1000.0,
            total_borrowed_usd=500.0,
            health_factor=1.8,
            collateral_positions=(
                CollateralPosition(symbol="USDC", supplied_usd=1000.0, liquidation_threshold_bips=9000),
            ),
        )
        weth = ReserveRiskParameters(
            symbol="WETH",
            decimals=8,
            loan_to_value_bips=7500,
            liquidation_threshold_bips=8000,
            price_usd=1.0,
        )

        result = simulate(portfolio, ActionKind.WITHDRAW, weth, 600)

        assert result.mode == SimulationMode.SINGLE_RESERVE
        assert result.projected_supplied_value_usd == pytest.approx(400.0)
        assert result.projected_collateral_value_usd <= result.projected_supplied_value_usd
        # 400 * 0.8 / 500
        assert result.projected_health_factor == pytest.approx(0.64)
        assert result.safety_tier == SafetyTier.DANGER

    def test_breakdown_not_matching_total_supplied_uses_single_reserve(self, apt_reserve):
        portfolio = PortfolioSnapshot(
            total_supplied_usd=1000.0,
            total_borrowed_usd=300.0,
            collateral_positions=(
                CollateralPosition(symbol="APT", supplied_usd=600.0, liquidation_threshold_bips=8000),
            ),
        )

        result = simulate(portfolio, ActionKind.SUPPLY, apt_reserve, 10)

        assert result.mode == SimulationMode.SINGLE_RESERVE
        assert result.projected_collateral_value_usd == pytest.approx(880.0)

    def test_borrow_keeps_collateral(self, mixed_portfolio, apt_reserve):
        result = simulate(mixed_portfolio, ActionKind.BORROW, apt_reserve, 10)

        assert result.projected_collateral_value_usd == pytest.approx(840.0)
        assert result.projected_health_factor == pytest.approx(840 / 400)


class TestProjectHealthFactor:
    def test_applies_deltas(self, portfolio):
        hf = project_health_factor(portfolio, supply_change_usd=100, borrow_change_usd=100, liquidation_threshold_bips=8000)

        # 1100 * 0.8 / 400
        assert hf == pytest.approx(2.2)

    def test_repaying_everything_is_infinite(self, portfolio):
        assert project_health_factor(portfolio, 0, -500, 8000) == math.inf

    def test_withdrawing_everything_is_zero(self, portfolio):
        assert project_health_factor(portfolio, -5000, 0, 8000) == 0

    def test_non_finite_delta_is_zero(self, portfolio):
        assert project_health_factor(portfolio, math.nan, 0, 8000) == 0


class TestMaxSafeAmount:
    def test_max_borrow(self, portfolio, apt_reserve):
        amount = max_safe_amount(portfolio, ActionKind.BORROW, apt_reserve)

        # (1000 * 0.8 / 1.5 - 300) / 10
        assert amount == pytest.approx(23.3333, rel=1e-4)
        projected = simulate(portfolio, ActionKind.BORROW, apt_reserve, amount)
        assert projected.projected_health_factor == pytest.approx(1.5)

    def test_max_withdraw(self, portfolio, apt_reserve):
        amount = max_safe_amount(portfolio, ActionKind.WITHDRAW, apt_reserve)

        # (1000 - 300 * 1.5 / 0.8) / 10
        assert amount == pytest.approx(43.75)

    def test_max_withdraw_capped_by_holdings(self, portfolio, apt_reserve):
        assert max_safe_amount(portfolio, ActionKind.WITHDRAW, apt_reserve, supplied_amount=5) == 5

    def test_withdraw_everything_without_debt(self, apt_reserve):
        portfolio = PortfolioSnapshot(total_supplied_usd=125.0, total_borrowed_usd=0.0)

        assert max_safe_amount(portfolio, ActionKind.WITHDRAW, apt_reserve, supplied_amount=12.5) == 12.5

    def test_custom_target(self, portfolio, apt_reserve):
        amount = max_safe_amount(portfolio, ActionKind.BORROW, apt_reserve, target_health_factor=2.0)
        assert amount == pytest.approx(10.0)

    def test_no_borrow_when_already_below_target(self, apt_reserve):
        portfolio = PortfolioSnapshot(total_supplied_usd=1000.0, total_borrowed_usd=700.0, health_factor=1.14)
        assert max_safe_amount(portfolio, ActionKind.BORROW, apt_reserve) == 0

    def test_zero_price(self, portfolio):
        reserve = ReserveRiskParameters(
            symbol="NEW", decimals=8, loan_to_value_bips=5000, liquidation_threshold_bips=6000
        )
        assert max_safe_amount(portfolio, ActionKind.BORROW, reserve) == 0

    def test_rejects_supply(self, portfolio, apt_reserve):
        with pytest.raises(ValueError):
            max_safe_amount(portfolio, ActionKind.SUPPLY, apt_reserve)
