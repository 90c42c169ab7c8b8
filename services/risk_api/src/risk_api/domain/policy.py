"""Risk policy thresholds shared by the simulator, validator and API labels."""

from dataclasses import dataclass


class InvalidPolicy(ValueError):
    """Raised when policy thresholds are out of order."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Invalid risk policy field {field}: {message}")


@dataclass(frozen=True)
class RiskPolicy:
    """Health-factor thresholds and action minimums.

    Tier boundaries (HF >= safe_strong is strong Safe, >= safe_moderate is
    moderate Safe, >= caution is Caution, below is Danger) are used for
    classification everywhere. Borrow is gated earlier than withdraw:
    borrow_hard_floor sits below the Caution boundary but above the
    withdraw liquidation floor.
    """

    safe_strong: float = 2.0
    safe_moderate: float = 1.5
    caution: float = 1.2
    at_risk: float = 1.5
    liquidation: float = 1.0

    borrow_hard_floor: float = 1.1
    borrow_caution_floor: float = 1.5

    withdraw_liquidation_floor: float = 1.0
    withdraw_hard_floor: float = 1.2
    withdraw_caution_floor: float = 1.5

    # Leaving E-Mode cautions when HF falls below this share of its current value
    emode_exit_caution_ratio: float = 0.8

    min_action_amount: float = 0.001
    # Borrow values below this are treated as zero debt
    debt_epsilon: float = 1e-9

    def __post_init__(self) -> None:
        if not self.caution <= self.safe_moderate <= self.safe_strong:
            raise InvalidPolicy("caution", "tiers must satisfy caution <= safe_moderate <= safe_strong")
        if not 0 < self.liquidation <= self.caution:
            raise InvalidPolicy("liquidation", "must be positive and not above caution")
        if not self.borrow_hard_floor <= self.borrow_caution_floor:
            raise InvalidPolicy("borrow_hard_floor", "must not exceed borrow_caution_floor")
        if not (
            self.withdraw_liquidation_floor
            <= self.withdraw_hard_floor
            <= self.withdraw_caution_floor
        ):
            raise InvalidPolicy(
                "withdraw_hard_floor",
                "withdraw floors must satisfy liquidation <= hard <= caution",
            )
        if not 0 < self.emode_exit_caution_ratio <= 1:
            raise InvalidPolicy("emode_exit_caution_ratio", "must be in (0, 1]")
        if self.min_action_amount < 0:
            raise InvalidPolicy("min_action_amount", "must be non-negative")
        if self.debt_epsilon < 0:
            raise InvalidPolicy("debt_epsilon", "must be non-negative")


DEFAULT_POLICY = RiskPolicy()
