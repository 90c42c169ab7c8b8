import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from services.risk_api.src.risk_api.domain.policy import RiskPolicy


def _find_env_file() -> str | None:
    """Find .env file, preferring .env.local for local development."""
    # Check for .env.local first (local overrides)
    for env_file in [".env.local", ".env"]:
        # Check in current directory and project root
        for base in [".", os.environ.get("REPO_ROOT", "")]:
            if base:
                path = Path(base) / env_file
                if path.exists():
                    return str(path)
    return None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_find_env_file(),
        env_file_encoding="utf-8",
        env_prefix="RISK_",
        extra="ignore",
    )

    # Extra CORS origin for the frontend (e.g. a Vercel domain)
    cors_origin: str | None = None

    # Health factor policy, overridable per deployment (RISK_BORROW_HARD_FLOOR=1.2)
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
    emode_exit_caution_ratio: float = 0.8
    min_action_amount: float = 0.001


settings = Settings()


def build_policy(source: Settings) -> RiskPolicy:
    """Build a RiskPolicy from settings. Raises InvalidPolicy on misordered thresholds."""
    return RiskPolicy(
        safe_strong=source.safe_strong,
        safe_moderate=source.safe_moderate,
        caution=source.caution,
        at_risk=source.at_risk,
        liquidation=source.liquidation,
        borrow_hard_floor=source.borrow_hard_floor,
        borrow_caution_floor=source.borrow_caution_floor,
        withdraw_liquidation_floor=source.withdraw_liquidation_floor,
        withdraw_hard_floor=source.withdraw_hard_floor,
        withdraw_caution_floor=source.withdraw_caution_floor,
        emode_exit_caution_ratio=source.emode_exit_caution_ratio,
        min_action_amount=source.min_action_amount,
    )


def get_policy() -> RiskPolicy:
    """FastAPI dependency returning the configured policy."""
    return build_policy(settings)
