import pytest

from services.risk_api.src.risk_api.config import Settings, build_policy
from services.risk_api.src.risk_api.domain.policy import DEFAULT_POLICY, InvalidPolicy


def test_defaults_match_default_policy():
    assert build_policy(Settings()) == DEFAULT_POLICY


def test_env_overrides_policy(monkeypatch):
    monkeypatch.setenv("RISK_BORROW_HARD_FLOOR", "1.25")
    monkeypatch.setenv("RISK_MIN_ACTION_AMOUNT", "0.01")

    policy = build_policy(Settings())

    assert policy.borrow_hard_floor == 1.25
    assert policy.min_action_amount == 0.01


def test_misordered_env_thresholds_fail(monkeypatch):
    monkeypatch.setenv("RISK_WITHDRAW_HARD_FLOOR", "0.9")

    with pytest.raises(InvalidPolicy):
        build_policy(Settings())


def test_cors_origin_from_env(monkeypatch):
    monkeypatch.setenv("RISK_CORS_ORIGIN", "https://lend.example.com")
    assert Settings().cors_origin == "https://lend.example.com"
