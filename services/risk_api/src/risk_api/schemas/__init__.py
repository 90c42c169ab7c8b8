from services.risk_api.src.risk_api.schemas.requests import (
    BorrowingPowerRequest,
    EModeCategoryRequest,
    EModeRequest,
    LiquidationDistanceRequest,
    MaxSafeAmountRequest,
    NetAprRequest,
    PortfolioRequest,
    PortfolioRiskRequest,
    RateCurveSamplesRequest,
    RatesRequest,
    ReserveRequest,
    SimulateRequest,
    ValidateRequest,
    YieldPositionRequest,
)
from services.risk_api.src.risk_api.schemas.responses import (
    BorrowingPowerResponse,
    EModeResponse,
    LiquidationDistanceResponse,
    MaxSafeAmountResponse,
    NetAprResponse,
    PortfolioRiskResponse,
    RateCurveResponse,
    RatesResponse,
    SimulationResponse,
    ValidationResponse,
    finite_or_none,
)

__all__ = [
    "BorrowingPowerRequest",
    "BorrowingPowerResponse",
    "EModeCategoryRequest",
    "EModeRequest",
    "EModeResponse",
    "LiquidationDistanceRequest",
    "LiquidationDistanceResponse",
    "MaxSafeAmountRequest",
    "MaxSafeAmountResponse",
    "NetAprRequest",
    "NetAprResponse",
    "PortfolioRequest",
    "PortfolioRiskRequest",
    "PortfolioRiskResponse",
    "RateCurveResponse",
    "RateCurveSamplesRequest",
    "RatesRequest",
    "RatesResponse",
    "ReserveRequest",
    "SimulateRequest",
    "SimulationResponse",
    "ValidateRequest",
    "ValidationResponse",
    "YieldPositionRequest",
    "finite_or_none",
]
