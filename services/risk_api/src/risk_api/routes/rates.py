"""Interest rate model API routes."""

from dataclasses import asdict

from fastapi import APIRouter, HTTPException

from services.risk_api.src.risk_api.domain.models import (
    InterestRateCurveConfig,
    InvalidCurveConfig,
)
from services.risk_api.src.risk_api.domain.rates import apr_to_apy, compute_rates, net_apr, rate_curve
from services.risk_api.src.risk_api.schemas.requests import (
    NetAprRequest,
    RateCurveRequest,
    RateCurveSamplesRequest,
    RatesRequest,
)
from services.risk_api.src.risk_api.schemas.responses import (
    NetAprResponse,
    RateCurveResponse,
    RatesResponse,
)

router = APIRouter(prefix="/rates", tags=["rates"])


def build_curve(curve: RateCurveRequest) -> InterestRateCurveConfig:
    try:
        return curve.to_domain()
    except InvalidCurveConfig as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("", response_model=RatesResponse)
def get_rates(request: RatesRequest) -> RatesResponse:
    """Utilization, borrow APR and supply APR for the given pool state."""
    rates = compute_rates(
        build_curve(request.curve),
        request.total_borrowed_base_units,
        request.total_cash_available_base_units,
        request.reserve_factor_bips,
    )
    return RatesResponse.model_validate(rates)


@router.post("/curve", response_model=RateCurveResponse)
def get_rate_curve(request: RateCurveSamplesRequest) -> RateCurveResponse:
    """Rates sampled across utilization, for charting the kinked curve."""
    curve = build_curve(request.curve)
    samples = rate_curve(curve, request.reserve_factor_bips, request.points)
    return RateCurveResponse(
        optimal_utilization_pct=curve.optimal_utilization_pct,
        points=[RatesResponse.model_validate(s) for s in samples],
    )


@router.post("/net-apr", response_model=NetAprResponse)
def get_net_apr(request: NetAprRequest) -> NetAprResponse:
    """Value-weighted supply/borrow APR and net yield of a position."""
    result = net_apr(
        [s.to_domain() for s in request.supplies],
        [b.to_domain() for b in request.borrows],
    )
    return NetAprResponse(
        **asdict(result),
        net_apy_pct=apr_to_apy(result.net_apr_pct, request.compounding_periods),
    )
