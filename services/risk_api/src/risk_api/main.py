import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from services.risk_api.src.risk_api.config import build_policy, settings
from services.risk_api.src.risk_api.routes import api_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Check the configured risk policy on startup."""
    # Raises InvalidPolicy before serving if thresholds are misordered
    policy = build_policy(settings)
    logger.info(
        f"Risk policy loaded: borrow floor {policy.borrow_hard_floor}, "
        f"withdraw floor {policy.withdraw_hard_floor}, caution {policy.caution}"
    )

    yield

    logger.info("Risk engine API shutdown complete")


app = FastAPI(title="Lending Risk Engine API", lifespan=lifespan)

# CORS for frontend - allow localhost and Vercel deployments
cors_origins = [
    "http://localhost:3000",
    "https://localhost:3000",
    "http://localhost:8081",  # Expo web dev server
]

# Add custom origin from environment (e.g., your Vercel domain)
if settings.cors_origin:
    cors_origins.append(settings.cors_origin)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_origin_regex=r"https://.*\.vercel\.app",  # Match all Vercel subdomains
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router)


@app.get("/")
def root() -> dict[str, str]:
    return {"service": "lending-risk-engine-api", "docs": "/docs"}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
