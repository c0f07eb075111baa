from datetime import datetime, timezone
from contextlib import asynccontextmanager

from fastapi import FastAPI

from stk_checkout import models
from stk_checkout.config import get_settings
from stk_checkout.database import engine
from stk_checkout.logging_config import configure_logging, get_logger
from stk_checkout.schemas.responses import HealthResponse

configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if settings.store_backend == "sql":
        models.Base.metadata.create_all(bind=engine)
    logger.info("service_started", store_backend=settings.store_backend,
                gateway=settings.daraja_base_url,
                pending_expiry_seconds=settings.pending_expiry_seconds)
    yield


app = FastAPI(
    title="STK Checkout API",
    description="Mobile-money push payments with callback/poll reconciliation",
    version="1.0.0",
    lifespan=lifespan,
)


@app.get("/health", response_model=HealthResponse)
def health_check():
    return HealthResponse(
        status="ok",
        service=get_settings().app_name,
        timestamp=datetime.now(timezone.utc),
    )


from stk_checkout.routers import payments  # noqa: E402
app.include_router(payments.router, prefix="/api", tags=["payments"])
