"""FastAPI application entry point."""

import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from config import LOG_LEVEL, validate_config
from routers import achievements


logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

validate_config()

app = FastAPI(title="Achievements API")
app.state.limiter = achievements.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(achievements.router, prefix="/api/v1/users", tags=["achievements"])


@app.get("/health")
def health():
    return {"status": "ok"}
