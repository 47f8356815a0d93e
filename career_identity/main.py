import logging

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi import _rate_limit_exceeded_handler
import sentry_sdk

from career_identity.api.v1.health import router as health_router
from career_identity.api.v1.documents import router as documents_router
from career_identity.api.v1.claims import router as claims_router
from career_identity.api.v1.opportunities import router as opportunities_router
from career_identity.api.v1.usage import router as usage_router
from career_identity.api.v1.work_history import router as work_history_router
from career_identity.core.rate_limit import limiter
from career_identity.core.config import settings
from career_identity.core.lifespan import lifespan

logging.basicConfig(level=settings.log_level, format="%(message)s")
if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn)

app = FastAPI(title="Career Identity API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_allowed_origins),
    allow_origin_regex=(settings.cors_allow_origin_regex or "").strip() or None,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.include_router(health_router, prefix="/v1", tags=["Health"])
app.include_router(documents_router, prefix="/v1", tags=["Documents"])
app.include_router(claims_router, prefix="/v1", tags=["Claims"])
app.include_router(opportunities_router, prefix="/v1", tags=["Opportunities"])
app.include_router(work_history_router, prefix="/v1", tags=["Work History"])
app.include_router(usage_router, prefix="/v1", tags=["Usage"])
