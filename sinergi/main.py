from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from sinergi.api import auth, admin, properties, locations, assets, maintenance, reports
from sinergi.config import settings
from sinergi.database import engine, Base
from sinergi import models  # noqa: F401  (registers tables on Base)
from sinergi.utils.rate_limiter import limiter, rate_limit_exceeded_handler

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info(f"Database ready ({engine.dialect.name})")
    yield


app = FastAPI(title="SINERGI API", version="1.0.0", lifespan=lifespan)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(admin.router, prefix="/api", tags=["Admin"])
app.include_router(properties.router, prefix="/api", tags=["Properties"])
app.include_router(locations.router, prefix="/api", tags=["Locations"])
app.include_router(assets.router, prefix="/api", tags=["Assets"])
app.include_router(maintenance.router, prefix="/api", tags=["Maintenance"])
app.include_router(reports.router, prefix="/api", tags=["Reports"])


@app.get("/")
async def root():
    return {"message": "SINERGI API is running"}


@app.get("/api/health")
async def health_check():
    return {
        "status": "healthy",
        "services": {
            "database": engine.dialect.name,
            "evidence_bucket": settings.evidence_bucket
        }
    }
