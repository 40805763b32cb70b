from dotenv import load_dotenv
load_dotenv()
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.orm import sessionmaker

from teamgraph import __version__
from teamgraph.api import router as api_router
from teamgraph.core.config import settings
from teamgraph.core.exceptions import TeamGraphError
from teamgraph.core.rate_limit import limiter
from teamgraph.db.session import build_session_factory

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def create_app(session_factory: Optional[sessionmaker] = None, notifier=None) -> FastAPI:
    """
    Build the API application.

    Args:
        session_factory: Session factory to serve requests from; built from
            DATABASE_URL when omitted
        notifier: Invitation email adapter; the configured default when omitted
    """
    app = FastAPI(title="Teamgraph", version=__version__)
    app.state.session_factory = session_factory or build_session_factory(settings.DATABASE_URL)
    app.state.notifier = notifier
    app.state.limiter = limiter

    @app.exception_handler(TeamGraphError)
    async def domain_error_handler(request: Request, exc: TeamGraphError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "code": exc.code},
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(status_code=400, content={"detail": str(exc), "code": "invalid"})

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        return JSONResponse(
            status_code=429,
            content={"detail": "Too many requests. Please wait before trying again.", "code": "rate_limited"},
        )

    app.include_router(api_router, prefix="/api")

    @app.get("/")
    def root():
        return {"message": "Teamgraph running", "version": __version__}

    return app


app = create_app()
