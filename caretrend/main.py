"""
FastAPI app

- Read-only status, compliance, appointment and trend endpoints
- CORS configured for the clinic dashboards
- Single router for all endpoints
- Application errors rendered as uniform JSON
- Basic health check
"""
import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load environment variables from .env file early (config reads them on import)
project_root = Path(__file__).parent.parent
load_dotenv(dotenv_path=project_root / '.env')

from caretrend.api import router
from caretrend.api.middleware import TimingMiddleware
from caretrend.core.config import CORS_ORIGINS, LOG_LEVEL
from caretrend.core.exceptions import BaseAppException

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="caretrend")

# Logs request duration and caller scope for all requests
app.add_middleware(TimingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)


@app.exception_handler(BaseAppException)
async def app_exception_handler(request: Request, exc: BaseAppException):
    """
    Render application errors (InvalidArgument, TransportFailure, ...) as JSON
    """
    if exc.http_status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    return JSONResponse(exc.to_dict(), status_code=exc.http_status)


app.include_router(router, prefix="/api/v1")


@app.get("/")
async def root():
    """
    Basic health check
    """
    return {"status": "ok"}
