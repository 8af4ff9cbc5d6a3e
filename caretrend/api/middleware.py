"""
Request timing and logging middleware
"""
import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class TimingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log request timing and caller scope for performance monitoring
    """
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        scope = request.headers.get('X-Secretary-ID') or request.headers.get('X-Doctor-IDs') or 'missing'
        
        # Process request
        response = await call_next(request)
        
        # Calculate duration
        duration_ms = (time.time() - start_time) * 1000
        
        # Log timing info
        logger.info(f"[TIMING] {request.method} {request.url.path} | scope={scope} | duration={duration_ms:.2f}ms | status={response.status_code}")
        
        return response
