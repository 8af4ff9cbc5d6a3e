"""
Application errors

- One base class so the API layer can render every error the same way
- InvalidArgument is fatal to the single call
- TransportFailure degrades the failing unit and is reported upward
- DataUnavailable marks an explicit "no data" answer (handled locally)
"""
from typing import Any, Dict, Optional


class BaseAppException(Exception):
    """Base class: uniform error shape"""
    type = "error"
    code = "UNKNOWN"
    message = "Unknown error"
    http_status = 500

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[str] = None,
        detail: Optional[Dict[str, Any]] = None,
        http_status: Optional[int] = None,
    ):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.code = code or self.code
        self.detail = detail if detail is not None else {}
        if http_status is not None:
            self.http_status = http_status

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "type": self.type,
            "code": self.code,
            "message": self.message,
            "detail": self.detail,
        }


class InvalidArgument(BaseAppException):
    """Malformed or missing identifier"""
    type = "validation"
    code = "INVALID_ARGUMENT"
    message = "Invalid argument"
    http_status = 400


class DataUnavailable(BaseAppException):
    """Gateway explicitly returned no data"""
    type = "not_found"
    code = "DATA_UNAVAILABLE"
    message = "No data available"
    http_status = 404


class TransportFailure(BaseAppException):
    """Gateway call itself failed (network, store, unreadable file)"""
    type = "transport"
    code = "TRANSPORT_FAILURE"
    message = "Data source unavailable"
    http_status = 503
