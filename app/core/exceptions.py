"""
Service error taxonomy
服务错误类型 - 每个错误携带错误码和HTTP状态码
"""

from typing import Any, Dict, Optional


class ScoreboardError(Exception):
    """Base class for every error raised by the services"""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __repr__(self):
        return f"<{self.__class__.__name__}(code={self.error_code}, message={self.message!r})>"


class ValidationError(ScoreboardError):
    """Bad input: negative score, out-of-range limit, malformed fields"""
    status_code = 400
    error_code = "validation_error"


class NotFoundError(ScoreboardError):
    """Unknown game under strict resolution, unknown or inactive user"""
    status_code = 404
    error_code = "not_found"


class ConflictError(ScoreboardError):
    """Duplicate unique key that could not be reconciled"""
    status_code = 409
    error_code = "conflict"


class AuthenticationError(ScoreboardError):
    """Bad credentials"""
    status_code = 401
    error_code = "authentication_failed"


class InvalidTokenError(AuthenticationError):
    """Token missing, malformed, expired or pointing to an inactive user"""
    error_code = "invalid_token"


class StoreUnavailableError(ScoreboardError):
    """Connection or timeout failure from the backing store"""
    status_code = 503
    error_code = "store_unavailable"
