"""Error taxonomy for the nimbridge proxy.

Every error a caller can see is rendered with the same body shape:
``{"error": {"message": ..., "type": ..., "code": ...}}``.
"""

from typing import Any, Dict, Optional, Union


class ProxyError(Exception):
    """Base class for errors that map onto an HTTP error response."""

    status_code = 500
    error_type = "internal_error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_type: Optional[str] = None,
        code: Optional[Union[str, int]] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_type is not None:
            self.error_type = error_type
        self.code = code if code is not None else self.status_code

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": {
                "message": self.message,
                "type": self.error_type,
                "code": self.code,
            }
        }


class InputValidationError(ProxyError):
    """Missing or malformed request fields."""

    status_code = 400
    error_type = "invalid_request_error"

    def __init__(
        self,
        message: str = "Missing required fields: model and messages are required",
    ):
        super().__init__(message, code="invalid_request")


class AuthConfigError(ProxyError):
    """No backend credential configured on the server."""

    status_code = 401
    error_type = "authentication_error"

    def __init__(self, message: str = "NIM_API_KEY not configured on server"):
        super().__init__(message, code="api_key_missing")


class UpstreamError(ProxyError):
    """The backend answered with a non-success status."""

    error_type = "api_error"

    @classmethod
    def from_response(cls, status_code: int, body: Any) -> "UpstreamError":
        """
        Build an error from a backend status and its (possibly non-JSON) body.

        The message is taken from ``error.message``, then a top-level
        ``message``, then ``error`` itself when it is a plain string.
        """
        message = None
        error_type = None

        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict):
                message = error.get("message")
                error_type = error.get("type")
            elif isinstance(error, str):
                message = error
            if not message:
                message = body.get("message")

        return cls(
            message or "NVIDIA NIM API error",
            status_code=status_code,
            error_type=error_type or cls.error_type,
            code=status_code,
        )


class UpstreamTimeoutError(ProxyError):
    status_code = 504
    error_type = "timeout_error"

    def __init__(self, message: str = "Request timeout - response took too long"):
        super().__init__(message)


class InternalError(ProxyError):
    status_code = 500
    error_type = "internal_error"

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)


class NotFoundError(ProxyError):
    status_code = 404
    error_type = "invalid_request_error"
