# fuelogic/errors.py
"""
Error types shared by the stores, the registry and the dispatcher.

ValidationError and NotFoundError abort the operation that raised them.
DeliveryError never leaves the dispatcher: each one is folded into the
DispatchResult of the endpoint that failed.
"""

from typing import Optional


class FuelogicError(Exception):
    """Base class for application errors."""
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(FuelogicError):
    """Malformed or invariant-violating input."""
    status_code = 400

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


class NotFoundError(FuelogicError):
    """Unknown resource id."""
    status_code = 404


class AuthenticationError(FuelogicError):
    """Missing or unknown bearer credential."""
    status_code = 401


class ConfigurationError(FuelogicError):
    """A required external endpoint is not configured."""
    status_code = 503


class DeliveryError(FuelogicError):
    """
    A single webhook delivery failed.

    kind is "http_status" when the endpoint answered with a non-2xx status
    and "network" for transport failures and timeouts.
    """

    def __init__(
        self,
        kind: str,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.http_status = status_code
        self.response_body = response_body
