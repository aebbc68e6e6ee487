"""
Error taxonomy of the marketplace.

Services raise these; main.py translates them into JSON responses
`{"message": ..., **detail}` with the matching status code.
"""
from typing import Any, Dict


class MarketplaceError(Exception):
    status_code = 500

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail: Dict[str, Any] = detail

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, **self.detail}


class ValidationError(MarketplaceError):
    status_code = 400


class AuthorizationError(MarketplaceError):
    status_code = 403


class AuthenticationRequired(AuthorizationError):
    status_code = 401


class PurchaseRequired(AuthorizationError):
    pass


class NotFoundError(MarketplaceError):
    status_code = 404


class ConflictError(MarketplaceError):
    status_code = 409


class DuplicateReview(ConflictError):
    pass


class InvalidTransition(ConflictError):
    pass


class ExternalServiceError(MarketplaceError):
    status_code = 500
