"""
Error taxonomy shared by the service layer, the HTTP handlers and the client
wrapper. Every operation either returns its result or raises exactly one of
these; ``kind`` is the stable identifier sent over the wire.
"""
from typing import Dict, Optional, Type

from fastapi import status


class SpireError(Exception):
    kind = "remote_failure"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Unexpected error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {"error": self.kind, "detail": self.detail}


class NotAuthenticated(SpireError):
    kind = "not_authenticated"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Not authenticated"


class NotAuthorized(SpireError):
    kind = "not_authorized"
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not authorized"


class NotFound(SpireError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class InvalidArgument(SpireError):
    kind = "invalid_argument"
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid argument"


class Conflict(SpireError):
    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict"


class InviteExhausted(SpireError):
    kind = "exhausted"
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Invite code has no remaining uses"


class InviteExpired(SpireError):
    kind = "expired"
    status_code = status.HTTP_410_GONE
    default_detail = "Invite code expired"


class InviteRevoked(SpireError):
    kind = "revoked"
    status_code = status.HTTP_410_GONE
    default_detail = "Invite code revoked"


class RemoteFailure(SpireError):
    kind = "remote_failure"
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Remote failure"


ERRORS_BY_KIND: Dict[str, Type[SpireError]] = {
    cls.kind: cls
    for cls in (
        NotAuthenticated,
        NotAuthorized,
        NotFound,
        InvalidArgument,
        Conflict,
        InviteExhausted,
        InviteExpired,
        InviteRevoked,
        RemoteFailure,
    )
}


def error_from_payload(payload: Optional[dict], status_code: int) -> SpireError:
    """Rebuild a SpireError from an error response body."""
    payload = payload or {}
    detail = payload.get("detail")
    if not isinstance(detail, str):
        detail = f"Request failed with status {status_code}"
    error_cls = ERRORS_BY_KIND.get(payload.get("error"), RemoteFailure)
    return error_cls(detail)
