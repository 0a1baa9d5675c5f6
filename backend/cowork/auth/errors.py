from __future__ import annotations

from fastapi import status


class AuthorizationError(Exception):
    """
    Base for every error the authorization core raises.

    `reason` is for server-side logs only. Clients get `message`, which is
    fixed per class and never says which rule failed.
    """

    status_code: int = status.HTTP_403_FORBIDDEN
    code: str = "authz_error"
    message: str = "Request could not be authorized."

    def __init__(self, reason: str = "") -> None:
        super().__init__(reason or self.message)
        self.reason = reason


class Unauthenticated(AuthorizationError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"
    message = "Not authenticated."


class NotAuthorized(AuthorizationError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    message = "You do not have permission to perform this action."


class TenantMismatch(NotAuthorized):
    # Same client-facing message as NotAuthorized.
    code = "forbidden"


class InvalidRoleAssignment(AuthorizationError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "invalid_role_assignment"
    message = "The requested role cannot be assigned."


class InvalidStateTransition(AuthorizationError):
    status_code = status.HTTP_409_CONFLICT
    code = "invalid_state_transition"
    message = "Invitation is no longer pending."


class ResourceNotFound(AuthorizationError):
    # Also used when a row exists but is outside the caller's scope.
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    message = "Not found."


class InvitationNotFound(ResourceNotFound):
    code = "invitation_not_found"
    message = "Invitation not found."


class InvitationExpired(AuthorizationError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invitation_expired"
    message = "Invitation expired."


class InvitationConflict(AuthorizationError):
    status_code = status.HTTP_409_CONFLICT
    code = "invitation_conflict"
    message = "A pending invitation or membership already exists for this email."
