# Overview: Service-layer operations for auth; approval lifecycle of externally verified users.

"""
Access approval for users signing in with Google.

The identity provider only proves who someone is. Whether they get in is
decided here, per email:

    unknown --sign in--> PENDING --approve--> APPROVED
                                 --reject---> (row deleted)

A PENDING user is refused on every sign-in until an administrator decides.
A rejected user who signs in again simply starts over as PENDING.
"""

from __future__ import annotations

from flask import current_app

from ..models import User, USER_STATUS_PENDING, USER_STATUS_APPROVED
from ..validation import ValidationError
from stockdesk.time_utils import utcnow
from .identity_provider import IdentityClaims
from .storage_gateway import StorageGateway

DECISION_APPROVE = "approve"
DECISION_REJECT = "reject"
DECISIONS = (DECISION_APPROVE, DECISION_REJECT)


class AccessPending(Exception):
    """Identity verified but not (yet) approved by an administrator."""

    def __init__(self, user: User):
        super().__init__("Access pending administrator approval")
        self.user = user


class UserNotFound(Exception):
    pass


class AccessApprovalManager:
    def __init__(self, gateway: StorageGateway, verifier):
        self.gateway = gateway
        self.verifier = verifier

    @staticmethod
    def _normalize_email(email: str) -> str:
        return email.strip().lower()

    def _find_by_email(self, email: str) -> User | None:
        return self.gateway.query(User).filter(User.email == email).first()

    def sign_in(self, token: str) -> User:
        """
        Verify the token and apply the approval gate.

        Raises:
            InvalidToken: token rejected by the provider
            IdentityProviderError: provider unreachable
            AccessPending: first sign-in, or still waiting for approval
        """
        claims: IdentityClaims = self.verifier.verify(token)
        email = self._normalize_email(claims.email)

        user = self._find_by_email(email) or self.gateway.get(User, claims.subject)
        if user is None:
            user = User(
                id=claims.subject,
                email=email,
                name=claims.name,
                picture=claims.picture,
                status=USER_STATUS_PENDING,
            )
            self.gateway.add(user)
            self.gateway.commit()
            current_app.logger.info("New user %s registered, awaiting approval", email)
            raise AccessPending(user)

        # Profile data follows the provider
        user.email = email
        user.name = claims.name
        user.picture = claims.picture

        if not user.is_approved:
            self.gateway.commit()
            raise AccessPending(user)

        user.last_login_at = utcnow()
        self.gateway.commit()
        return user

    def list_pending(self) -> list[User]:
        return (
            self.gateway.query(User)
            .filter(User.status == USER_STATUS_PENDING)
            .order_by(User.created_at.asc(), User.email.asc())
            .all()
        )

    def decide(
        self,
        *,
        decision: str,
        user_id: str | None = None,
        email: str | None = None,
    ) -> User | None:
        """
        Approve or reject a user, found by id or email.

        Returns the approved user, or None when the user was rejected
        (rejection deletes the row).
        """
        if decision not in DECISIONS:
            raise ValidationError(f"decision must be one of: {', '.join(DECISIONS)}")
        if not user_id and not email:
            raise ValidationError("user_id or email is required")
        if user_id is not None and not isinstance(user_id, str):
            raise ValidationError("user_id must be a string")
        if email is not None and not isinstance(email, str):
            raise ValidationError("email must be a string")

        if user_id:
            user = self.gateway.get(User, user_id)
        else:
            user = self._find_by_email(self._normalize_email(email))
        if user is None:
            raise UserNotFound("User not found")

        if decision == DECISION_REJECT:
            rejected_email = user.email
            self.gateway.delete(user)
            self.gateway.commit()
            current_app.logger.info("Rejected user %s", rejected_email)
            return None

        user.status = USER_STATUS_APPROVED
        self.gateway.commit()
        current_app.logger.info("Approved user %s", user.email)
        return user
