from __future__ import annotations

from ..extensions import db
from stockdesk.time_utils import to_utc_z

USER_STATUS_PENDING = "PENDING"
USER_STATUS_APPROVED = "APPROVED"


class User(db.Model):
    """
    A person who signed in through the external identity provider.

    The primary key is the provider's subject id. Access is gated by
    `status`: new users start PENDING and an administrator either approves
    them or deletes the row (rejection leaves no trace).
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_users_email"),
        db.Index("ix_users_status", "status"),
    )

    id = db.Column(db.String(255), primary_key=True)

    email = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(255), nullable=True)
    picture = db.Column(db.String(1024), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=USER_STATUS_PENDING)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def is_approved(self) -> bool:
        return self.status == USER_STATUS_APPROVED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "picture": self.picture,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }
