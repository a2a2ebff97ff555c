"""Hosting account model.

One row per reseller hosting account. Two usernames, never interchangeable:

- vp_username:    issued by the provider on creation (e.g. "mofh_12345678").
                  Used by the status query (getuserdomains) and as the
                  public identifier in our URLs.
- login_username: the short name we chose when creating the account
                  (the `username` field of createacct). Used by suspend,
                  unsuspend and passwd — sending vp_username there is a
                  silent no-op on the provider side.

Rows are never deleted; DELETED is a logical state that frees the domain.
"""

import uuid
from datetime import datetime, timezone

from hostpanel.extensions import db


class HostingAccount(db.Model):
    __tablename__ = "hosting_accounts"

    # -- Lifecycle statuses --
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    SUSPENDING = "SUSPENDING"
    SUSPENDED = "SUSPENDED"
    REACTIVATING = "REACTIVATING"
    DELETED = "DELETED"

    STATUSES = [PENDING, ACTIVE, SUSPENDING, SUSPENDED, REACTIVATING, DELETED]

    # Waiting on the provider to confirm an action we already sent.
    TRANSIENT_STATUSES = [SUSPENDING, REACTIVATING]

    # -- Valid status transitions (enforced in hosting_service) --
    VALID_TRANSITIONS = {
        PENDING: [ACTIVE, DELETED],
        ACTIVE: [SUSPENDING, DELETED],
        SUSPENDING: [SUSPENDED, DELETED],
        SUSPENDED: [REACTIVATING, DELETED],
        REACTIVATING: [ACTIVE, DELETED],
    }

    # Prefix on suspend_reason marking an administrator-issued suspension.
    ADMIN_SUSPEND_PREFIX = "[BY ADMIN]"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False
    )
    vp_username = db.Column(db.String(32), unique=True, nullable=False)
    login_username = db.Column(db.String(16), nullable=False)
    password = db.Column(db.String(64), nullable=False)  # owner-retrievable, needed for deep links
    domain = db.Column(db.String(255), nullable=False)
    is_custom_domain = db.Column(db.Boolean, default=False, nullable=False)
    label = db.Column(db.String(100), nullable=True)
    package = db.Column(db.String(100), nullable=True)
    sql_cluster = db.Column(db.String(32), nullable=True)  # e.g. "sql310", reported by provider callbacks
    status = db.Column(
        db.String(20), default=PENDING, nullable=False
    )  # PENDING | ACTIVE | SUSPENDING | SUSPENDED | REACTIVATING | DELETED

    # --- Suspension metadata ---
    suspend_reason = db.Column(db.Text, nullable=True)
    suspended_at = db.Column(db.DateTime(timezone=True), nullable=True)
    deactivated_at = db.Column(
        db.DateTime(timezone=True), nullable=True
    )  # last owner-initiated deactivation; every one is logged in hosting_deactivations

    # --- Control panel approval gate (false -> true only) ---
    cpanel_approved = db.Column(db.Boolean, default=False, nullable=False)
    cpanel_approved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    activated_at = db.Column(db.DateTime(timezone=True), nullable=True)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __table_args__ = (
        # A domain may appear in any number of DELETED rows but only one live row.
        db.Index(
            "uq_hosting_accounts_live_domain",
            "domain",
            unique=True,
            sqlite_where=db.text("status != 'DELETED'"),
            postgresql_where=db.text("status != 'DELETED'"),
        ),
        db.Index("ix_hosting_accounts_user_status", "user_id", "status"),
    )

    # --- Relationships ---
    owner = db.relationship("User", back_populates="hosting_accounts")

    @property
    def is_admin_suspended(self):
        return bool(
            self.suspend_reason
            and self.suspend_reason.startswith(self.ADMIN_SUSPEND_PREFIX)
        )

    def can_transition_to(self, new_status):
        return new_status in self.VALID_TRANSITIONS.get(self.status, [])

    def to_dict(self, include_password=False):
        data = {
            "id": self.id,
            "vp_username": self.vp_username,
            "login_username": self.login_username,
            "domain": self.domain,
            "is_custom_domain": bool(self.is_custom_domain),
            "label": self.label,
            "package": self.package,
            "sql_cluster": self.sql_cluster,
            "status": self.status,
            "suspend_reason": self.suspend_reason,
            "suspended_at": _iso(self.suspended_at),
            "cpanel_approved": bool(self.cpanel_approved),
            "cpanel_approved_at": _iso(self.cpanel_approved_at),
            "activated_at": _iso(self.activated_at),
            "created_at": _iso(self.created_at),
        }
        if include_password:
            data["password"] = self.password
        return data

    def __repr__(self):
        return f"<HostingAccount {self.vp_username} {self.domain} ({self.status})>"


def _iso(value):
    return value.isoformat() if value else None


class HostingDeactivation(db.Model):
    """One row per owner-initiated deactivation. Read by the rate limiter.

    Rows outlive the account's own timestamps, so deactivating, reactivating
    and deactivating the same account again counts twice.
    """

    __tablename__ = "hosting_deactivations"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False
    )
    account_id = db.Column(
        db.String(36), db.ForeignKey("hosting_accounts.id"), nullable=False
    )
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.Index("ix_hosting_deactivations_user_created", "user_id", "created_at"),
    )

    def __repr__(self):
        return f"<HostingDeactivation {self.account_id} at {self.created_at}>"
