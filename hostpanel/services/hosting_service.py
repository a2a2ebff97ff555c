"""Hosting service — account provisioning and lifecycle state machine.

Owns every status change of a HostingAccount:

    create()          (none)        -> PENDING
    sync_account()    PENDING       -> ACTIVE        provider reports ACTIVE
    deactivate()      ACTIVE        -> SUSPENDING    provider accepted suspend
    sync_account()    SUSPENDING    -> SUSPENDED     provider reports suspended
    reactivate()      SUSPENDED     -> REACTIVATING  provider accepted unsuspend
    sync_account()    REACTIVATING  -> ACTIVE        clears suspension metadata
    delete_account()  any live      -> DELETED

apply_provider_callback() drives the same transitions from provider pushes.

Concurrency:
- One mutating operation per account at a time (in-process lock keyed on
  the account id; creation locks on the owner id).
- Every write is conditional on the status we read ("UPDATE ... WHERE
  status = <from>"). If another writer got there first the request fails
  with `state_changed` instead of clobbering it.
- Provider timeouts never change local state.

Functions raise HostingError; blueprints render it as JSON.
"""

import logging
import re
import secrets
import string
import threading
from contextlib import contextmanager
from datetime import datetime, timezone

import bleach
from sqlalchemy.exc import IntegrityError

from hostpanel.extensions import db
from hostpanel.models.hosting import HostingAccount
from hostpanel.services import rate_limiter
from hostpanel.services.filemanager import build_filemanager_link
from hostpanel.services.hosting_config import get_hosting_config
from hostpanel.services.nameserver_service import NameserverVerifier
from hostpanel.services.reseller_client import (
    ResellerClient,
    ResellerIntegrationError,
    ResellerRejected,
    ResellerUnavailable,
)

logger = logging.getLogger(__name__)

DOMAIN_RE = re.compile(
    r"^[a-zA-Z0-9]([a-zA-Z0-9-]*[a-zA-Z0-9])?"
    r"(\.[a-zA-Z0-9]([a-zA-Z0-9-]*[a-zA-Z0-9])?)*\.[a-zA-Z]{2,}$"
)
SUBDOMAIN_RE = re.compile(r"^[a-z0-9]{3,8}$")
PASSWORD_RE = re.compile(r"^[a-zA-Z0-9]+$")
ENGLISH_RE = re.compile(r"^[a-zA-Z0-9\s.,!?'\"\-_():;@#$%&*+=/\\]+$", re.ASCII)

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 20
GENERATED_PASSWORD_LENGTH = 12
LOGIN_USERNAME_LENGTH = 8
LABEL_MAX_LENGTH = 100

# getuserdomains status values
PROVIDER_ACTIVE = "ACTIVE"
PROVIDER_SUSPENDED = ("x", "suspended")

# Provider callback statuses
CALLBACK_ACTIVATED = "ACTIVATED"
CALLBACK_SUSPENDED = "SUSPENDED"
CALLBACK_REACTIVATE = "REACTIVATE"
CALLBACK_DELETE = "DELETE"

SYNCABLE_STATUSES = [
    HostingAccount.PENDING,
    HostingAccount.SUSPENDING,
    HostingAccount.REACTIVATING,
]


class HostingError(Exception):
    """A request-level failure with a machine-checkable code."""

    def __init__(self, message, code, status=400, **details):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status
        self.details = details

    def to_dict(self):
        return {"success": False, "error": self.message, "code": self.code, **self.details}


# ──────────────────────────────────────────────
# Collaborators
# ──────────────────────────────────────────────

def get_reseller_client(config=None):
    config = config or get_hosting_config()
    if not config.is_configured:
        raise HostingError("Hosting service is not configured", "not_configured", 503)
    return ResellerClient(config)


def get_nameserver_verifier(config=None):
    return NameserverVerifier(config or get_hosting_config())


def _call_provider(action, fn, *args, **kwargs):
    """Run a reseller call, translating its failures into HostingError."""
    try:
        return fn(*args, **kwargs)
    except ResellerRejected as e:
        raise HostingError(e.message, "provider_rejected", 400)
    except ResellerIntegrationError as e:
        logger.error(f"[{action}] Reseller integration error: {e}")
        raise HostingError("Invalid response from hosting service", "provider_error", 502)
    except ResellerUnavailable as e:
        logger.warning(f"[{action}] Reseller unavailable: {e}")
        raise HostingError(
            "Hosting service is temporarily unavailable. Please try again later.",
            "provider_unavailable",
            503,
        )


# ──────────────────────────────────────────────
# Locking and conditional writes
# ──────────────────────────────────────────────

# Keys with an operation in flight. Entries are removed on release.
_held_keys = set()
_held_guard = threading.Lock()


@contextmanager
def exclusive(key):
    """Hold `key` for the duration of the block; fail fast if it is already held."""
    with _held_guard:
        if key in _held_keys:
            raise HostingError(
                "Another operation is already in progress for this account. Please wait.",
                "in_progress",
                409,
            )
        _held_keys.add(key)
    try:
        yield
    finally:
        with _held_guard:
            _held_keys.discard(key)


def _commit_if_status(account, expected_status, **values):
    """Apply `values` only if the row still has `expected_status`, then commit."""
    values["updated_at"] = datetime.now(timezone.utc)
    updated = (
        HostingAccount.query
        .filter_by(id=account.id, status=expected_status)
        .update(values, synchronize_session=False)
    )
    if updated != 1:
        db.session.rollback()
        raise HostingError(
            "Account state changed while the request was processed. Please refresh and try again.",
            "state_changed",
            409,
        )
    db.session.commit()
    db.session.refresh(account)
    return account


def _transition(account, from_status, to_status, **values):
    if to_status not in HostingAccount.VALID_TRANSITIONS.get(from_status, []):
        raise HostingError(
            f"Cannot change account status from {from_status} to {to_status}",
            "invalid_transition",
            409,
        )
    _commit_if_status(account, from_status, status=to_status, **values)
    logger.info(f"[Hosting] {account.vp_username}: {from_status} -> {to_status}")
    return account


# ──────────────────────────────────────────────
# Validation helpers
# ──────────────────────────────────────────────

def normalize_domain(domain):
    return (domain or "").strip().lower().rstrip(".")


def is_valid_domain(domain):
    return bool(DOMAIN_RE.match(domain or ""))


def is_english_only(text):
    return bool(ENGLISH_RE.match(text or ""))


def _validate_reason(reason, label="Deactivate"):
    reason = (reason or "").strip()
    if not reason:
        raise HostingError(f"{label} reason is required", "invalid_reason")
    if not is_english_only(reason):
        raise HostingError(f"{label} reason must be in English only", "invalid_reason")
    return reason


def validate_new_password(password):
    password = password or ""
    if len(password) < PASSWORD_MIN_LENGTH:
        raise HostingError(
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters", "invalid_password"
        )
    if len(password) > PASSWORD_MAX_LENGTH:
        raise HostingError(
            f"Password must not exceed {PASSWORD_MAX_LENGTH} characters", "invalid_password"
        )
    # The provider mangles punctuation in passwords
    if not PASSWORD_RE.match(password):
        raise HostingError(
            "Password can only contain letters and numbers (no special characters)",
            "invalid_password",
        )
    return password


def generate_password(length=GENERATED_PASSWORD_LENGTH):
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_login_username(domain):
    """8 chars: first 4 alphanumerics of the domain + random [a-z0-9] padding."""
    alphabet = string.ascii_lowercase + string.digits
    prefix = re.sub(r"[^a-z0-9]", "", domain.lower())[:4]
    suffix = "".join(
        secrets.choice(alphabet) for _ in range(LOGIN_USERNAME_LENGTH - len(prefix))
    )
    return prefix + suffix


def _sanitize_label(label):
    if label is None:
        return None
    label = bleach.clean(label, tags=[], strip=True).strip()
    return label[:LABEL_MAX_LENGTH] or None


# ──────────────────────────────────────────────
# Queries
# ──────────────────────────────────────────────

def list_accounts(owner_id):
    return (
        HostingAccount.query
        .filter_by(user_id=owner_id)
        .order_by(HostingAccount.created_at.desc())
        .all()
    )


def get_account(owner_id, vp_username):
    """Owner-scoped lookup. Someone else's account is indistinguishable from none."""
    account = HostingAccount.query.filter_by(
        user_id=owner_id, vp_username=vp_username
    ).first()
    if account is None:
        raise HostingError("Hosting account not found", "not_found", 404)
    return account


def get_account_by_vp_username(vp_username):
    account = HostingAccount.query.filter_by(vp_username=vp_username).first()
    if account is None:
        raise HostingError("Hosting account not found", "not_found", 404)
    return account


def _live_accounts():
    return HostingAccount.query.filter(HostingAccount.status != HostingAccount.DELETED)


def is_domain_taken(domain):
    return _live_accounts().filter(HostingAccount.domain == domain).first() is not None


def count_live_accounts(owner_id):
    return _live_accounts().filter(HostingAccount.user_id == owner_id).count()


def account_stats(owner_id):
    config = get_hosting_config()
    base = HostingAccount.query.filter_by(user_id=owner_id)
    total = count_live_accounts(owner_id)
    return {
        "total": total,
        "active": base.filter_by(status=HostingAccount.ACTIVE).count(),
        "pending": base.filter_by(status=HostingAccount.PENDING).count(),
        "suspended": base.filter_by(status=HostingAccount.SUSPENDED).count(),
        "limit": config.account_limit,
        "can_create": total < config.account_limit,
    }


def check_domain_availability(subdomain, base_domain):
    """Subdomain mode: is <subdomain>.<base_domain> free to claim?"""
    subdomain = (subdomain or "").strip().lower()
    base_domain = normalize_domain(base_domain)
    if not subdomain or not base_domain:
        raise HostingError("Subdomain and domain are required", "validation_error")
    if not SUBDOMAIN_RE.match(subdomain):
        raise HostingError(
            "Invalid subdomain format. Use only lowercase letters and numbers (3-8 characters)",
            "invalid_subdomain",
        )
    if not get_hosting_config().is_domain_allowed(base_domain):
        raise HostingError("This domain is not allowed", "domain_not_allowed")

    full_domain = f"{subdomain}.{base_domain}"
    if is_domain_taken(full_domain):
        return {"available": False, "domain": full_domain, "message": "This subdomain is already taken"}
    return {"available": True, "domain": full_domain, "message": "Subdomain is available"}


def check_nameservers(domain, verifier=None):
    domain = normalize_domain(domain)
    if not domain:
        raise HostingError("Domain is required", "validation_error")
    if not is_valid_domain(domain):
        raise HostingError("Invalid domain format", "invalid_domain")
    verifier = verifier or get_nameserver_verifier()
    result = verifier.check_domain_delegation(domain)
    return {"domain": domain, **result}


def check_operational(account):
    """Raise unless the account is ACTIVE and its control panel was opened once."""
    blocked = {
        HostingAccount.PENDING: ("Hosting account is pending activation", "pending"),
        HostingAccount.SUSPENDING: ("Hosting account is being suspended", "suspending"),
        HostingAccount.SUSPENDED: ("Hosting account is suspended", "suspended"),
        HostingAccount.REACTIVATING: ("Hosting account is being reactivated", "reactivating"),
    }
    if account.status in blocked:
        message, code = blocked[account.status]
        raise HostingError(message, code)
    if account.status != HostingAccount.ACTIVE:
        raise HostingError("Hosting account is not active", "not_active")
    if not account.cpanel_approved:
        raise HostingError(
            "You must login to cPanel first before using this feature",
            "cpanel_not_approved",
        )


def filemanager_link(owner_id, vp_username, directory="/htdocs/"):
    account = get_account(owner_id, vp_username)
    check_operational(account)
    return build_filemanager_link(account.vp_username, account.password, directory)


# ──────────────────────────────────────────────
# Provisioning
# ──────────────────────────────────────────────

def create_account(
    owner,
    subdomain=None,
    base_domain=None,
    custom_domain=None,
    is_custom_domain=False,
    label=None,
    client=None,
    verifier=None,
):
    """Provision a new account on the provider and persist it as PENDING.

    Returns (account, password). The password is only handed back here,
    so the caller can show it once.
    """
    config = get_hosting_config()

    if is_custom_domain:
        domain = normalize_domain(custom_domain)
        if not domain:
            raise HostingError("Custom domain is required", "validation_error")
        if not is_valid_domain(domain):
            raise HostingError("Invalid domain format", "invalid_domain")
        login_username = generate_login_username(domain)
    else:
        subdomain = (subdomain or "").strip()
        base_domain = normalize_domain(base_domain)
        if not base_domain:
            raise HostingError("Domain is required", "validation_error")
        if not subdomain:
            raise HostingError("Subdomain is required", "validation_error")
        if not SUBDOMAIN_RE.match(subdomain):
            raise HostingError(
                "Invalid subdomain format. Use only lowercase letters and numbers (3-8 characters)",
                "invalid_subdomain",
            )
        if not config.is_domain_allowed(base_domain):
            raise HostingError("This domain is not allowed", "domain_not_allowed")
        domain = f"{subdomain}.{base_domain}"
        login_username = subdomain

    with exclusive(f"owner:{owner.id}"):
        if count_live_accounts(owner.id) >= config.account_limit:
            raise HostingError(
                f"You have reached the maximum limit of {config.account_limit} hosting accounts",
                "limit_reached",
            )
        if is_domain_taken(domain):
            raise HostingError("This domain is already registered", "domain_taken")

        if is_custom_domain:
            verifier = verifier or get_nameserver_verifier(config)
            ns_check = verifier.check_domain_delegation(domain)
            if not ns_check["valid"]:
                raise HostingError(
                    "Domain nameservers are not configured correctly",
                    "nameservers_invalid",
                    current_nameservers=ns_check["current_nameservers"],
                    required_nameservers=ns_check["required_nameservers"],
                    hint=ns_check["message"],
                )

        client = client or get_reseller_client(config)
        password = generate_password()
        vp_username = _call_provider(
            "create",
            client.create_account,
            username=login_username,
            password=password,
            contact_email=owner.email,
            domain=domain,
            plan=config.default_plan,
        )

        account = HostingAccount(
            user_id=owner.id,
            vp_username=vp_username,
            login_username=login_username,
            password=password,
            domain=domain,
            package=config.default_plan,
            status=HostingAccount.PENDING,
            label=_sanitize_label(label),
            is_custom_domain=bool(is_custom_domain),
        )
        db.session.add(account)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            logger.error(
                f"[Hosting] Provider created {vp_username} for {domain} "
                f"but the local insert conflicted"
            )
            raise HostingError("This domain is already registered", "domain_taken")

    logger.info(f"[Hosting] Created {vp_username} ({domain}) for user {owner.id}")
    _notify_owner(
        account,
        subject=f"Your hosting account for {domain} was created",
        template="emails/hosting_created.html",
        password=password,
    )
    return account, password


# ──────────────────────────────────────────────
# Owner-triggered transitions
# ──────────────────────────────────────────────

def deactivate_account(owner, vp_username, reason, client=None):
    """ACTIVE -> SUSPENDING. Confirmed later by sync_account()."""
    reason = _validate_reason(reason)
    account = get_account(owner.id, vp_username)
    config = get_hosting_config()

    with exclusive(account.id):
        db.session.refresh(account)
        if account.status in (HostingAccount.SUSPENDED, HostingAccount.SUSPENDING):
            raise HostingError(
                "This account is already suspended or being suspended", "already_suspended"
            )
        if account.status != HostingAccount.ACTIVE:
            raise HostingError("Only active accounts can be deactivated", "not_active")

        if not rate_limiter.allow_deactivate(
            owner.id, config.deactivate_limit, config.deactivate_window_hours
        ):
            raise HostingError(
                f"Rate limit exceeded. You can only deactivate hosting accounts "
                f"{config.deactivate_limit} times per {config.deactivate_window_hours} hours.",
                "rate_limited",
                429,
                next_available=rate_limiter.next_available_at(
                    config.deactivate_window_hours
                ).isoformat(),
            )

        client = client or get_reseller_client(config)
        _call_provider("deactivate", client.suspend_account, account.login_username, reason)

        now = datetime.now(timezone.utc)
        rate_limiter.record_deactivation(account, now)
        return _transition(
            account,
            HostingAccount.ACTIVE,
            HostingAccount.SUSPENDING,
            suspend_reason=reason,
            suspended_at=now,
            deactivated_at=now,
        )


def reactivate_account(owner, vp_username, client=None):
    """SUSPENDED -> REACTIVATING, unless an administrator suspended it."""
    account = get_account(owner.id, vp_username)

    with exclusive(account.id):
        db.session.refresh(account)
        if account.status == HostingAccount.REACTIVATING:
            raise HostingError(
                "This account is already being reactivated", "already_reactivating"
            )
        if account.status != HostingAccount.SUSPENDED:
            raise HostingError("Only suspended accounts can be reactivated", "not_suspended")
        if account.is_admin_suspended:
            raise HostingError(
                "This account was suspended by an administrator. "
                "Please contact support for assistance.",
                "admin_suspended",
                403,
            )

        client = client or get_reseller_client()
        _call_provider("reactivate", client.unsuspend_account, account.login_username)

        return _transition(account, HostingAccount.SUSPENDED, HostingAccount.REACTIVATING)


def change_password(owner, vp_username, new_password, client=None):
    """Replace the control panel password. ACTIVE accounts only."""
    new_password = validate_new_password(new_password)
    account = get_account(owner.id, vp_username)

    with exclusive(account.id):
        db.session.refresh(account)
        if account.status != HostingAccount.ACTIVE:
            raise HostingError(
                "Password can only be changed for active accounts", "not_active"
            )

        client = client or get_reseller_client()
        _call_provider("passwd", client.change_password, account.login_username, new_password)

        _commit_if_status(account, HostingAccount.ACTIVE, password=new_password)
        logger.info(f"[Hosting] Password changed for {account.vp_username}")
        return account


def mark_cpanel_approved(owner, vp_username):
    """Record that the owner opened the control panel. Returns (account, changed)."""
    account = get_account(owner.id, vp_username)
    if account.status != HostingAccount.ACTIVE:
        raise HostingError("Hosting account must be active before approval", "not_active")
    if account.cpanel_approved:
        return account, False

    _commit_if_status(
        account,
        HostingAccount.ACTIVE,
        cpanel_approved=True,
        cpanel_approved_at=datetime.now(timezone.utc),
    )
    return account, True


def update_label(owner, vp_username, label):
    account = get_account(owner.id, vp_username)
    account.label = _sanitize_label(label)
    db.session.commit()
    return account


# ──────────────────────────────────────────────
# Reconciliation
# ──────────────────────────────────────────────

def _is_provider_suspended(provider_status):
    return provider_status.strip().lower() in PROVIDER_SUSPENDED


def reconcile(local_status, snapshot, now=None):
    """Decide the next local status from a getuserdomains snapshot.

    Pure function. Returns (new_status, column_changes), or (None, {})
    when the account should stay where it is. Confirmed states are never
    moved by this function, so stale snapshots cannot regress them.
    """
    if not snapshot:
        return None, {}

    provider_status = snapshot[0][0].strip()
    now = now or datetime.now(timezone.utc)

    if provider_status.upper() == PROVIDER_ACTIVE:
        if local_status == HostingAccount.PENDING:
            return HostingAccount.ACTIVE, {"activated_at": now}
        if local_status == HostingAccount.REACTIVATING:
            return HostingAccount.ACTIVE, {"suspend_reason": None, "suspended_at": None}

    if _is_provider_suspended(provider_status) and local_status == HostingAccount.SUSPENDING:
        return HostingAccount.SUSPENDED, {}

    return None, {}


_SYNC_MESSAGES = {
    (HostingAccount.PENDING, HostingAccount.ACTIVE): "Account synced and activated",
    (HostingAccount.SUSPENDING, HostingAccount.SUSPENDED): "Account fully suspended",
    (HostingAccount.REACTIVATING, HostingAccount.ACTIVE): "Account fully reactivated",
}


def sync_account(account, client=None):
    """Query the provider and advance the account if the snapshot confirms it.

    Safe to call repeatedly. Provider errors propagate as HostingError and
    leave the account untouched.
    """
    with exclusive(account.id):
        db.session.refresh(account)
        previous = account.status

        if previous == HostingAccount.DELETED:
            return {
                "success": True,
                "changed": False,
                "status": previous,
                "message": "Account is deleted",
            }

        client = client or get_reseller_client()
        snapshot = _call_provider("sync", client.get_user_domains, account.vp_username)

        if not snapshot:
            logger.info(f"[Hosting Sync] {account.vp_username} not visible on provider yet")
            return {
                "success": False,
                "changed": False,
                "status": previous,
                "message": "Account not found on provider",
            }

        new_status, changes = reconcile(previous, snapshot)
        if new_status:
            _transition(account, previous, new_status, **changes)

    result = {
        "success": True,
        "changed": new_status is not None,
        "status": account.status,
        "provider_status": snapshot[0][0],
        "domains": [list(row) for row in snapshot],
        "message": _SYNC_MESSAGES.get((previous, new_status), "Account status unchanged"),
    }
    if new_status:
        _notify_transition(account, previous, new_status)
    return result


def sync_pending_accounts(dry_run=False, client=None):
    """Scheduled sweep over every account awaiting provider confirmation."""
    accounts = (
        HostingAccount.query
        .filter(HostingAccount.status.in_(SYNCABLE_STATUSES))
        .order_by(HostingAccount.created_at)
        .all()
    )
    summary = {"checked": 0, "changed": 0, "errors": 0}

    if dry_run:
        summary["checked"] = len(accounts)
        for account in accounts:
            logger.info(f"[Hosting Sweep] would sync {account.vp_username} ({account.status})")
        return summary

    if accounts:
        client = client or get_reseller_client()

    for account in accounts:
        summary["checked"] += 1
        try:
            result = sync_account(account, client=client)
        except HostingError as e:
            summary["errors"] += 1
            logger.warning(f"[Hosting Sweep] {account.vp_username}: {e.code} {e.message}")
            continue
        if result["changed"]:
            summary["changed"] += 1

    logger.info(f"[Hosting Sweep] {summary}")
    return summary


# ──────────────────────────────────────────────
# Provider callbacks
# ──────────────────────────────────────────────

def apply_provider_callback(vp_username, status, comments=None):
    """Apply a status callback posted by the provider. Returns (handled, message).

    ACTIVATED and REACTIVATE count as an ACTIVE snapshot and SUSPENDED as a
    suspended one, then go through reconcile() like a sync. A suspension or
    unsuspension the provider started on its own (local ACTIVE or SUSPENDED)
    first steps into SUSPENDING or REACTIVATING, so every write is still a
    VALID_TRANSITIONS edge. `sql*` statuses only record the database cluster.
    """
    status = (status or "").strip()
    account = HostingAccount.query.filter_by(vp_username=vp_username).first()
    if not account:
        logger.info(f"[Hosting Callback] Unknown account {vp_username} ({status})")
        return False, "Account not found"

    if status[:3].lower() == "sql":
        account.sql_cluster = status[:32]
        db.session.commit()
        logger.info(f"[Hosting Callback] {vp_username} is on {account.sql_cluster}")
        return True, "Database cluster recorded"

    event = status.upper()
    comments = (comments or "").strip()[:500] or None

    with exclusive(account.id):
        db.session.refresh(account)
        if account.status == HostingAccount.DELETED:
            return True, "Account is deleted"
        now = datetime.now(timezone.utc)

        if event == CALLBACK_DELETE:
            _transition(account, account.status, HostingAccount.DELETED, deleted_at=now)
            return True, "Account deleted"

        if event == CALLBACK_SUSPENDED:
            if account.status == HostingAccount.ACTIVE:
                reason = (
                    account.suspend_reason
                    if account.is_admin_suspended
                    else comments or "Suspended by hosting provider"
                )
                _transition(
                    account,
                    HostingAccount.ACTIVE,
                    HostingAccount.SUSPENDING,
                    suspend_reason=reason,
                    suspended_at=now,
                )
            snapshot = [("SUSPENDED", account.domain)]
        elif event in (CALLBACK_ACTIVATED, CALLBACK_REACTIVATE):
            if event == CALLBACK_REACTIVATE and account.status == HostingAccount.SUSPENDED:
                _transition(account, HostingAccount.SUSPENDED, HostingAccount.REACTIVATING)
            snapshot = [(PROVIDER_ACTIVE, account.domain)]
        else:
            logger.info(f"[Hosting Callback] {vp_username}: {status} {comments or ''}")
            return True, "Event ignored"

        previous = account.status
        new_status, changes = reconcile(previous, snapshot, now=now)
        if new_status:
            _transition(account, previous, new_status, **changes)

    if not new_status:
        return True, "Account status unchanged"
    _notify_transition(account, previous, new_status)
    return True, _SYNC_MESSAGES[(previous, new_status)]


# ──────────────────────────────────────────────
# Administrator actions
# ──────────────────────────────────────────────

def admin_suspend_account(account, reason, admin, client=None):
    """ACTIVE -> SUSPENDING with the admin marker. Not rate limited."""
    reason = _validate_reason(reason, label="Suspend")

    with exclusive(account.id):
        db.session.refresh(account)
        if account.status != HostingAccount.ACTIVE:
            raise HostingError("Can only suspend active accounts", "not_active")

        client = client or get_reseller_client()
        _call_provider(
            "admin-suspend",
            client.suspend_account,
            account.login_username,
            f"[Admin: {admin.display_name}] {reason}",
        )

        return _transition(
            account,
            HostingAccount.ACTIVE,
            HostingAccount.SUSPENDING,
            suspend_reason=f"{HostingAccount.ADMIN_SUSPEND_PREFIX} {reason}",
            suspended_at=datetime.now(timezone.utc),
        )


def admin_unsuspend_account(account, client=None):
    """SUSPENDED -> REACTIVATING, lifting an admin suspension too."""
    with exclusive(account.id):
        db.session.refresh(account)
        if account.status != HostingAccount.SUSPENDED:
            raise HostingError("Can only unsuspend suspended accounts", "not_suspended")

        client = client or get_reseller_client()
        _call_provider("admin-unsuspend", client.unsuspend_account, account.login_username)

        return _transition(
            account,
            HostingAccount.SUSPENDED,
            HostingAccount.REACTIVATING,
            suspend_reason=None,
        )


def delete_account(account):
    """Logical delete. Frees the domain for reuse; the row stays."""
    with exclusive(account.id):
        db.session.refresh(account)
        if account.status == HostingAccount.DELETED:
            raise HostingError("Hosting account is already deleted", "already_deleted")
        return _transition(
            account,
            account.status,
            HostingAccount.DELETED,
            deleted_at=datetime.now(timezone.utc),
        )


# ──────────────────────────────────────────────
# Owner notifications (best effort)
# ──────────────────────────────────────────────

def _notify_owner(account, subject, template, **context):
    """Email the account owner. Failures are logged, never raised."""
    try:
        from hostpanel.services.email_service import send_email

        owner = account.owner
        if not owner or not owner.email:
            return
        send_email(
            to=owner.email,
            subject=subject,
            template=template,
            context={
                "name": owner.display_name,
                "domain": account.domain,
                "username": account.vp_username,
                "cpanel_url": get_hosting_config().cpanel_url,
                **context,
            },
        )
    except Exception as e:
        logger.error(f"[Hosting] Failed to send '{template}' for {account.vp_username}: {e}")


def _notify_transition(account, previous, new_status):
    if previous == HostingAccount.PENDING and new_status == HostingAccount.ACTIVE:
        _notify_owner(
            account,
            subject=f"Your hosting account for {account.domain} is active",
            template="emails/hosting_activated.html",
        )
    elif new_status == HostingAccount.SUSPENDED and not account.is_admin_suspended:
        _notify_owner(
            account,
            subject=f"Your hosting account for {account.domain} was suspended",
            template="emails/hosting_suspended.html",
            reason=account.suspend_reason or "Requested by account owner",
        )
    elif previous == HostingAccount.REACTIVATING and new_status == HostingAccount.ACTIVE:
        _notify_owner(
            account,
            subject=f"Your hosting account for {account.domain} was reactivated",
            template="emails/hosting_reactivated.html",
        )
