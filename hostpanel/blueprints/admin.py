"""Admin blueprint — /api/admin/*

Cross-owner hosting management and reseller settings.
All routes protected by @admin_required decorator.

Route Map:
  GET  /api/admin/hostings                      — Search / filter / paginate
  GET  /api/admin/hostings/<vp>                 — Account detail + owner
  POST /api/admin/hostings/<vp>/suspend         — Admin suspension (owner can't lift it)
  POST /api/admin/hostings/<vp>/unsuspend       — Lift any suspension
  POST /api/admin/hostings/<vp>/delete          — Logical delete
  POST /api/admin/hostings/<vp>/sync            — Reconcile with provider now
  GET  /api/admin/settings/hosting              — Effective reseller config
  PUT  /api/admin/settings/hosting              — Update overrides + reload
"""

import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user

from hostpanel.decorators import admin_required
from hostpanel.extensions import db
from hostpanel.models.hosting import HostingAccount
from hostpanel.models.setting import Setting
from hostpanel.models.user import User
from hostpanel.services import hosting_service
from hostpanel.services.hosting_config import get_hosting_config, reload_hosting_config
from hostpanel.services.hosting_service import HostingError

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 100

MOFH_SETTING_KEYS = (
    "enabled",
    "api_username",
    "api_password",
    "default_package",
    "cpanel_url",
    "custom_nameservers",
)


@admin_bp.errorhandler(HostingError)
def handle_hosting_error(e):
    return jsonify(e.to_dict()), e.status


def _admin_dict(account):
    data = account.to_dict()
    data["deleted_at"] = account.deleted_at.isoformat() if account.deleted_at else None
    data["owner"] = account.owner.to_dict() if account.owner else None
    return data


# ══════════════════════════════════════════════
#  HOSTING ACCOUNTS
# ══════════════════════════════════════════════

@admin_bp.route("/hostings")
@admin_required
def hosting_list():
    """All accounts, newest first. ?search= matches domain, vp username or owner email."""
    page = request.args.get("page", 1, type=int)
    per_page = min(request.args.get("per_page", 20, type=int), MAX_PER_PAGE)
    search = (request.args.get("search") or "").strip()
    status = (request.args.get("status") or "").strip().upper()

    query = HostingAccount.query.join(User, HostingAccount.user_id == User.id)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            db.or_(
                HostingAccount.domain.ilike(pattern),
                HostingAccount.vp_username.ilike(pattern),
                HostingAccount.label.ilike(pattern),
                User.email.ilike(pattern),
            )
        )
    if status:
        if status not in HostingAccount.STATUSES:
            raise HostingError(f"Unknown status: {status}", "validation_error")
        query = query.filter(HostingAccount.status == status)

    pagination = query.order_by(HostingAccount.created_at.desc()).paginate(
        page=page, per_page=per_page, error_out=False
    )
    return jsonify({
        "success": True,
        "hostings": [_admin_dict(a) for a in pagination.items],
        "pagination": {
            "page": pagination.page,
            "per_page": pagination.per_page,
            "total": pagination.total,
            "pages": pagination.pages,
        },
    })


@admin_bp.route("/hostings/<vp_username>")
@admin_required
def hosting_detail(vp_username):
    account = hosting_service.get_account_by_vp_username(vp_username)
    data = _admin_dict(account)
    data["password"] = account.password
    data["deactivated_at"] = account.deactivated_at.isoformat() if account.deactivated_at else None
    return jsonify({"success": True, "hosting": data})


@admin_bp.route("/hostings/<vp_username>/suspend", methods=["POST"])
@admin_required
def hosting_suspend(vp_username):
    account = hosting_service.get_account_by_vp_username(vp_username)
    reason = (request.get_json(silent=True) or {}).get("reason")
    hosting_service.admin_suspend_account(account, reason, admin=current_user)
    logger.info(f"[Admin] {current_user.email} suspended {vp_username}")
    return jsonify({
        "success": True,
        "message": "Hosting account suspended",
        "hosting": _admin_dict(account),
    })


@admin_bp.route("/hostings/<vp_username>/unsuspend", methods=["POST"])
@admin_required
def hosting_unsuspend(vp_username):
    account = hosting_service.get_account_by_vp_username(vp_username)
    hosting_service.admin_unsuspend_account(account)
    logger.info(f"[Admin] {current_user.email} unsuspended {vp_username}")
    return jsonify({
        "success": True,
        "message": "Hosting account reactivation requested",
        "hosting": _admin_dict(account),
    })


@admin_bp.route("/hostings/<vp_username>/delete", methods=["POST"])
@admin_required
def hosting_delete(vp_username):
    account = hosting_service.get_account_by_vp_username(vp_username)
    hosting_service.delete_account(account)
    logger.info(f"[Admin] {current_user.email} deleted {vp_username}")
    return jsonify({
        "success": True,
        "message": "Hosting account deleted",
        "hosting": _admin_dict(account),
    })


@admin_bp.route("/hostings/<vp_username>/sync", methods=["POST"])
@admin_required
def hosting_sync(vp_username):
    account = hosting_service.get_account_by_vp_username(vp_username)
    result = hosting_service.sync_account(account)
    return jsonify({**result, "hosting": _admin_dict(account)})


# ══════════════════════════════════════════════
#  SETTINGS
# ══════════════════════════════════════════════

@admin_bp.route("/settings/hosting", methods=["GET"])
@admin_required
def hosting_settings():
    return jsonify({"success": True, "settings": get_hosting_config().to_public_dict()})


@admin_bp.route("/settings/hosting", methods=["PUT"])
@admin_required
def update_hosting_settings():
    """Store operator overrides and rebuild the cached config.

    Body: {"mofh_config": {...}, "allowed_domains": [{"domain", "enabled"}]}.
    An omitted or blank api_password keeps the stored one.
    """
    data = request.get_json(silent=True) or {}

    if "mofh_config" in data:
        incoming = data["mofh_config"] or {}
        if not isinstance(incoming, dict):
            raise HostingError("mofh_config must be an object", "validation_error")
        current = dict(Setting.get_value(Setting.MOFH_CONFIG) or {})
        for key in MOFH_SETTING_KEYS:
            if key not in incoming:
                continue
            if key == "api_password" and not incoming[key]:
                continue
            current[key] = incoming[key]
        Setting.set_value(Setting.MOFH_CONFIG, current)

    if "allowed_domains" in data:
        allowed = data["allowed_domains"] or []
        if not isinstance(allowed, list):
            raise HostingError("allowed_domains must be a list", "validation_error")
        cleaned = []
        for entry in allowed:
            domain = hosting_service.normalize_domain((entry or {}).get("domain"))
            if not hosting_service.is_valid_domain(domain):
                raise HostingError(f"Invalid domain: {domain or '(empty)'}", "invalid_domain")
            cleaned.append({"domain": domain, "enabled": bool(entry.get("enabled", True))})
        Setting.set_value(Setting.ALLOWED_DOMAINS, cleaned)

    db.session.commit()
    config = reload_hosting_config()
    logger.info(f"[Admin] {current_user.email} updated hosting settings")
    return jsonify({"success": True, "settings": config.to_public_dict()})
