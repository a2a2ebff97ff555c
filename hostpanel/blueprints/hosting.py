"""Hosting blueprint — /api/hosting/*

Owner-facing JSON API over hosting_service. Every route except the two
public lookups requires login and only ever sees the caller's accounts.

Route Map:
  GET   /api/hosting/                           — List my accounts
  GET   /api/hosting/stats                      — Counts + remaining quota
  GET   /api/hosting/nameservers                — Required nameservers (public)
  POST  /api/hosting/check-nameservers          — Verify a domain's delegation
  POST  /api/hosting/check-domain               — Subdomain availability
  POST  /api/hosting/create                     — Provision a new account
  GET   /api/hosting/<vp>                       — Account detail (with password)
  PATCH /api/hosting/<vp>/label                 — Rename
  POST  /api/hosting/<vp>/change-password       — New control panel password
  POST  /api/hosting/<vp>/deactivate            — ACTIVE -> SUSPENDING
  POST  /api/hosting/<vp>/reactivate            — SUSPENDED -> REACTIVATING
  POST  /api/hosting/<vp>/sync                  — Reconcile with provider now
  POST  /api/hosting/<vp>/mark-approved         — Control panel opened once
  GET   /api/hosting/<vp>/cpanel-login          — Login page lookup (public)
  GET   /api/hosting/<vp>/filemanager           — File Manager deep link
"""

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from hostpanel.extensions import limiter
from hostpanel.services import hosting_service
from hostpanel.services.hosting_config import get_hosting_config
from hostpanel.services.hosting_service import HostingError

hosting_bp = Blueprint("hosting", __name__, url_prefix="/api/hosting")


@hosting_bp.errorhandler(HostingError)
def handle_hosting_error(e):
    return jsonify(e.to_dict()), e.status


def _json_body():
    return request.get_json(silent=True) or {}


# ──────────────────────────────────────────────
# Collection routes
# ──────────────────────────────────────────────

@hosting_bp.route("/", methods=["GET"])
@login_required
def list_accounts():
    accounts = hosting_service.list_accounts(current_user.id)
    return jsonify({"success": True, "accounts": [a.to_dict() for a in accounts]})


@hosting_bp.route("/stats", methods=["GET"])
@login_required
def stats():
    return jsonify({"success": True, "stats": hosting_service.account_stats(current_user.id)})


@hosting_bp.route("/nameservers", methods=["GET"])
def nameservers():
    """Public: shown on the custom domain setup page before login."""
    config = get_hosting_config()
    return jsonify({
        "success": True,
        "nameservers": config.required_nameservers,
        "allowed_domains": config.allowed_domains,
    })


@hosting_bp.route("/check-nameservers", methods=["POST"])
@login_required
@limiter.limit("20 per minute")
def check_nameservers():
    result = hosting_service.check_nameservers(_json_body().get("domain"))
    return jsonify({"success": True, **result})


@hosting_bp.route("/check-domain", methods=["POST"])
@login_required
def check_domain():
    data = _json_body()
    result = hosting_service.check_domain_availability(
        data.get("subdomain"), data.get("domain")
    )
    return jsonify({"success": True, **result})


@hosting_bp.route("/create", methods=["POST"])
@login_required
@limiter.limit("5 per minute")
def create():
    data = _json_body()
    account, password = hosting_service.create_account(
        current_user,
        subdomain=data.get("subdomain"),
        base_domain=data.get("domain"),
        custom_domain=data.get("custom_domain"),
        is_custom_domain=bool(data.get("is_custom_domain")),
        label=data.get("label"),
    )
    return jsonify({
        "success": True,
        "message": "Hosting account created successfully",
        "account": account.to_dict(),
        "password": password,
    }), 201


# ──────────────────────────────────────────────
# Single-account routes
# ──────────────────────────────────────────────

@hosting_bp.route("/<vp_username>", methods=["GET"])
@login_required
def detail(vp_username):
    account = hosting_service.get_account(current_user.id, vp_username)
    return jsonify({
        "success": True,
        "account": account.to_dict(include_password=True),
        "cpanel_url": get_hosting_config().cpanel_url,
    })


@hosting_bp.route("/<vp_username>/label", methods=["PATCH"])
@login_required
def update_label(vp_username):
    account = hosting_service.update_label(
        current_user, vp_username, _json_body().get("label")
    )
    return jsonify({"success": True, "account": account.to_dict()})


@hosting_bp.route("/<vp_username>/change-password", methods=["POST"])
@login_required
@limiter.limit("5 per minute")
def change_password(vp_username):
    hosting_service.change_password(
        current_user, vp_username, _json_body().get("password")
    )
    return jsonify({"success": True, "message": "Password changed successfully"})


@hosting_bp.route("/<vp_username>/deactivate", methods=["POST"])
@login_required
def deactivate(vp_username):
    account = hosting_service.deactivate_account(
        current_user, vp_username, _json_body().get("reason")
    )
    return jsonify({
        "success": True,
        "message": "Deactivation requested. The account will be suspended shortly.",
        "account": account.to_dict(),
    })


@hosting_bp.route("/<vp_username>/reactivate", methods=["POST"])
@login_required
def reactivate(vp_username):
    account = hosting_service.reactivate_account(current_user, vp_username)
    return jsonify({
        "success": True,
        "message": "Reactivation requested. The account will be back online shortly.",
        "account": account.to_dict(),
    })


@hosting_bp.route("/<vp_username>/sync", methods=["POST"])
@login_required
@limiter.limit("30 per minute")
def sync(vp_username):
    account = hosting_service.get_account(current_user.id, vp_username)
    result = hosting_service.sync_account(account)
    return jsonify({**result, "account": account.to_dict()})


@hosting_bp.route("/<vp_username>/mark-approved", methods=["POST"])
@login_required
def mark_approved(vp_username):
    account, changed = hosting_service.mark_cpanel_approved(current_user, vp_username)
    return jsonify({
        "success": True,
        "message": "cPanel approved" if changed else "Already approved",
        "account": account.to_dict(),
    })


@hosting_bp.route("/<vp_username>/cpanel-login", methods=["GET"])
@limiter.limit("30 per minute")
def cpanel_login(vp_username):
    """Public: the control panel redirect page only needs where to send the user."""
    account = hosting_service.get_account_by_vp_username(vp_username)
    return jsonify({
        "success": True,
        "account": {
            "vp_username": account.vp_username,
            "domain": account.domain,
            "status": account.status,
        },
        "cpanel_url": get_hosting_config().cpanel_url,
    })


@hosting_bp.route("/<vp_username>/filemanager", methods=["GET"])
@login_required
def filemanager(vp_username):
    link = hosting_service.filemanager_link(
        current_user.id, vp_username, request.args.get("dir", "/htdocs/")
    )
    return jsonify({"success": True, "url": link})
