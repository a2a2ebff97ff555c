"""Auth blueprint — /auth/*

JSON session login for the dashboard. Accounts are provisioned by an
administrator (`flask seed-admin`) or an external identity flow; there is
no self-service registration here.

Route Map:
  GET  /auth/csrf-token  — CSRF token for the SPA (sent back as X-CSRFToken)
  POST /auth/login       — Email + password login
  POST /auth/logout      — End the session
  GET  /auth/me          — Current user
"""

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf
from werkzeug.security import check_password_hash

from hostpanel.extensions import limiter
from hostpanel.models.user import User

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


@auth_bp.route("/csrf-token")
def csrf_token():
    return jsonify({"success": True, "csrf_token": generate_csrf()})


# ──────────────────────────────────────────────
# POST /auth/login
# ──────────────────────────────────────────────

@auth_bp.route("/login", methods=["POST"])
@limiter.limit("10 per minute")
def login():
    data = request.get_json(silent=True) or request.form.to_dict()
    email = (data.get("email") or "").lower().strip()
    password = data.get("password") or ""

    if not email or not password:
        return jsonify({
            "success": False,
            "error": "Email and password are required",
            "code": "validation_error",
        }), 400

    user = User.query.filter_by(email=email).first()

    if user is None or not check_password_hash(user.password_hash, password):
        return jsonify({
            "success": False,
            "error": "Invalid email or password",
            "code": "invalid_credentials",
        }), 401

    if not user.is_active:
        return jsonify({
            "success": False,
            "error": "Your account has been deactivated",
            "code": "account_disabled",
        }), 403

    login_user(user, remember=bool(data.get("remember")))
    return jsonify({"success": True, "user": user.to_dict()})


# ──────────────────────────────────────────────
# POST /auth/logout
# ──────────────────────────────────────────────

@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"success": True})


@auth_bp.route("/me")
@login_required
def me():
    return jsonify({"success": True, "user": current_user.to_dict()})
