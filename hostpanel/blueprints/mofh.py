"""MOFH blueprint — /api/mofh/callback

Receives account status callbacks from the reseller panel. CSRF-exempt
(see create_app()); the panel posts multipart form data without a session.
If MOFH_CALLBACK_IPS is set, only those source addresses are accepted.
"""

import logging

from flask import Blueprint, current_app, jsonify, request
from flask_limiter.util import get_remote_address

from hostpanel.services.hosting_service import HostingError, apply_provider_callback

logger = logging.getLogger(__name__)

mofh_bp = Blueprint("mofh", __name__, url_prefix="/api/mofh")


@mofh_bp.route("/callback", methods=["POST"])
def callback():
    """Apply one provider callback.

    Unknown accounts and unhandled events are acknowledged with 200 so the
    panel does not keep resending them. A callback that loses a race with
    another operation on the same account answers 409 so it can be retried.
    """
    allowed = current_app.config.get("MOFH_CALLBACK_IPS") or []
    remote = get_remote_address()
    if allowed and remote not in allowed:
        logger.warning(f"[MOFH Callback] Rejected callback from {remote}")
        return jsonify({"success": False, "error": "Forbidden", "code": "forbidden"}), 403

    data = request.form or request.get_json(silent=True) or request.args
    username = (data.get("username") or "").strip()
    if not username:
        return jsonify({"success": False, "message": "No username provided"}), 200

    if data.get("callback_type") == "ticket":
        logger.info(f"[MOFH Callback] Ticket callback for {username} ignored")
        return jsonify({"success": True, "message": "Event ignored"}), 200

    try:
        handled, message = apply_provider_callback(
            username, data.get("status"), data.get("comments")
        )
    except HostingError as e:
        logger.warning(f"[MOFH Callback] {username}: {e.code} {e.message}")
        return jsonify(e.to_dict()), e.status

    return jsonify({"success": handled, "message": message}), 200
