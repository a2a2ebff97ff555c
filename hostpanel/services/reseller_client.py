"""Reseller API client — MyOwnFreeHost (MOFH) account operations.

Two request shapes against the same host, both HTTP Basic-authenticated
with form-encoded bodies:

- JSON API  (/json-api/<endpoint>.php): createacct, suspendacct,
  unsuspendacct, passwd. Response envelope:
      {"result": [{"status": 1, "statusmsg": "...", "options": {...}}]}
  (passwd answers under "passwd" instead of "result").
- XML API   (/xml-api/<endpoint>.php): getuserdomains. Also needs the
  credentials duplicated in the body as api_user / api_key. Response is
  a bare array of [status, domain] pairs, or null.

Identifier rules (the provider is strict and fails silently otherwise):
- createacct takes our short login username as `username` and returns
  the provider-issued vp username in options.vpusername.
- suspendacct / unsuspendacct / passwd take the short login username as `user`.
- getuserdomains takes the vp username as `username`.

Errors:
- ResellerRejected:         provider answered with status != 1 (message kept verbatim)
- ResellerIntegrationError: body not parseable / not the documented shape
- ResellerUnavailable:      timeout, connection failure, HTTP 5xx
"""

import json
import logging

import requests

logger = logging.getLogger(__name__)


class ResellerError(Exception):
    """Base class for reseller API failures."""


class ResellerRejected(ResellerError):
    """Provider processed the request and said no (e.g. domain already exists)."""

    def __init__(self, message, endpoint=None):
        super().__init__(message)
        self.message = message
        self.endpoint = endpoint


class ResellerIntegrationError(ResellerError):
    """Provider response does not match its documented contract."""


class ResellerUnavailable(ResellerError):
    """Provider could not be reached; outcome unknown, safe to retry."""


class ResellerClient:
    """Authenticated client for the MOFH JSON and XML APIs."""

    def __init__(self, config, session=None):
        self.base_url = config.api_url.rstrip("/")
        self.api_username = config.api_username
        self.api_password = config.api_password
        self.timeout = config.http_timeout
        self.session = session or requests.Session()
        self.session.auth = (self.api_username or "", self.api_password or "")

    # ──────────────────────────────────────────────
    # Transport
    # ──────────────────────────────────────────────

    def _post(self, api, endpoint, data):
        """POST a form body and return the raw response text."""
        url = f"{self.base_url}/{api}/{endpoint}"
        try:
            resp = self.session.post(url, data=data, timeout=self.timeout)
        except requests.exceptions.Timeout:
            logger.warning(f"[MOFH] Timeout calling {endpoint}")
            raise ResellerUnavailable(f"Timed out calling {endpoint}")
        except requests.exceptions.RequestException as e:
            logger.warning(f"[MOFH] Request to {endpoint} failed: {e}")
            raise ResellerUnavailable(f"Could not reach hosting provider: {e}")

        if resp.status_code >= 500:
            logger.warning(f"[MOFH] {endpoint} returned HTTP {resp.status_code}")
            raise ResellerUnavailable(
                f"Hosting provider returned HTTP {resp.status_code}"
            )

        logger.debug(f"[MOFH] {endpoint} raw response: {resp.text[:500]}")
        return resp.text

    @staticmethod
    def _decode(text, endpoint):
        try:
            return json.loads(text)
        except (TypeError, ValueError):
            logger.error(f"[MOFH] Failed to parse {endpoint} response: {text[:500]!r}")
            raise ResellerIntegrationError(
                f"Invalid response from hosting service ({endpoint})"
            )

    def _json_call(self, endpoint, data, envelope="result"):
        """Call a JSON API endpoint and return its first result entry.

        Raises ResellerRejected when the entry's status is not 1.
        """
        payload = self._decode(self._post("json-api", endpoint, data), endpoint)

        entries = payload.get(envelope) if isinstance(payload, dict) else None
        if not isinstance(entries, list) or not entries or not isinstance(entries[0], dict):
            logger.error(f"[MOFH] Unexpected {endpoint} envelope: {payload!r}")
            raise ResellerIntegrationError(
                f"Unexpected response shape from hosting service ({endpoint})"
            )

        entry = entries[0]
        if str(entry.get("status")) != "1":
            message = entry.get("statusmsg") or f"Hosting provider rejected {endpoint}"
            logger.info(f"[MOFH] {endpoint} rejected: {message}")
            raise ResellerRejected(message, endpoint=endpoint)
        return entry

    # ──────────────────────────────────────────────
    # JSON API
    # ──────────────────────────────────────────────

    def create_account(self, username, password, contact_email, domain, plan):
        """Create an account. Returns the provider-issued vp username."""
        entry = self._json_call(
            "createacct.php",
            {
                "username": username,
                "password": password,
                "contactemail": contact_email,
                "domain": domain,
                "plan": plan,
            },
        )
        vp_username = (entry.get("options") or {}).get("vpusername")
        if not vp_username:
            logger.error(f"[MOFH] createacct for {domain} succeeded without vpusername: {entry!r}")
            raise ResellerIntegrationError(
                "Failed to get account username from hosting provider"
            )
        logger.info(f"[MOFH] Created account {vp_username} for {domain}")
        return vp_username

    def suspend_account(self, login_username, reason):
        entry = self._json_call(
            "suspendacct.php", {"user": login_username, "reason": reason}
        )
        logger.info(f"[MOFH] Suspend accepted for {login_username}")
        return entry.get("statusmsg", "")

    def unsuspend_account(self, login_username):
        entry = self._json_call("unsuspendacct.php", {"user": login_username})
        logger.info(f"[MOFH] Unsuspend accepted for {login_username}")
        return entry.get("statusmsg", "")

    def change_password(self, login_username, new_password):
        entry = self._json_call(
            "passwd.php",
            {"user": login_username, "pass": new_password},
            envelope="passwd",
        )
        logger.info(f"[MOFH] Password changed for {login_username}")
        return entry.get("statusmsg", "")

    # ──────────────────────────────────────────────
    # XML API
    # ──────────────────────────────────────────────

    def get_user_domains(self, vp_username):
        """Point-in-time status snapshot: list of (provider_status, domain).

        An empty list means the provider has no visible record yet.
        """
        text = self._post(
            "xml-api",
            "getuserdomains.php",
            {
                "api_user": self.api_username,
                "api_key": self.api_password,
                "username": vp_username,
            },
        )
        payload = self._decode(text, "getuserdomains.php")

        if payload is None:
            return []
        if not isinstance(payload, list):
            logger.error(f"[MOFH] Unexpected getuserdomains payload: {payload!r}")
            raise ResellerIntegrationError(
                "Unexpected response shape from hosting service (getuserdomains.php)"
            )

        snapshot = []
        for row in payload:
            if not isinstance(row, (list, tuple)) or len(row) < 2:
                raise ResellerIntegrationError(
                    "Unexpected response shape from hosting service (getuserdomains.php)"
                )
            snapshot.append((str(row[0]), str(row[1])))
        return snapshot
