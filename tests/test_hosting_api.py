"""Tests for the /api/hosting blueprint and /auth.

Covers:
- Login / logout / me, JSON 401 for anonymous callers
- Owner scoping (other owners' accounts are 404)
- Error rendering: {"success": false, "error", "code", ...details}
- Each route's happy path against a mocked reseller client
- Provider callback route: form posts, acknowledgements, source allowlist
"""

from unittest.mock import patch

from hostpanel.extensions import db
from hostpanel.models.hosting import HostingAccount
from hostpanel.services import hosting_service
from hostpanel.services.reseller_client import ResellerUnavailable


class TestAuth:

    def test_login_and_me(self, client, seed_data, login):
        resp = login(seed_data["owner"])
        assert resp.get_json()["user"]["email"] == "owner@example.com"

        me = client.get("/auth/me").get_json()
        assert me["user"]["is_admin"] is False

    def test_wrong_password(self, client, seed_data):
        resp = client.post("/auth/login", json={"email": "owner@example.com", "password": "nope"})
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "invalid_credentials"

    def test_missing_fields(self, client, seed_data):
        resp = client.post("/auth/login", json={"email": "owner@example.com"})
        assert resp.status_code == 400

    def test_disabled_user(self, client, seed_data):
        seed_data["owner"].is_active = False
        db.session.commit()

        resp = client.post("/auth/login", json={"email": "owner@example.com", "password": "correct-horse-1"})
        assert resp.status_code == 403

    def test_logout(self, client, seed_data, login):
        login(seed_data["owner"])
        assert client.post("/auth/logout").status_code == 200
        assert client.get("/auth/me").status_code == 401

    def test_anonymous_gets_json_401(self, client, seed_data):
        resp = client.get("/api/hosting/")
        assert resp.status_code == 401
        assert resp.get_json() == {
            "success": False,
            "error": "Authentication required",
            "code": "unauthorized",
        }

    def test_csrf_token_endpoint(self, client):
        resp = client.get("/auth/csrf-token")
        assert resp.status_code == 200
        assert resp.get_json()["csrf_token"]


class TestReadRoutes:

    def test_list_only_own_accounts(self, client, seed_data, login):
        login(seed_data["owner"])
        data = client.get("/api/hosting/").get_json()

        assert {a["vp_username"] for a in data["accounts"]} == {"mofh_10000001", "mofh_10000002"}
        # the list never carries passwords
        assert all("password" not in a for a in data["accounts"])

    def test_stats(self, client, seed_data, login):
        login(seed_data["owner"])
        stats = client.get("/api/hosting/stats").get_json()["stats"]
        assert stats["total"] == 2
        assert stats["can_create"] is True

    def test_nameservers_is_public(self, client, seed_data):
        data = client.get("/api/hosting/nameservers").get_json()
        assert data["nameservers"][0] == "ns1.byet.org"
        assert data["allowed_domains"] == ["hostprovider.net", "freesite.dev"]

    def test_detail_includes_password_and_cpanel_url(self, client, seed_data, login):
        login(seed_data["owner"])
        data = client.get("/api/hosting/mofh_10000001").get_json()

        assert data["account"]["password"] == "Secret12345"
        assert data["account"]["login_username"] == "alpha"
        assert data["cpanel_url"] == "https://cpanel.example.test"

    def test_detail_of_other_owner_is_404(self, client, seed_data, login):
        login(seed_data["owner"])
        resp = client.get("/api/hosting/mofh_10000003")
        assert resp.status_code == 404
        assert resp.get_json()["code"] == "not_found"

    def test_cpanel_login_is_public_and_limited(self, client, seed_data):
        data = client.get("/api/hosting/mofh_10000001/cpanel-login").get_json()

        assert data["account"] == {
            "vp_username": "mofh_10000001",
            "domain": "alpha.hostprovider.net",
            "status": "ACTIVE",
        }
        assert data["cpanel_url"] == "https://cpanel.example.test"

    def test_filemanager(self, client, seed_data, login):
        login(seed_data["owner"])
        data = client.get("/api/hosting/mofh_10000001/filemanager?dir=/htdocs/blog/").get_json()
        assert data["url"].startswith("https://filemanager.ai/new3/index.php?u=mofh_10000001")
        assert data["url"].endswith("&home=%2Fhtdocs%2Fblog%2F")

    def test_filemanager_blocked_when_pending(self, client, seed_data, login):
        login(seed_data["owner"])
        resp = client.get("/api/hosting/mofh_10000002/filemanager")
        assert resp.status_code == 400
        assert resp.get_json()["code"] == "pending"


class TestChecks:

    def test_check_domain(self, client, seed_data, login):
        login(seed_data["owner"])
        resp = client.post("/api/hosting/check-domain", json={"subdomain": "alpha", "domain": "hostprovider.net"})
        assert resp.get_json()["available"] is False

    def test_check_nameservers(self, client, seed_data, login):
        login(seed_data["owner"])
        with patch("hostpanel.services.hosting_service.get_nameserver_verifier") as factory:
            factory.return_value.check_domain_delegation.return_value = {
                "valid": False,
                "current_nameservers": ["dns1.registrar.test"],
                "required_nameservers": ["ns1.byet.org"],
                "message": "Nameservers are not pointing to our servers.",
            }
            data = client.post("/api/hosting/check-nameservers", json={"domain": "example.com"}).get_json()

        assert data["success"] is True
        assert data["valid"] is False
        assert data["current_nameservers"] == ["dns1.registrar.test"]


class TestMutations:

    def test_create(self, client, seed_data, login, reseller):
        login(seed_data["owner"])
        resp = client.post(
            "/api/hosting/create",
            json={"subdomain": "shop", "domain": "freesite.dev", "label": "Shop"},
        )

        assert resp.status_code == 201
        data = resp.get_json()
        assert data["account"]["status"] == "PENDING"
        assert data["account"]["domain"] == "shop.freesite.dev"
        assert len(data["password"]) == 12

    def test_create_custom_domain_with_bad_nameservers(self, client, seed_data, login, reseller):
        login(seed_data["owner"])
        with patch("hostpanel.services.hosting_service.get_nameserver_verifier") as factory:
            factory.return_value.check_domain_delegation.return_value = {
                "valid": False,
                "current_nameservers": [],
                "required_nameservers": ["ns1.byet.org"],
                "message": "Could not resolve nameservers for this domain",
            }
            resp = client.post(
                "/api/hosting/create",
                json={"custom_domain": "mycompany.com", "is_custom_domain": True},
            )

        assert resp.status_code == 400
        body = resp.get_json()
        assert body["success"] is False
        assert body["code"] == "nameservers_invalid"
        assert body["required_nameservers"] == ["ns1.byet.org"]
        reseller.create_account.assert_not_called()

    def test_deactivate(self, client, seed_data, login, reseller):
        login(seed_data["owner"])
        resp = client.post("/api/hosting/mofh_10000001/deactivate", json={"reason": "Closing the shop."})

        assert resp.status_code == 200
        assert resp.get_json()["account"]["status"] == "SUSPENDING"

    def test_deactivate_non_english_reason(self, client, seed_data, login, reseller):
        login(seed_data["owner"])
        resp = client.post("/api/hosting/mofh_10000001/deactivate", json={"reason": "关闭网站"})

        assert resp.status_code == 400
        assert resp.get_json()["code"] == "invalid_reason"

    def test_deactivate_provider_down(self, client, seed_data, login, reseller):
        reseller.suspend_account.side_effect = ResellerUnavailable("timeout")
        login(seed_data["owner"])
        resp = client.post("/api/hosting/mofh_10000001/deactivate", json={"reason": "Bye"})

        assert resp.status_code == 503
        assert resp.get_json()["code"] == "provider_unavailable"
        assert db.session.get(HostingAccount, seed_data["active"].id).status == "ACTIVE"

    def test_reactivate(self, client, seed_data, login, reseller):
        login(seed_data["other"])
        resp = client.post("/api/hosting/mofh_10000003/reactivate")
        assert resp.get_json()["account"]["status"] == "REACTIVATING"

    def test_change_password(self, client, seed_data, login, reseller):
        login(seed_data["owner"])
        resp = client.post("/api/hosting/mofh_10000001/change-password", json={"password": "Fresh1234"})
        assert resp.status_code == 200
        reseller.change_password.assert_called_once_with("alpha", "Fresh1234")

    def test_sync(self, client, seed_data, login, reseller):
        reseller.get_user_domains.return_value = [["ACTIVE", "beta.hostprovider.net"]]
        login(seed_data["owner"])
        data = client.post("/api/hosting/mofh_10000002/sync").get_json()

        assert data["changed"] is True
        assert data["account"]["status"] == "ACTIVE"

    def test_mark_approved(self, client, seed_data, login):
        login(seed_data["owner"])
        data = client.post("/api/hosting/mofh_10000001/mark-approved").get_json()
        assert data["message"] == "Already approved"

    def test_label(self, client, seed_data, login):
        login(seed_data["owner"])
        data = client.patch("/api/hosting/mofh_10000001/label", json={"label": "Portfolio"}).get_json()
        assert data["account"]["label"] == "Portfolio"

    def test_security_headers(self, client, seed_data, login):
        login(seed_data["owner"])
        resp = client.get("/api/hosting/mofh_10000001")
        assert resp.headers["Cache-Control"] == "no-store"
        assert resp.headers["X-Content-Type-Options"] == "nosniff"


class TestProviderCallbackRoute:

    def test_form_post_activates(self, client, seed_data):
        resp = client.post(
            "/api/mofh/callback", data={"username": "mofh_10000002", "status": "ACTIVATED"}
        )

        assert resp.status_code == 200
        assert resp.get_json() == {"success": True, "message": "Account synced and activated"}
        assert db.session.get(HostingAccount, seed_data["pending"].id).status == "ACTIVE"

    def test_no_login_or_csrf_needed(self, app, client, seed_data):
        app.config["WTF_CSRF_ENABLED"] = True
        try:
            resp = client.post(
                "/api/mofh/callback",
                data={"username": "mofh_10000001", "status": "SUSPENDED", "comments": "Abuse"},
            )
        finally:
            app.config["WTF_CSRF_ENABLED"] = False

        assert resp.status_code == 200
        assert db.session.get(HostingAccount, seed_data["active"].id).status == "SUSPENDED"

    def test_missing_username_is_acknowledged(self, client, seed_data):
        resp = client.post("/api/mofh/callback", data={"status": "ACTIVATED"})
        assert resp.status_code == 200
        assert resp.get_json()["success"] is False

    def test_unknown_account_is_acknowledged(self, client, seed_data):
        resp = client.post("/api/mofh/callback", data={"username": "mofh_nope", "status": "DELETE"})
        assert resp.status_code == 200
        assert resp.get_json() == {"success": False, "message": "Account not found"}

    def test_ticket_callbacks_are_ignored(self, client, seed_data):
        resp = client.post(
            "/api/mofh/callback",
            data={"username": "mofh_10000002", "callback_type": "ticket", "status": "ACTIVATED"},
        )
        assert resp.get_json()["message"] == "Event ignored"
        assert db.session.get(HostingAccount, seed_data["pending"].id).status == "PENDING"

    def test_busy_account_asks_for_retry(self, client, seed_data):
        with hosting_service.exclusive(seed_data["pending"].id):
            resp = client.post(
                "/api/mofh/callback", data={"username": "mofh_10000002", "status": "ACTIVATED"}
            )

        assert resp.status_code == 409
        assert resp.get_json()["code"] == "in_progress"

    def test_source_allowlist(self, app, client, seed_data):
        app.config["MOFH_CALLBACK_IPS"] = ["203.0.113.7"]
        try:
            denied = client.post(
                "/api/mofh/callback", data={"username": "mofh_10000002", "status": "ACTIVATED"}
            )
            allowed = client.post(
                "/api/mofh/callback",
                data={"username": "mofh_10000002", "status": "ACTIVATED"},
                environ_base={"REMOTE_ADDR": "203.0.113.7"},
            )
        finally:
            app.config["MOFH_CALLBACK_IPS"] = []

        assert denied.status_code == 403
        assert allowed.status_code == 200
        assert db.session.get(HostingAccount, seed_data["pending"].id).status == "ACTIVE"
