"""Tests for provider reconciliation.

Covers:
- reconcile(): the transition table, including what it must NOT change
- sync_account(): idempotency, empty snapshots, provider failures,
  deleted accounts, owner notifications
- Full lifecycle: deactivate -> suspended -> reactivate -> active
- sync_pending_accounts(): sweep, per-account errors, dry run
- apply_provider_callback(): pushed status changes, admin reasons, sql clusters
"""

from datetime import datetime, timezone

import pytest

from hostpanel.extensions import db
from hostpanel.models.hosting import HostingAccount, HostingDeactivation
from hostpanel.services import hosting_service
from hostpanel.services.hosting_service import HostingError, reconcile
from hostpanel.services.reseller_client import ResellerIntegrationError, ResellerUnavailable

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
ACTIVE_SNAPSHOT = [("ACTIVE", "site.hostprovider.net")]
SUSPENDED_SNAPSHOT = [("x", "site.hostprovider.net")]


class TestReconcileTable:

    def test_pending_becomes_active(self):
        assert reconcile(HostingAccount.PENDING, ACTIVE_SNAPSHOT, now=NOW) == (
            HostingAccount.ACTIVE, {"activated_at": NOW}
        )

    def test_reactivating_becomes_active_and_clears_suspension(self):
        assert reconcile(HostingAccount.REACTIVATING, ACTIVE_SNAPSHOT, now=NOW) == (
            HostingAccount.ACTIVE, {"suspend_reason": None, "suspended_at": None}
        )

    @pytest.mark.parametrize("marker", ["x", "X", "SUSPENDED"])
    def test_suspending_becomes_suspended(self, marker):
        assert reconcile(HostingAccount.SUSPENDING, [(marker, "d.test")], now=NOW) == (
            HostingAccount.SUSPENDED, {}
        )

    @pytest.mark.parametrize("local,snapshot", [
        # confirmed states never move on a snapshot
        (HostingAccount.ACTIVE, SUSPENDED_SNAPSHOT),
        (HostingAccount.ACTIVE, ACTIVE_SNAPSHOT),
        (HostingAccount.SUSPENDED, ACTIVE_SNAPSHOT),
        (HostingAccount.SUSPENDED, SUSPENDED_SNAPSHOT),
        (HostingAccount.DELETED, ACTIVE_SNAPSHOT),
        # provider hasn't applied our action yet
        (HostingAccount.SUSPENDING, ACTIVE_SNAPSHOT),
        (HostingAccount.REACTIVATING, SUSPENDED_SNAPSHOT),
        (HostingAccount.PENDING, SUSPENDED_SNAPSHOT),
        # unknown provider status
        (HostingAccount.PENDING, [("PROVISIONING", "d.test")]),
    ])
    def test_no_change(self, local, snapshot):
        assert reconcile(local, snapshot, now=NOW) == (None, {})

    @pytest.mark.parametrize("status", HostingAccount.STATUSES)
    def test_empty_snapshot_never_changes(self, status):
        assert reconcile(status, [], now=NOW) == (None, {})


class TestSyncAccount:

    def test_pending_activation(self, seed_data, reseller, no_email):
        reseller.get_user_domains.return_value = [("ACTIVE", "beta.hostprovider.net")]
        account = seed_data["pending"]

        result = hosting_service.sync_account(account)

        assert result["changed"] is True
        assert result["status"] == HostingAccount.ACTIVE
        assert result["message"] == "Account synced and activated"
        assert account.status == HostingAccount.ACTIVE
        assert account.activated_at is not None
        # status query takes the vp username
        reseller.get_user_domains.assert_called_once_with("mofh_10000002")
        assert no_email.call_args.kwargs["template"] == "emails/hosting_activated.html"

    def test_idempotent(self, seed_data, reseller, no_email):
        reseller.get_user_domains.return_value = [("ACTIVE", "beta.hostprovider.net")]
        account = seed_data["pending"]

        hosting_service.sync_account(account)
        activated_at = account.activated_at
        second = hosting_service.sync_account(account)

        assert second["changed"] is False
        assert second["message"] == "Account status unchanged"
        assert account.status == HostingAccount.ACTIVE
        assert account.activated_at == activated_at
        assert no_email.call_count == 1

    def test_stale_suspended_snapshot_does_not_regress_active(self, seed_data, reseller):
        reseller.get_user_domains.return_value = [("x", "alpha.hostprovider.net")]
        account = seed_data["active"]

        result = hosting_service.sync_account(account)

        assert result["changed"] is False
        assert account.status == HostingAccount.ACTIVE

    def test_account_not_visible_yet(self, seed_data, reseller):
        reseller.get_user_domains.return_value = []

        result = hosting_service.sync_account(seed_data["pending"])

        assert result["success"] is False
        assert result["changed"] is False
        assert seed_data["pending"].status == HostingAccount.PENDING

    def test_provider_timeout_leaves_state(self, seed_data, reseller):
        reseller.get_user_domains.side_effect = ResellerUnavailable("timeout")

        with pytest.raises(HostingError) as exc:
            hosting_service.sync_account(seed_data["pending"])

        assert exc.value.code == "provider_unavailable"
        assert seed_data["pending"].status == HostingAccount.PENDING

    def test_malformed_response_leaves_state(self, seed_data, reseller):
        reseller.get_user_domains.side_effect = ResellerIntegrationError("bad shape")

        with pytest.raises(HostingError) as exc:
            hosting_service.sync_account(seed_data["pending"])

        assert exc.value.code == "provider_error"
        assert exc.value.status == 502
        assert seed_data["pending"].status == HostingAccount.PENDING

    def test_deleted_account_is_not_queried(self, seed_data, reseller):
        hosting_service.delete_account(seed_data["pending"])

        result = hosting_service.sync_account(seed_data["pending"])

        assert result["changed"] is False
        reseller.get_user_domains.assert_not_called()

    def test_admin_suspension_sends_no_owner_email(self, seed_data, reseller, no_email):
        account = seed_data["active"]
        hosting_service.admin_suspend_account(account, "Spam", admin=seed_data["admin"])
        reseller.get_user_domains.return_value = [("x", "alpha.hostprovider.net")]

        hosting_service.sync_account(account)

        assert account.status == HostingAccount.SUSPENDED
        no_email.assert_not_called()


class TestLifecycle:

    def test_deactivate_then_reactivate(self, seed_data, reseller, no_email):
        owner = seed_data["owner"]
        account = seed_data["active"]

        hosting_service.deactivate_account(owner, "mofh_10000001", "Taking a break for a while.")
        assert account.status == HostingAccount.SUSPENDING

        reseller.get_user_domains.return_value = [("x", "alpha.hostprovider.net")]
        result = hosting_service.sync_account(account)
        assert result["message"] == "Account fully suspended"
        assert account.status == HostingAccount.SUSPENDED
        assert account.suspend_reason == "Taking a break for a while."
        assert no_email.call_args.kwargs["template"] == "emails/hosting_suspended.html"

        hosting_service.reactivate_account(owner, "mofh_10000001")
        assert account.status == HostingAccount.REACTIVATING

        reseller.get_user_domains.return_value = [("ACTIVE", "alpha.hostprovider.net")]
        result = hosting_service.sync_account(account)
        assert result["message"] == "Account fully reactivated"
        assert account.status == HostingAccount.ACTIVE
        assert account.suspend_reason is None
        assert account.suspended_at is None
        # kept for the deactivation rate limit
        assert account.deactivated_at is not None
        assert no_email.call_args.kwargs["template"] == "emails/hosting_reactivated.html"

        reseller.suspend_account.assert_called_once_with("alpha", "Taking a break for a while.")
        reseller.unsuspend_account.assert_called_once_with("alpha")

    def test_email_failure_does_not_fail_transition(self, seed_data, reseller, no_email):
        no_email.side_effect = RuntimeError("smtp down")
        reseller.get_user_domains.return_value = [("ACTIVE", "beta.hostprovider.net")]

        result = hosting_service.sync_account(seed_data["pending"])

        assert result["changed"] is True
        assert seed_data["pending"].status == HostingAccount.ACTIVE


class TestSweep:

    def _transient_accounts(self, seed_data, account_factory):
        account_factory(
            seed_data["owner"], HostingAccount.SUSPENDING, "delta.freesite.dev", "mofh_d", "delta"
        )
        account_factory(
            seed_data["other"], HostingAccount.REACTIVATING, "eps.freesite.dev", "mofh_e", "eps"
        )
        db.session.commit()

    def test_sweeps_only_transient_accounts(self, seed_data, reseller, account_factory):
        self._transient_accounts(seed_data, account_factory)
        snapshots = {
            "mofh_10000002": [("ACTIVE", "beta.hostprovider.net")],
            "mofh_d": [("x", "delta.freesite.dev")],
            "mofh_e": [("x", "eps.freesite.dev")],
        }
        reseller.get_user_domains.side_effect = lambda vp: snapshots[vp]

        summary = hosting_service.sync_pending_accounts()

        assert summary == {"checked": 3, "changed": 2, "errors": 0}
        queried = sorted(c.args[0] for c in reseller.get_user_domains.call_args_list)
        assert queried == ["mofh_10000002", "mofh_d", "mofh_e"]
        statuses = {a.vp_username: a.status for a in HostingAccount.query.all()}
        assert statuses["mofh_10000002"] == HostingAccount.ACTIVE
        assert statuses["mofh_d"] == HostingAccount.SUSPENDED
        assert statuses["mofh_e"] == HostingAccount.REACTIVATING

    def test_errors_do_not_stop_the_sweep(self, seed_data, reseller, account_factory):
        self._transient_accounts(seed_data, account_factory)

        def flaky(vp):
            if vp == "mofh_10000002":
                raise ResellerUnavailable("timeout")
            return [("x", "any.test")]

        reseller.get_user_domains.side_effect = flaky

        summary = hosting_service.sync_pending_accounts()

        assert summary == {"checked": 3, "changed": 1, "errors": 1}

    def test_dry_run_calls_nothing(self, seed_data, reseller, account_factory):
        self._transient_accounts(seed_data, account_factory)

        summary = hosting_service.sync_pending_accounts(dry_run=True)

        assert summary["checked"] == 3
        reseller.get_user_domains.assert_not_called()


class TestProviderCallback:

    def test_activated_confirms_pending(self, seed_data, no_email):
        handled, message = hosting_service.apply_provider_callback("mofh_10000002", "ACTIVATED")

        assert handled is True
        assert message == "Account synced and activated"
        account = seed_data["pending"]
        assert account.status == HostingAccount.ACTIVE
        assert account.activated_at is not None
        assert no_email.call_args.kwargs["template"] == "emails/hosting_activated.html"

    def test_repeated_callback_is_idempotent(self, seed_data, no_email):
        hosting_service.apply_provider_callback("mofh_10000002", "ACTIVATED")
        handled, message = hosting_service.apply_provider_callback("mofh_10000002", "ACTIVATED")

        assert handled is True
        assert message == "Account status unchanged"
        assert no_email.call_count == 1

    def test_provider_initiated_suspension(self, seed_data, no_email):
        account = seed_data["active"]

        hosting_service.apply_provider_callback(
            "mofh_10000001", "SUSPENDED", "Terms of Service violation"
        )

        assert account.status == HostingAccount.SUSPENDED
        assert account.suspend_reason == "Terms of Service violation"
        assert account.suspended_at is not None
        # not an owner deactivation
        assert account.deactivated_at is None
        assert HostingDeactivation.query.count() == 0
        assert no_email.call_args.kwargs["context"]["reason"] == "Terms of Service violation"

    def test_suspension_confirms_owner_deactivation(self, seed_data, reseller):
        account = seed_data["active"]
        hosting_service.deactivate_account(seed_data["owner"], "mofh_10000001", "Closing down.")

        hosting_service.apply_provider_callback("mofh_10000001", "SUSPENDED", "Closing down.")

        assert account.status == HostingAccount.SUSPENDED
        assert account.suspend_reason == "Closing down."

    def test_suspension_keeps_admin_reason(self, seed_data, reseller, no_email):
        account = seed_data["active"]
        hosting_service.admin_suspend_account(account, "Phishing", admin=seed_data["admin"])

        hosting_service.apply_provider_callback("mofh_10000001", "SUSPENDED", "Suspended by reseller")

        assert account.status == HostingAccount.SUSPENDED
        assert account.suspend_reason == "[BY ADMIN] Phishing"
        assert account.is_admin_suspended
        no_email.assert_not_called()

    def test_reactivate_lifts_suspension(self, seed_data, no_email):
        account = seed_data["suspended"]

        handled, message = hosting_service.apply_provider_callback("mofh_10000003", "REACTIVATE")

        assert message == "Account fully reactivated"
        assert account.status == HostingAccount.ACTIVE
        assert account.suspend_reason is None
        assert account.suspended_at is None
        assert no_email.call_args.kwargs["template"] == "emails/hosting_reactivated.html"

    def test_activated_does_not_lift_suspension(self, seed_data):
        hosting_service.apply_provider_callback("mofh_10000003", "ACTIVATED")
        assert seed_data["suspended"].status == HostingAccount.SUSPENDED

    def test_delete(self, seed_data):
        handled, message = hosting_service.apply_provider_callback("mofh_10000003", "DELETE")

        account = seed_data["suspended"]
        assert message == "Account deleted"
        assert account.status == HostingAccount.DELETED
        assert account.deleted_at is not None

        # a late callback for a deleted account changes nothing
        hosting_service.apply_provider_callback("mofh_10000003", "REACTIVATE")
        assert account.status == HostingAccount.DELETED

    def test_sql_cluster_recorded(self, seed_data):
        handled, message = hosting_service.apply_provider_callback("mofh_10000002", "sql310")

        assert handled is True
        assert seed_data["pending"].sql_cluster == "sql310"
        assert seed_data["pending"].status == HostingAccount.PENDING

    @pytest.mark.parametrize("status", ["CLIENTSUBADD", "CLIENTDOMREM", "", "WHATEVER"])
    def test_other_events_are_ignored(self, seed_data, status):
        handled, message = hosting_service.apply_provider_callback("mofh_10000002", status)

        assert message == "Event ignored"
        assert seed_data["pending"].status == HostingAccount.PENDING

    def test_unknown_account(self, seed_data):
        assert hosting_service.apply_provider_callback("mofh_nope", "ACTIVATED") == (
            False, "Account not found"
        )

    def test_busy_account_is_rejected(self, seed_data):
        account = seed_data["pending"]
        with hosting_service.exclusive(account.id):
            with pytest.raises(HostingError) as exc:
                hosting_service.apply_provider_callback("mofh_10000002", "ACTIVATED")

        assert exc.value.code == "in_progress"
        assert account.status == HostingAccount.PENDING
