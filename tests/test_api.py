"""HTTP surface tests (routers, auth and error translation)."""
from decimal import Decimal

from models import PointsTransaction
from services.award_service import admin_award
from services.identity import CustomerIdentity
from tests.factories import auth_header, make_profile, make_reward

CUSTOMER = {"id": 7, "role": "customer"}
STAFF = {"id": 1, "role": "staff"}
ADMIN = {"id": 2, "role": "admin", "email": "ops@example.com"}


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestOrderEvents:

    def test_order_paid_is_idempotent(self, client, db):
        body = {"order_id": 70, "total": "23.50", "legacy_user_id": 7}

        first = client.post("/api/orders/paid", json=body, headers=auth_header(**STAFF))
        second = client.post("/api/orders/paid", json=body, headers=auth_header(**STAFF))

        assert first.status_code == 200
        assert first.json()["points_awarded"] == 23
        assert first.json()["bonus_points"] == 50
        assert second.json()["already_processed"] is True
        types = sorted(t for (t,) in db.query(PointsTransaction.type))
        assert types == ["earned", "first_order"]

    def test_order_paid_requires_staff(self, client):
        body = {"order_id": 70, "total": "23.50", "legacy_user_id": 7}
        response = client.post("/api/orders/paid", json=body, headers=auth_header(**CUSTOMER))
        assert response.status_code == 403

    def test_order_without_customer_key(self, client):
        body = {"order_id": 70, "total": "23.50"}
        response = client.post("/api/orders/paid", json=body, headers=auth_header(**STAFF))
        assert response.status_code == 400

    def test_refund_reverses(self, client):
        client.post(
            "/api/orders/paid",
            json={"order_id": 70, "total": "12.00", "legacy_user_id": 7},
            headers=auth_header(**STAFF),
        )
        response = client.post(
            "/api/orders/refunded",
            json={"order_id": 70, "legacy_user_id": 7},
            headers=auth_header(**STAFF),
        )
        assert response.status_code == 200
        assert response.json()["points_reversed"] == 12


class TestCustomerEvents:

    def test_signup_bonus_granted_once(self, client, db):
        body = {"legacy_user_id": 7}

        first = client.post("/api/customers/signup-bonus", json=body, headers=auth_header(**STAFF))
        second = client.post("/api/customers/signup-bonus", json=body, headers=auth_header(**STAFF))

        assert first.status_code == 200
        assert first.json()["points_awarded"] == 100
        assert first.json()["entry"]["type"] == "signup"
        assert second.json()["already_processed"] is True
        assert db.query(PointsTransaction).count() == 1

    def test_signup_bonus_requires_staff(self, client):
        response = client.post(
            "/api/customers/signup-bonus", json={"legacy_user_id": 7}, headers=auth_header(**CUSTOMER)
        )
        assert response.status_code == 403


class TestCustomerRoutes:

    def test_missing_token(self, client):
        assert client.get("/api/loyalty/balance").status_code == 401

    def test_invalid_token(self, client):
        response = client.get("/api/loyalty/balance", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 403

    def test_token_with_non_numeric_id(self, client):
        response = client.get("/api/loyalty/balance", headers=auth_header(id="abc", role="customer"))
        assert response.status_code == 403

    def test_balance_and_history(self, client, db):
        admin_award(db, CustomerIdentity(legacy_id=7), 30, "seed")

        balance = client.get("/api/loyalty/balance", headers=auth_header(**CUSTOMER))
        history = client.get("/api/loyalty/history", headers=auth_header(**CUSTOMER))

        assert balance.json()["points"] == 30
        assert balance.json()["identity_key"] == "legacy:7"
        assert history.json()["total_count"] == 1
        assert history.json()["entries"][0]["type"] == "admin_award"

    def test_linked_external_token_sees_legacy_balance(self, client, db):
        make_profile(db, legacy_user_id=7, external_user_id="abc")
        admin_award(db, CustomerIdentity(legacy_id=7, external_id="abc"), 30, "seed")

        response = client.get("/api/loyalty/balance", headers=auth_header(sub="abc"))

        assert response.json()["identity_key"] == "legacy:7"
        assert response.json()["points"] == 30

    def test_redeem_insufficient_balance(self, client, db):
        reward = make_reward(db, points_required=100)

        response = client.post(f"/api/loyalty/rewards/{reward.id}/redeem", headers=auth_header(**CUSTOMER))

        assert response.status_code == 400
        assert "Insufficient points" in response.json()["detail"]

    def test_redeem_then_apply(self, client, db):
        admin_award(db, CustomerIdentity(legacy_id=7), 120, "seed")
        reward = make_reward(db, points_required=100, min_order_amount=Decimal("15.00"))

        redeemed = client.post(f"/api/loyalty/rewards/{reward.id}/redeem", headers=auth_header(**CUSTOMER))
        assert redeemed.status_code == 200
        assert redeemed.json()["balance_after"] == 20
        code = redeemed.json()["voucher"]["voucher_code"]

        vouchers = client.get("/api/loyalty/vouchers", params={"subtotal": "20"}, headers=auth_header(**CUSTOMER))
        assert [v["voucher_code"] for v in vouchers.json()] == [code]

        applied = client.post(
            "/api/loyalty/vouchers/apply",
            json={"voucher_code": code, "order_id": 91, "subtotal": "20.00"},
            headers=auth_header(**CUSTOMER),
        )
        assert applied.status_code == 200
        assert applied.json()["status"] == "redeemed"

    def test_unknown_reward(self, client):
        response = client.post("/api/loyalty/rewards/999/redeem", headers=auth_header(**CUSTOMER))
        assert response.status_code == 404


class TestPromotions:

    def test_calendar_is_public(self, client):
        response = client.get("/api/promotions/calendar")
        assert response.status_code == 200
        assert "days" in response.json()

    def test_claim_invalid_day(self, client):
        response = client.post("/api/promotions/claim", json={"day": 40}, headers=auth_header(**CUSTOMER))
        assert response.status_code == 400


class TestAdminRoutes:

    def test_admin_only(self, client):
        response = client.post(
            "/api/admin/loyalty/reconcile", json={"dry_run": True}, headers=auth_header(**STAFF)
        )
        assert response.status_code == 403

    def test_reconcile_dry_run(self, client, db):
        admin_award(db, CustomerIdentity(legacy_id=7), 30, "seed")

        response = client.post(
            "/api/admin/loyalty/reconcile",
            json={"identity_key": "legacy:7", "dry_run": True},
            headers=auth_header(**ADMIN),
        )

        assert response.status_code == 200
        assert response.json()["identities_checked"] == 1
        assert response.json()["reports"][0]["discrepancy"] is False

    def test_reconcile_malformed_key(self, client):
        response = client.post(
            "/api/admin/loyalty/reconcile",
            json={"identity_key": "seven", "dry_run": True},
            headers=auth_header(**ADMIN),
        )
        assert response.status_code == 400

    def test_admin_award(self, client):
        response = client.post(
            "/api/admin/loyalty/award",
            json={"legacy_user_id": 7, "points": 25, "reason": "Birthday"},
            headers=auth_header(**ADMIN),
        )

        assert response.status_code == 200
        assert response.json()["points_awarded"] == 25
        assert "ops@example.com" in response.json()["entry"]["description"]

    def test_expire_and_reset(self, client):
        expired = client.post("/api/admin/loyalty/vouchers/expire", headers=auth_header(**ADMIN))
        reset = client.post(
            "/api/admin/promotions/claims/reset",
            json={"identity_key": "legacy:7", "day": 5, "year": 2026},
            headers=auth_header(**ADMIN),
        )

        assert expired.json() == {"expired": 0}
        assert reset.json() == {"reset": False}

    def test_reconcile_non_numeric_legacy_key(self, client):
        response = client.post(
            "/api/admin/loyalty/reconcile",
            json={"identity_key": "legacy:abc", "dry_run": True},
            headers=auth_header(**ADMIN),
        )
        assert response.status_code == 400

    def test_customer_ledger_view(self, client, db):
        admin_award(db, CustomerIdentity(legacy_id=7), 30, "seed")

        response = client.get("/api/admin/loyalty/customers/legacy:7", headers=auth_header(**ADMIN))

        assert response.status_code == 200
        assert response.json()["balance"]["points"] == 30
        assert response.json()["total_count"] == 1
        assert response.json()["entries"][0]["type"] == "admin_award"

    def test_customer_ledger_view_admin_only(self, client):
        response = client.get("/api/admin/loyalty/customers/legacy:7", headers=auth_header(**STAFF))
        assert response.status_code == 403

    def test_correction_deducts_points(self, client, db):
        admin_award(db, CustomerIdentity(legacy_id=7), 30, "seed")

        response = client.post(
            "/api/admin/loyalty/correct",
            json={"legacy_user_id": 7, "points": 10, "reason": "Duplicate goodwill credit"},
            headers=auth_header(**ADMIN),
        )

        assert response.status_code == 200
        assert response.json()["points_awarded"] == -10
        assert response.json()["entry"]["type"] == "admin_correction"
        view = client.get("/api/admin/loyalty/customers/legacy:7", headers=auth_header(**ADMIN))
        assert view.json()["balance"]["points"] == 20
        assert view.json()["total_count"] == 2

    def test_correction_must_be_positive(self, client):
        response = client.post(
            "/api/admin/loyalty/correct",
            json={"legacy_user_id": 7, "points": -5, "reason": "oops"},
            headers=auth_header(**ADMIN),
        )
        assert response.status_code == 422
