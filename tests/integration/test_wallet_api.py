"""
Integration tests for the wallet, PayOS top-ups and withdrawals.
"""

from picx.db.models import Notification, Wallet, WalletTransaction
from conftest import auth_headers, fund_wallet


def balance_of(db, user):
    db.expire_all()
    return db.query(Wallet).filter(Wallet.user_id == user.user_id).one().balance


def start_deposit(client, user, amount=200):
    return client.post("/api/wallet/deposit", json={"amount": amount}, headers=auth_headers(user))


def webhook(payos, order_code, code="00", data_code="00", amount=200000, signature=None):
    data = {
        "orderCode": order_code,
        "amount": amount,
        "description": "Top-up wallet",
        "code": data_code,
        "desc": "success",
        "reference": "FT123",
    }
    return {
        "code": code,
        "desc": "success",
        "success": code == "00",
        "data": data,
        "signature": signature or payos.data_signature(data),
    }


def webhook_without_data_code(payos, order_code):
    body = webhook(payos, order_code)
    del body["data"]["code"]
    body["signature"] = payos.data_signature(body["data"])
    return body


class TestWallet:
    def test_me_lists_transactions_newest_first(self, client, db, buyer):
        fund_wallet(db, buyer, 100)
        fund_wallet(db, buyer, 25)

        response = client.get("/api/wallet/me", headers=auth_headers(buyer))

        assert response.status_code == 200
        body = response.json()
        assert body["balance"] == 125.0
        assert [tx["amount"] for tx in body["transactions"]] == [25.0, 100.0]

    def test_requires_login(self, client):
        assert client.get("/api/wallet/me").status_code == 401


class TestDeposit:
    def test_creates_pending_transaction(self, client, db, buyer, payos):
        response = start_deposit(client, buyer)

        assert response.status_code == 200
        body = response.json()
        assert body["payment_url"] == f"https://pay.payos.test/web/{body['order_code']}"
        assert payos.links[-1]["amount"] == 200000
        assert payos.links[-1]["order_code"] == body["order_code"]

        tx = db.query(WalletTransaction).filter(WalletTransaction.transaction_id == body["transaction_id"]).one()
        assert tx.status == "pending"
        assert tx.external_transaction_id == str(body["order_code"])
        assert balance_of(db, buyer) == 0

    def test_amount_must_be_positive(self, client, buyer):
        assert start_deposit(client, buyer, amount=0).status_code == 422

    def test_successful_callback_credits_wallet(self, client, db, buyer, payos):
        order_code = start_deposit(client, buyer).json()["order_code"]

        response = client.post("/api/wallet/deposit-callback", json=webhook(payos, order_code))

        assert response.status_code == 200
        assert response.json()["message"] == "Deposit completed"
        assert balance_of(db, buyer) == 200
        notes = db.query(Notification).filter(Notification.user_id == buyer.user_id).all()
        assert [n.title for n in notes] == ["Deposit Successful"]

    def test_replayed_callback_is_ignored(self, client, db, buyer, payos):
        order_code = start_deposit(client, buyer).json()["order_code"]
        client.post("/api/wallet/deposit-callback", json=webhook(payos, order_code))

        response = client.post("/api/wallet/deposit-callback", json=webhook(payos, order_code))

        assert response.status_code == 200
        assert response.json()["message"] == "Deposit already processed"
        assert balance_of(db, buyer) == 200

    def test_failed_payment(self, client, db, buyer, payos):
        order_code = start_deposit(client, buyer).json()["order_code"]

        response = client.post(
            "/api/wallet/deposit-callback", json=webhook(payos, order_code, data_code="01")
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Deposit marked as failed"
        assert balance_of(db, buyer) == 0
        assert db.query(WalletTransaction).filter(WalletTransaction.status == "failed").count() == 1

    def test_missing_data_code_is_not_paid(self, client, db, buyer, payos):
        order_code = start_deposit(client, buyer).json()["order_code"]

        response = client.post(
            "/api/wallet/deposit-callback", json=webhook_without_data_code(payos, order_code)
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Deposit marked as failed"
        assert balance_of(db, buyer) == 0

    def test_bad_signature(self, client, db, buyer, payos):
        order_code = start_deposit(client, buyer).json()["order_code"]

        response = client.post(
            "/api/wallet/deposit-callback", json=webhook(payos, order_code, signature="0" * 64)
        )

        assert response.status_code == 400
        assert balance_of(db, buyer) == 0

    def test_unknown_order_code(self, client, payos):
        response = client.post("/api/wallet/deposit-callback", json=webhook(payos, 123456789))
        assert response.status_code == 404


class TestWithdrawals:
    def request_withdrawal(self, client, artist, amount=100):
        return client.post("/api/withdraw-request", json={"amount": amount}, headers=auth_headers(artist))

    def test_request_holds_funds(self, client, db, artist):
        fund_wallet(db, artist, 300)

        response = self.request_withdrawal(client, artist)

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "pending"
        assert body["amount_requested"] == 100.0
        assert body["amount_received"] == 90.0
        assert balance_of(db, artist) == 200

        mine = client.get("/api/withdraw-request/my-requests", headers=auth_headers(artist)).json()
        assert [r["request_id"] for r in mine] == [body["request_id"]]

    def test_insufficient_balance(self, client, db, artist):
        fund_wallet(db, artist, 50)

        response = self.request_withdrawal(client, artist)

        assert response.status_code == 400
        assert balance_of(db, artist) == 50

    def test_buyers_cannot_withdraw(self, client, db, buyer):
        fund_wallet(db, buyer, 300)
        assert self.request_withdrawal(client, buyer).status_code == 403

    def test_approve(self, client, db, artist, admin):
        fund_wallet(db, artist, 300)
        request_id = self.request_withdrawal(client, artist).json()["request_id"]
        headers = auth_headers(admin)

        pending = client.get("/api/admin/withdrawal-requests", headers=headers).json()
        assert [r["request_id"] for r in pending] == [request_id]

        response = client.post(f"/api/admin/withdrawal-requests/{request_id}/approve", headers=headers)

        assert response.status_code == 200
        assert response.json()["status"] == "approved"
        assert response.json()["processed_at"] is not None
        assert balance_of(db, artist) == 200
        assert client.get("/api/admin/withdrawal-requests", headers=headers).json() == []

        notes = db.query(Notification).filter(Notification.user_id == artist.user_id).all()
        assert [n.title for n in notes] == ["Withdrawal Approved"]

    def test_reject_refunds(self, client, db, artist, admin):
        fund_wallet(db, artist, 300)
        request_id = self.request_withdrawal(client, artist).json()["request_id"]

        response = client.post(
            f"/api/admin/withdrawal-requests/{request_id}/reject", headers=auth_headers(admin)
        )

        assert response.status_code == 200
        assert response.json()["status"] == "rejected"
        assert balance_of(db, artist) == 300
        refunds = db.query(WalletTransaction).filter(WalletTransaction.transaction_type == "refund").all()
        assert len(refunds) == 1

    def test_decided_request_cannot_be_decided_again(self, client, db, artist, admin):
        fund_wallet(db, artist, 300)
        request_id = self.request_withdrawal(client, artist).json()["request_id"]
        headers = auth_headers(admin)
        client.post(f"/api/admin/withdrawal-requests/{request_id}/approve", headers=headers)

        response = client.post(f"/api/admin/withdrawal-requests/{request_id}/reject", headers=headers)

        assert response.status_code == 404
        assert balance_of(db, artist) == 200

    def test_admin_only(self, client, artist):
        assert client.get("/api/admin/withdrawal-requests", headers=auth_headers(artist)).status_code == 403
