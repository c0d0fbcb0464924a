"""
Integration tests for registration, login, passwords and email verification.
"""

from datetime import timedelta

from picx.db.models import ArtistProfile, User, Wallet, utcnow
from conftest import TEST_PASSWORD, auth_headers


def register(client, email="new@picx.vn", role="buyer", password="Secret123"):
    return client.post(
        "/api/auth/register",
        json={"email": email, "name": "New User", "password": password, "role": role},
    )


class TestRegister:
    def test_buyer_gets_wallet(self, client, db):
        response = register(client, email="New@PicX.vn")

        assert response.status_code == 201
        body = response.json()
        assert body["email"] == "new@picx.vn"
        assert body["role"] == "buyer"
        assert body["is_active"] is True
        assert body["email_verified"] is False
        assert db.query(Wallet).filter(Wallet.user_id == body["user_id"]).count() == 1

    def test_artist_gets_profile(self, client, db):
        response = register(client, role="artist")

        assert response.status_code == 201
        user_id = response.json()["user_id"]
        assert db.query(ArtistProfile).filter(ArtistProfile.artist_id == user_id).count() == 1

    def test_duplicate_email(self, client, buyer):
        response = register(client, email=buyer.email.upper())

        assert response.status_code == 400
        assert response.json()["detail"] == "Email address already registered"

    def test_admin_role_not_allowed(self, client):
        assert register(client, role="admin").status_code == 422

    def test_weak_password(self, client):
        response = register(client, password="alllowercase1")

        assert response.status_code == 422
        assert response.json()["error"]["type"] == "ValidationError"


class TestLogin:
    def test_success_sets_cookie(self, client, buyer):
        response = client.post(
            "/api/auth/login", json={"email": buyer.email, "password": TEST_PASSWORD}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["user"]["id"] == buyer.user_id
        assert body["user"]["role"] == "buyer"
        assert body["expires_in"] == 24 * 3600
        assert "access_token" in response.cookies

    def test_cookie_authenticates_follow_up_requests(self, client, buyer):
        client.post("/api/auth/login", json={"email": buyer.email, "password": TEST_PASSWORD})

        response = client.get("/api/auth/me")

        assert response.status_code == 200
        assert response.json()["email"] == buyer.email

    def test_wrong_password(self, client, buyer):
        response = client.post(
            "/api/auth/login", json={"email": buyer.email, "password": "Wrong1234"}
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Email or password is incorrect"

    def test_unknown_email(self, client):
        response = client.post(
            "/api/auth/login", json={"email": "ghost@picx.vn", "password": TEST_PASSWORD}
        )
        assert response.status_code == 401

    def test_disabled_account(self, client, db, buyer):
        buyer.is_active = False
        db.commit()

        response = client.post(
            "/api/auth/login", json={"email": buyer.email, "password": TEST_PASSWORD}
        )

        assert response.status_code == 403

    def test_logout_clears_cookie(self, client, buyer):
        client.post("/api/auth/login", json={"email": buyer.email, "password": TEST_PASSWORD})

        response = client.post("/api/auth/logout")

        assert response.status_code == 200
        assert client.get("/api/auth/me").status_code == 401


class TestMe:
    def test_requires_token(self, client):
        assert client.get("/api/auth/me").status_code == 401

    def test_invalid_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer nonsense"})
        assert response.status_code == 401

    def test_disabled_user_token(self, client, db, buyer):
        headers = auth_headers(buyer)
        buyer.is_active = False
        db.commit()

        assert client.get("/api/auth/me", headers=headers).status_code == 403


class TestPasswords:
    def test_change_password(self, client, buyer):
        response = client.post(
            "/api/auth/change-password",
            json={"current_password": TEST_PASSWORD, "new_password": "Better456"},
            headers=auth_headers(buyer),
        )

        assert response.status_code == 200
        login = client.post("/api/auth/login", json={"email": buyer.email, "password": "Better456"})
        assert login.status_code == 200

    def test_change_password_wrong_current(self, client, buyer):
        response = client.post(
            "/api/auth/change-password",
            json={"current_password": "Nope12345", "new_password": "Better456"},
            headers=auth_headers(buyer),
        )
        assert response.status_code == 400

    def test_change_password_same_as_old(self, client, buyer):
        response = client.post(
            "/api/auth/change-password",
            json={"current_password": TEST_PASSWORD, "new_password": TEST_PASSWORD},
            headers=auth_headers(buyer),
        )
        assert response.status_code == 400

    def test_forgot_and_reset(self, client, db, buyer, email_service):
        response = client.post("/api/auth/forgot-password", json={"email": buyer.email})
        assert response.status_code == 200
        assert email_service.sent[-1]["to"] == buyer.email

        db.expire_all()
        code = db.query(User).filter(User.user_id == buyer.user_id).one().reset_code
        assert code in email_service.sent[-1]["html"]

        response = client.post(
            "/api/auth/reset-password",
            json={"email": buyer.email, "code": code, "new_password": "Reset7890"},
        )
        assert response.status_code == 200
        login = client.post("/api/auth/login", json={"email": buyer.email, "password": "Reset7890"})
        assert login.status_code == 200

        # Codes are single use
        again = client.post(
            "/api/auth/reset-password",
            json={"email": buyer.email, "code": code, "new_password": "Other7890"},
        )
        assert again.status_code == 400

    def test_forgot_password_unknown_email_looks_the_same(self, client, email_service):
        response = client.post("/api/auth/forgot-password", json={"email": "ghost@picx.vn"})

        assert response.status_code == 200
        assert email_service.sent == []

    def test_forgot_password_mail_failure_looks_the_same(self, client, db, buyer, email_service):
        email_service.fail = True

        response = client.post("/api/auth/forgot-password", json={"email": buyer.email})
        unknown = client.post("/api/auth/forgot-password", json={"email": "ghost@picx.vn"})

        assert response.status_code == 200
        assert response.json() == unknown.json()
        db.expire_all()
        user = db.query(User).filter(User.user_id == buyer.user_id).one()
        assert user.reset_code is None
        assert user.reset_code_expiry is None

    def test_expired_reset_code(self, client, db, buyer):
        buyer.reset_code = "123456"
        buyer.reset_code_expiry = utcnow() - timedelta(minutes=1)
        db.commit()

        response = client.post(
            "/api/auth/reset-password",
            json={"email": buyer.email, "code": "123456", "new_password": "Reset7890"},
        )
        assert response.status_code == 400


class TestEmailVerification:
    def test_send_and_verify_otp(self, client, db, buyer, email_service):
        buyer.email_verified = False
        db.commit()

        response = client.post("/api/email/send-otp", json={"email": buyer.email})
        assert response.status_code == 200

        db.expire_all()
        otp = db.query(User).filter(User.user_id == buyer.user_id).one().email_otp
        assert otp in email_service.sent[-1]["html"]

        response = client.post("/api/email/verify-otp", json={"email": buyer.email, "otp": otp})
        assert response.status_code == 200

        db.expire_all()
        user = db.query(User).filter(User.user_id == buyer.user_id).one()
        assert user.email_verified is True
        assert user.email_otp is None

    def test_resend_while_code_is_valid(self, client, buyer):
        assert client.post("/api/email/send-otp", json={"email": buyer.email}).status_code == 200

        response = client.post("/api/email/send-otp", json={"email": buyer.email})

        assert response.status_code == 400
        assert response.json()["error"]["type"] == "InvalidRequestError"

    def test_failed_send_allows_retry(self, client, db, buyer, email_service):
        email_service.fail = True

        response = client.post("/api/email/send-otp", json={"email": buyer.email})

        assert response.status_code == 502
        assert response.json()["error"]["type"] == "EmailDeliveryError"
        db.expire_all()
        assert db.query(User).filter(User.user_id == buyer.user_id).one().email_otp is None

        email_service.fail = False
        retry = client.post("/api/email/send-otp", json={"email": buyer.email})

        assert retry.status_code == 200
        assert email_service.sent[-1]["to"] == buyer.email

    def test_unknown_user(self, client):
        response = client.post("/api/email/send-otp", json={"email": "ghost@picx.vn"})
        assert response.status_code == 404

    def test_wrong_otp(self, client, db, buyer):
        buyer.email_otp = "654321"
        buyer.email_otp_expiry = utcnow() + timedelta(minutes=5)
        db.commit()

        response = client.post("/api/email/verify-otp", json={"email": buyer.email, "otp": "000000"})
        assert response.status_code == 400
