"""
Tests for the PayOS client, the exhibition crawler, the SMTP sender and the S3 wrapper.
External calls are patched; nothing leaves the process.
"""

import hashlib
import hmac
import smtplib
import socket
from unittest import mock

import pytest
import requests
from botocore.exceptions import ClientError

from picx.api.errors import PaymentProviderError, StorageError, StorageFileNotFoundError
from picx.api.services.email_service import EmailService
from picx.api.services.exhibition_service import (
    HARVARD_GALLERY,
    HARVARD_SOURCE,
    ExhibitionService,
    parse_harvard_exhibition,
)
from picx.api.services.payos_client import PayOSClient
from picx.api.services.storage_service import S3StorageService, build_object_key

CHECKSUM_KEY = "test-checksum-key"


@pytest.fixture
def payos_client():
    return PayOSClient(
        client_id="client", api_key="key", checksum_key=CHECKSUM_KEY, base_url="https://payos.test/"
    )


def expected_signature(message: str) -> str:
    return hmac.new(CHECKSUM_KEY.encode(), message.encode(), hashlib.sha256).hexdigest()


class TestPayOSSignatures:
    def test_payment_request_signature(self, payos_client):
        signature = payos_client.payment_request_signature(
            amount=50000,
            cancel_url="https://picx.test/cancel",
            description="Top-up wallet #1",
            order_code=123,
            return_url="https://picx.test/ok",
        )

        assert signature == expected_signature(
            "amount=50000&cancelUrl=https://picx.test/cancel&description=Top-up wallet #1"
            "&orderCode=123&returnUrl=https://picx.test/ok"
        )

    def test_data_signature_sorts_keys_and_formats_values(self, payos_client):
        data = {"orderCode": 123, "amount": 50000, "reference": None, "paid": True}

        assert payos_client.data_signature(data) == expected_signature(
            "amount=50000&orderCode=123&paid=true&reference="
        )

    def test_verify_webhook_data(self, payos_client):
        data = {"orderCode": 7, "amount": 1000, "code": "00"}
        signature = payos_client.data_signature(data)

        assert payos_client.verify_webhook_data(data, signature)
        assert not payos_client.verify_webhook_data({**data, "amount": 2000}, signature)
        assert not payos_client.verify_webhook_data(data, "")


class TestPayOSPaymentLink:
    def call(self, payos_client):
        return payos_client.create_payment_link(
            order_code=99,
            amount=100000,
            description="Top-up wallet #3",
            items=[{"name": "Top-up wallet", "quantity": 1, "price": 100000}],
            return_url="https://picx.test/ok",
            cancel_url="https://picx.test/cancel",
        )

    def test_success_returns_data(self, payos_client):
        response = mock.Mock()
        response.json.return_value = {
            "code": "00",
            "desc": "success",
            "data": {"checkoutUrl": "https://pay.payos.vn/web/99"},
        }

        with mock.patch("picx.api.services.payos_client.requests.post", return_value=response) as post:
            data = self.call(payos_client)

        assert data["checkoutUrl"] == "https://pay.payos.vn/web/99"
        url = post.call_args[0][0]
        payload = post.call_args[1]["json"]
        headers = post.call_args[1]["headers"]
        assert url == "https://payos.test/v2/payment-requests"
        assert payload["orderCode"] == 99
        assert payload["signature"] == payos_client.payment_request_signature(
            100000, "https://picx.test/cancel", "Top-up wallet #3", 99, "https://picx.test/ok"
        )
        assert headers["x-client-id"] == "client"

    def test_rejected_code_raises(self, payos_client):
        response = mock.Mock()
        response.json.return_value = {"code": "20", "desc": "Invalid amount", "data": None}

        with mock.patch("picx.api.services.payos_client.requests.post", return_value=response):
            with pytest.raises(PaymentProviderError):
                self.call(payos_client)

    def test_transport_error_raises(self, payos_client):
        with mock.patch(
            "picx.api.services.payos_client.requests.post",
            side_effect=requests.ConnectionError("down"),
        ):
            with pytest.raises(PaymentProviderError) as exc_info:
                self.call(payos_client)

        assert exc_info.value.status_code == 502


HARVARD_RECORD = {
    "title": "Ink and Light",
    "begindate": "2024-01-10",
    "enddate": "2024-06-30",
    "venues": [{"name": "Harvard Art Museums, Level 2"}],
    "url": "https://harvardartmuseums.org/visit/exhibitions/1",
    "shortdescription": "Works on paper",
    "images": [{"baseimageurl": "https://nrs.harvard.edu/urn-3:HUAM:1"}],
}


class TestExhibitions:
    def test_parse_record(self):
        info = parse_harvard_exhibition(HARVARD_RECORD)

        assert info.title == "Ink and Light"
        assert info.date == "2024-01-10 - 2024-06-30"
        assert info.location == "Harvard Art Museums, Level 2"
        assert info.image_url == "https://nrs.harvard.edu/urn-3:HUAM:1"
        assert info.gallery_or_museum == HARVARD_GALLERY
        assert info.source_api == HARVARD_SOURCE

    def test_parse_sparse_record(self):
        info = parse_harvard_exhibition({"title": "Untitled"})

        assert info.title == "Untitled"
        assert info.date == ""
        assert info.location == ""
        assert info.image_url == ""

    def test_fetch_uses_api_key_and_size(self):
        response = mock.Mock()
        response.json.return_value = {"records": [HARVARD_RECORD, {"title": "Second"}]}
        service = ExhibitionService("secret", "https://api.harvardartmuseums.test/exhibition")

        with mock.patch(
            "picx.api.services.exhibition_service.requests.get", return_value=response
        ) as get:
            exhibitions = service.get_all_exhibitions()

        assert [e.title for e in exhibitions] == ["Ink and Light", "Second"]
        assert get.call_args[1]["params"] == {"apikey": "secret", "size": 100}

    def test_missing_key_skips_source(self):
        service = ExhibitionService(None, "https://api.harvardartmuseums.test/exhibition")

        with mock.patch("picx.api.services.exhibition_service.requests.get") as get:
            assert service.get_all_exhibitions() == []

        get.assert_not_called()

    def test_failing_source_contributes_nothing(self):
        service = ExhibitionService("secret", "https://api.harvardartmuseums.test/exhibition")

        with mock.patch(
            "picx.api.services.exhibition_service.requests.get",
            side_effect=requests.Timeout("slow"),
        ):
            assert service.get_all_exhibitions() == []

    @pytest.mark.parametrize(
        "payload",
        [
            {"records": [{"title": None, "venues": [None]}]},
            {"records": [{"title": 42}]},
            ["not", "a", "dict"],
        ],
    )
    def test_malformed_payload_contributes_nothing(self, payload):
        response = mock.Mock()
        response.json.return_value = payload
        service = ExhibitionService("secret", "https://api.harvardartmuseums.test/exhibition")

        with mock.patch(
            "picx.api.services.exhibition_service.requests.get", return_value=response
        ):
            assert service.get_all_exhibitions() == []


class TestEmailService:
    def test_unconfigured_skips(self):
        service = EmailService(host=None)

        with mock.patch("picx.api.services.email_service.smtplib.SMTP") as smtp:
            assert service.send_email("buyer@picx.vn", "Hi", "<p>Hi</p>") is False

        smtp.assert_not_called()

    def test_sends_over_starttls(self):
        service = EmailService(host="smtp.picx.vn", username="mailer", password="secret")

        with mock.patch("picx.api.services.email_service.smtplib.SMTP") as smtp:
            assert service.send_email("buyer@picx.vn", "Hi", "<p>Hi</p>") is True

        server = smtp.return_value.__enter__.return_value
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("mailer", "secret")
        server.send_message.assert_called_once()

    @pytest.mark.parametrize(
        "error",
        [smtplib.SMTPRecipientsRefused({}), ConnectionRefusedError("refused"), socket.timeout("slow")],
    )
    def test_delivery_failure_returns_false(self, error):
        service = EmailService(host="smtp.picx.vn")

        with mock.patch(
            "picx.api.services.email_service.smtplib.SMTP", side_effect=error
        ):
            assert service.send_otp_email("buyer@picx.vn", "123456", 5) is False


class TestS3Storage:
    @pytest.fixture
    def s3(self):
        service = S3StorageService(bucket_name="picx-test", region_name="ap-southeast-1")
        service.s3_client = mock.Mock()
        return service

    def test_build_object_key_keeps_extension(self):
        key = build_object_key("My Painting.PNG")
        assert key.endswith(".png")
        assert len(key) == 32 + 4

    def test_upload(self, s3):
        assert s3.upload_file(b"data", "a.png", "image/png") == "a.png"
        s3.s3_client.put_object.assert_called_once_with(
            Bucket="picx-test", Key="a.png", Body=b"data", ContentType="image/png"
        )

    def test_get_missing_key(self, s3):
        s3.s3_client.get_object.side_effect = ClientError(
            {"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject"
        )

        with pytest.raises(StorageFileNotFoundError):
            s3.get_file("missing.png")

    def test_get_other_error(self, s3):
        s3.s3_client.get_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "no"}}, "GetObject"
        )

        with pytest.raises(StorageError):
            s3.get_file("secret.png")

    def test_get_returns_body(self, s3):
        body = mock.Mock()
        body.read.return_value = b"image-bytes"
        s3.s3_client.get_object.return_value = {"Body": body}

        assert s3.get_file("a.png") == b"image-bytes"
