"""
API Services
Integrations and business logic used by the routers.
"""

from .certificate_service import CertificateService, get_certificate_service
from .email_service import EmailService, get_email_service
from .exhibition_service import ExhibitionService, get_exhibition_service
from .hub import ConnectionHub, get_chat_hub, get_notification_hub
from .payos_client import PayOSClient, get_payos_client
from .storage_service import S3StorageService, get_storage_service
from .watermark_service import WatermarkService, get_watermark_service

__all__ = [
    "CertificateService",
    "get_certificate_service",
    "EmailService",
    "get_email_service",
    "ExhibitionService",
    "get_exhibition_service",
    "ConnectionHub",
    "get_chat_hub",
    "get_notification_hub",
    "PayOSClient",
    "get_payos_client",
    "S3StorageService",
    "get_storage_service",
    "WatermarkService",
    "get_watermark_service",
]
