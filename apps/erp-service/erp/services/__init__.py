"""Business logic services package with public service helpers."""

from .notification_service import NotificationService, get_notification_service
from .transactional_email_service import (
    TransactionalEmailService,
    get_transactional_email_service,
    reset_transactional_email_service_for_tests,
)
from .storage_service import (
    StorageService,
    get_storage_service,
    reset_storage_service_for_tests,
)

__all__ = [
    "NotificationService",
    "get_notification_service",
    "TransactionalEmailService",
    "get_transactional_email_service",
    "reset_transactional_email_service_for_tests",
    "StorageService",
    "get_storage_service",
    "reset_storage_service_for_tests",
]
