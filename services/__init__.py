"""Account services."""

from .notifications import MailGateway, OutboxTransport, SmtpTransport
from .passwords import PasswordHasher
from .provisioning import ProvisioningResult, UserPatch, UserProvisioningService
from .user_store import FallbackUserStore, SqlUserStore

__all__ = [
    "FallbackUserStore",
    "MailGateway",
    "OutboxTransport",
    "PasswordHasher",
    "ProvisioningResult",
    "SmtpTransport",
    "SqlUserStore",
    "UserPatch",
    "UserProvisioningService",
]
