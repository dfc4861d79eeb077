"""Client modules for external service integrations."""

from mobile_auth.clients.supabase_client import (
    SupabaseClient,
    UserRepository,
    OtpRepository,
    DatabaseManager
)

from mobile_auth.clients.sms_client import (
    SmsSender,
    UnconfiguredSmsSender,
    DevModeSmsSender,
    HttpSmsGateway
)

__all__ = [
    "SupabaseClient",
    "UserRepository",
    "OtpRepository",
    "DatabaseManager",
    "SmsSender",
    "UnconfiguredSmsSender",
    "DevModeSmsSender",
    "HttpSmsGateway"
]
