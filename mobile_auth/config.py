"""Configuration management for the mobile OTP authentication service."""

import re
from datetime import timedelta
from typing import Optional, Union
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$", re.ASCII)
_DURATION_UNITS = {
    "": "seconds",
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}


def parse_duration(value: Union[str, int]) -> timedelta:
    """
    Parse a compact duration such as ``7d``, ``12h``, ``30m``, ``45s`` or a
    plain number of seconds.

    Raises:
        ValueError: If the value is not a recognised positive duration
    """
    if isinstance(value, int):
        seconds = value
    else:
        match = _DURATION_PATTERN.match(value.lower())
        if not match:
            raise ValueError(f"Invalid duration: {value!r}")
        amount, unit = match.groups()
        seconds = int(timedelta(**{_DURATION_UNITS[unit]: int(amount)}).total_seconds())

    if seconds <= 0:
        raise ValueError(f"Duration must be positive, got {value!r}")
    return timedelta(seconds=seconds)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"  # Ignore extra environment variables
    )

    # Server configuration
    port: int = 8000
    host: str = "0.0.0.0"

    # Supabase configuration
    supabase_url: str = "http://localhost:54321"
    supabase_key: str = "local-service-role-key"

    # Session tokens
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    jwt_expires_in: str = "7d"

    # One-time codes
    otp_ttl_minutes: int = 15
    default_country_code: str = "+91"
    dev_mode: bool = False
    test_otp: str = "123456"

    # SMS gateway (codes are only logged as undelivered when unset)
    sms_gateway_url: Optional[str] = None
    sms_api_key: Optional[str] = None
    sms_sender_id: Optional[str] = None
    sms_timeout_seconds: float = 5.0

    # Logging configuration
    log_level: str = "INFO"

    # OpenTelemetry
    otel_enabled: bool = False
    otlp_endpoint: Optional[str] = None
    otel_console_export: bool = False

    @field_validator('supabase_url')
    @classmethod
    def validate_supabase_url(cls, v):
        if not v:
            raise ValueError('SUPABASE_URL environment variable is required')
        return v

    @field_validator('supabase_key')
    @classmethod
    def validate_supabase_key(cls, v):
        if not v:
            raise ValueError('SUPABASE_KEY environment variable is required')
        return v

    @field_validator('jwt_expires_in')
    @classmethod
    def validate_jwt_expires_in(cls, v):
        parse_duration(v)
        return v

    @field_validator('test_otp')
    @classmethod
    def validate_test_otp(cls, v):
        if len(v) != 6 or not v.isdigit():
            raise ValueError('TEST_OTP must be exactly 6 digits')
        return v

    @field_validator('default_country_code')
    @classmethod
    def validate_default_country_code(cls, v):
        if not re.fullmatch(r"\+[1-9]\d{0,3}", v, re.ASCII):
            raise ValueError('DEFAULT_COUNTRY_CODE must look like +91')
        return v

    @field_validator('otp_ttl_minutes')
    @classmethod
    def validate_otp_ttl_minutes(cls, v):
        if v <= 0:
            raise ValueError('OTP_TTL_MINUTES must be positive')
        return v

    @property
    def token_ttl(self) -> timedelta:
        """Session token validity window."""
        return parse_duration(self.jwt_expires_in)


# Global settings instance
settings = Settings()
