"""Core types."""

from __future__ import annotations
import re
from dataclasses import dataclass, field
from enum import Enum


class SensitiveType(str, Enum):
    """Closed set of sensitive categories a rule (and its matches) can carry."""

    JWT = "JWT"
    API_KEY = "API_KEY"
    BEARER_TOKEN = "BEARER_TOKEN"
    PRIVATE_KEY = "PRIVATE_KEY"
    COOKIE = "COOKIE"
    SET_COOKIE = "SET_COOKIE"
    AUTH_HEADER = "AUTH_HEADER"
    URL_PARAM = "URL_PARAM"
    ENV_VAR = "ENV_VAR"
    DATABASE_URL = "DATABASE_URL"
    GITHUB_TOKEN = "GITHUB_TOKEN"
    PASSWORD = "PASSWORD"
    SECRET = "SECRET"
    GENERIC = "GENERIC"
    EMAIL = "EMAIL"
    PHONE = "PHONE"
    IP_ADDRESS = "IP_ADDRESS"
    MAC_ADDRESS = "MAC_ADDRESS"
    CREDIT_CARD = "CREDIT_CARD"
    SSN = "SSN"
    ID_CARD = "ID_CARD"
    GOOGLE_KEY = "GOOGLE_KEY"
    AZURE_KEY = "AZURE_KEY"
    SLACK_TOKEN = "SLACK_TOKEN"
    DISCORD_TOKEN = "DISCORD_TOKEN"
    TELEGRAM_TOKEN = "TELEGRAM_TOKEN"
    TWILIO_KEY = "TWILIO_KEY"
    SENDGRID_KEY = "SENDGRID_KEY"
    MAILGUN_KEY = "MAILGUN_KEY"
    PAYPAL_KEY = "PAYPAL_KEY"
    SQUARE_KEY = "SQUARE_KEY"
    SHOPIFY_KEY = "SHOPIFY_KEY"
    HEROKU_KEY = "HEROKU_KEY"
    VERCEL_TOKEN = "VERCEL_TOKEN"
    NETLIFY_TOKEN = "NETLIFY_TOKEN"
    DIGITALOCEAN_TOKEN = "DIGITALOCEAN_TOKEN"
    SSH_KEY = "SSH_KEY"
    GPG_KEY = "GPG_KEY"
    ENCRYPTION_KEY = "ENCRYPTION_KEY"
    HASH = "HASH"
    UUID = "UUID"

    @property
    def label(self) -> str:
        return TYPE_LABELS[self]

    @property
    def category(self) -> str:
        return TYPE_CATEGORIES[self]


T = SensitiveType

# Display labels; every member must appear here
TYPE_LABELS: dict[SensitiveType, str] = {
    T.JWT: "JWT",
    T.API_KEY: "API Key",
    T.BEARER_TOKEN: "Bearer Token",
    T.PRIVATE_KEY: "Private Key",
    T.COOKIE: "Cookie",
    T.SET_COOKIE: "Set-Cookie",
    T.AUTH_HEADER: "Auth Header",
    T.URL_PARAM: "URL Parameter",
    T.ENV_VAR: "Environment Variable",
    T.DATABASE_URL: "Database URL",
    T.GITHUB_TOKEN: "GitHub Token",
    T.PASSWORD: "Password",
    T.SECRET: "Secret",
    T.GENERIC: "Generic Token",
    T.EMAIL: "Email",
    T.PHONE: "Phone",
    T.IP_ADDRESS: "IP Address",
    T.MAC_ADDRESS: "MAC Address",
    T.CREDIT_CARD: "Credit Card",
    T.SSN: "SSN",
    T.ID_CARD: "ID Card",
    T.GOOGLE_KEY: "Google Key",
    T.AZURE_KEY: "Azure Key",
    T.SLACK_TOKEN: "Slack Token",
    T.DISCORD_TOKEN: "Discord Token",
    T.TELEGRAM_TOKEN: "Telegram Token",
    T.TWILIO_KEY: "Twilio Key",
    T.SENDGRID_KEY: "SendGrid Key",
    T.MAILGUN_KEY: "Mailgun Key",
    T.PAYPAL_KEY: "PayPal Key",
    T.SQUARE_KEY: "Square Key",
    T.SHOPIFY_KEY: "Shopify Key",
    T.HEROKU_KEY: "Heroku Key",
    T.VERCEL_TOKEN: "Vercel Token",
    T.NETLIFY_TOKEN: "Netlify Token",
    T.DIGITALOCEAN_TOKEN: "DigitalOcean Token",
    T.SSH_KEY: "SSH Key",
    T.GPG_KEY: "GPG Key",
    T.ENCRYPTION_KEY: "Encryption Key",
    T.HASH: "Hash",
    T.UUID: "UUID",
}

CATEGORIES: tuple[str, ...] = (
    "Auth & Tokens",
    "API Keys",
    "Cloud Services",
    "Social & Messaging",
    "Personal Info",
    "Network",
    "Financial",
    "Encryption",
    "Generic",
)

TYPE_CATEGORIES: dict[SensitiveType, str] = {
    T.JWT: "Auth & Tokens",
    T.BEARER_TOKEN: "Auth & Tokens",
    T.AUTH_HEADER: "Auth & Tokens",
    T.COOKIE: "Auth & Tokens",
    T.SET_COOKIE: "Auth & Tokens",
    T.API_KEY: "API Keys",
    T.GITHUB_TOKEN: "API Keys",
    T.VERCEL_TOKEN: "API Keys",
    T.NETLIFY_TOKEN: "API Keys",
    T.HEROKU_KEY: "API Keys",
    T.GOOGLE_KEY: "Cloud Services",
    T.AZURE_KEY: "Cloud Services",
    T.DIGITALOCEAN_TOKEN: "Cloud Services",
    T.TWILIO_KEY: "Cloud Services",
    T.SENDGRID_KEY: "Cloud Services",
    T.MAILGUN_KEY: "Cloud Services",
    T.SLACK_TOKEN: "Social & Messaging",
    T.DISCORD_TOKEN: "Social & Messaging",
    T.TELEGRAM_TOKEN: "Social & Messaging",
    T.EMAIL: "Personal Info",
    T.PHONE: "Personal Info",
    T.ID_CARD: "Personal Info",
    T.SSN: "Personal Info",
    T.IP_ADDRESS: "Network",
    T.MAC_ADDRESS: "Network",
    T.DATABASE_URL: "Network",
    T.URL_PARAM: "Network",
    T.CREDIT_CARD: "Financial",
    T.PAYPAL_KEY: "Financial",
    T.SQUARE_KEY: "Financial",
    T.SHOPIFY_KEY: "Financial",
    T.PRIVATE_KEY: "Encryption",
    T.SSH_KEY: "Encryption",
    T.GPG_KEY: "Encryption",
    T.ENCRYPTION_KEY: "Encryption",
    T.SECRET: "Encryption",
    T.PASSWORD: "Encryption",
    T.ENV_VAR: "Generic",
    T.GENERIC: "Generic",
    T.HASH: "Generic",
    T.UUID: "Generic",
}


@dataclass(frozen=True, slots=True)
class DetectionRule:
    """A single detection rule. Immutable once the registry is built."""
    id: str
    name: str
    type: SensitiveType
    pattern: re.Pattern
    priority: int                   # higher scans first
    default_enabled: bool = True
    description: str = ""
    capture_group: int = 0          # 0 = whole match is the secret


@dataclass(frozen=True, slots=True)
class SensitiveMatch:
    """One accepted detection, local to a single scan. Never persisted."""
    rule_id: str
    type: SensitiveType
    original_value: str
    placeholder: str
    start: int                      # half-open [start, end)
    end: int
    line_number: int                # 1-based
    context_snippet: str            # shows the placeholder, never the value


@dataclass(frozen=True, slots=True)
class PlaceholderMapping:
    """Durable placeholder → original value entry (one per occurrence)."""
    placeholder: str
    original_value: str
    type: SensitiveType
    checksum: str
    created_at: int                 # epoch milliseconds


@dataclass(slots=True)
class RedactorSession:
    """Everything needed to reverse a redaction."""
    version: str
    created_at: int                 # epoch milliseconds
    session_id: str
    mappings: list[PlaceholderMapping] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class MatchSummary:
    """Report row for one match. Carries no original value."""
    type: SensitiveType
    line_number: int
    context_snippet: str
    placeholder_preview: str


@dataclass(slots=True)
class SanitizeReport:
    total_matches: int = 0
    matches_by_type: dict[SensitiveType, int] = field(default_factory=dict)
    matches: list[MatchSummary] = field(default_factory=list)
    processing_time: float = 0.0    # milliseconds


@dataclass(slots=True)
class SanitizeResult:
    output_text: str
    report: SanitizeReport
    session: RedactorSession
    success: bool
    error: str | None = None


@dataclass(slots=True)
class RestoreReport:
    restored_count: int = 0
    unmatched_placeholders: list[str] = field(default_factory=list)
    checksum_failures: list[str] = field(default_factory=list)
    processing_time: float = 0.0    # milliseconds


@dataclass(slots=True)
class RestoreResult:
    restored_text: str
    report: RestoreReport
    success: bool
    error: str | None = None


@dataclass(frozen=True, slots=True)
class PresetConfig:
    """A named, explicit list of enabled rule ids."""
    id: str
    name: str
    enabled_rules: tuple[str, ...]
    disabled_rules: tuple[str, ...] = ()
    description: str = ""
