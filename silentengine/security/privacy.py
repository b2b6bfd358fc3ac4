# -----------------------------------------------------------------------------
# silentengine/security/privacy.py — Sanitize prompts/responses before they are logged
# -----------------------------------------------------------------------------
# Precedence: full content (development only) > hash prompts > redact PII > truncate.
# Redaction applies every pattern in order, so a later pattern sees the output
# of the earlier ones. Patterns match ASCII digits and word characters only.
# -----------------------------------------------------------------------------

import hashlib
import re
from datetime import datetime, timedelta, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict

from silentengine.core.config import Settings

ContentType = Literal["prompt", "response"]

TRUNCATE_THRESHOLD = 200
TRUNCATE_KEEP = 100
HASH_PREFIX = "hash_"
HASH_LENGTH = 16

PII_PATTERNS: list[tuple[str, re.Pattern]] = [
    ("EMAIL", re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b", re.ASCII)),
    ("PHONE", re.compile(r"\b(\+\d{1,2}\s?)?\(?\d{3}\)?[\s.-]?\d{3}[\s.-]?\d{4}\b", re.ASCII)),
    ("SSN", re.compile(r"\b\d{3}-\d{2}-\d{4}\b", re.ASCII)),
    ("CREDITCARD", re.compile(r"\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}\b", re.ASCII)),
    ("IPADDRESS", re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}\b", re.ASCII)),
]


class PrivacyConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    log_full_content: bool = False
    redact_pii: bool = True
    hash_prompts: bool = False
    retention_days: int = 90

    @classmethod
    def from_settings(cls, settings: Settings) -> "PrivacyConfig":
        return cls(
            log_full_content=settings.log_full_content,
            redact_pii=settings.redact_pii,
            hash_prompts=settings.hash_prompts,
            retention_days=settings.log_retention_days,
        )


class PrivacyFilter:
    def __init__(self, config: PrivacyConfig, environment: str = "production") -> None:
        self.config = config
        self.environment = environment

    def sanitize(self, content: str, content_type: ContentType) -> str:
        if self.environment == "development" and self.config.log_full_content:
            return content
        if self.config.hash_prompts and content_type == "prompt":
            return hash_content(content)
        if self.config.redact_pii:
            return redact_pii(content)
        return truncate(content)

    def should_retain(self, log_date: datetime, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now - log_date < timedelta(days=self.config.retention_days)


def hash_content(content: str) -> str:
    digest = hashlib.sha256(content.encode("utf-8")).hexdigest()
    return f"{HASH_PREFIX}{digest[:HASH_LENGTH]}"


def redact_pii(content: str) -> str:
    sanitized = content
    for tag, pattern in PII_PATTERNS:
        sanitized = pattern.sub(f"[REDACTED_{tag}]", sanitized)
    return sanitized


def truncate(content: str) -> str:
    if len(content) <= TRUNCATE_THRESHOLD:
        return content
    elided = len(content) - 2 * TRUNCATE_KEEP
    return f"{content[:TRUNCATE_KEEP]}... [{elided} chars] ...{content[-TRUNCATE_KEEP:]}"
