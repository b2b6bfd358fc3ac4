"""
Unit tests for the privacy filter applied to logged prompts and responses.
"""

from datetime import datetime, timedelta, timezone

from silentengine.core.config import Settings
from silentengine.security.privacy import (
    PII_PATTERNS,
    PrivacyConfig,
    PrivacyFilter,
    hash_content,
    redact_pii,
    truncate,
)


class TestRedaction:
    """PII patterns are replaced with tagged placeholders."""

    def test_email_redacted(self):
        assert redact_pii("contact a@b.com now") == "contact [REDACTED_EMAIL] now"

    def test_ssn_redacted(self):
        assert redact_pii("ssn 123-45-6789") == "ssn [REDACTED_SSN]"

    def test_ip_redacted(self):
        assert redact_pii("from 192.168.1.10") == "from [REDACTED_IPADDRESS]"

    def test_phone_redacted(self):
        assert redact_pii("call 555-123-4567") == "call [REDACTED_PHONE]"

    def test_credit_card_redacted(self):
        assert redact_pii("card 4111 1111 1111 1111") == "card [REDACTED_CREDITCARD]"

    def test_clean_text_unchanged(self):
        assert redact_pii("nothing to see here") == "nothing to see here"

    def test_non_ascii_digits_untouched(self):
        assert redact_pii("arabic ٠١٢٣٤٥٦٧٨٩") == "arabic ٠١٢٣٤٥٦٧٨٩"


class TestLayeredRedaction:
    """Every category is applied in turn; each sees the previous output."""

    def test_pattern_order(self):
        assert [tag for tag, _ in PII_PATTERNS] == ["EMAIL", "PHONE", "SSN", "CREDITCARD", "IPADDRESS"]

    def test_email_wins_over_embedded_ip(self):
        assert redact_pii("admin@192.168.1.10.example.com") == "[REDACTED_EMAIL]"

    def test_all_categories_in_one_text(self):
        text = "mail a@b.com or call 555-123-4567 from 10.0.0.1"
        assert redact_pii(text) == "mail [REDACTED_EMAIL] or call [REDACTED_PHONE] from [REDACTED_IPADDRESS]"


class TestHashing:
    def test_hash_is_deterministic_and_prefixed(self):
        first = hash_content("same prompt")
        assert first == hash_content("same prompt")
        assert first.startswith("hash_")
        assert len(first) == len("hash_") + 16

    def test_different_inputs_differ(self):
        assert hash_content("one") != hash_content("two")


class TestTruncation:
    def test_short_content_untouched(self):
        text = "x" * 200
        assert truncate(text) == text

    def test_long_content_keeps_both_ends(self):
        text = "a" * 100 + "b" * 150 + "c" * 100
        out = truncate(text)
        assert out == "a" * 100 + "... [150 chars] ..." + "c" * 100


class TestPrecedence:
    """Full content beats hashing, hashing beats redaction, redaction beats truncation."""

    def test_development_full_content_passes_through(self):
        f = PrivacyFilter(PrivacyConfig(log_full_content=True, redact_pii=True, hash_prompts=True), "development")
        assert f.sanitize("mail a@b.com", "prompt") == "mail a@b.com"

    def test_full_content_ignored_outside_development(self):
        f = PrivacyFilter(PrivacyConfig(log_full_content=True, redact_pii=True), "production")
        assert f.sanitize("mail a@b.com", "prompt") == "mail [REDACTED_EMAIL]"

    def test_hash_applies_to_prompts_only(self):
        f = PrivacyFilter(PrivacyConfig(hash_prompts=True, redact_pii=True), "production")
        assert f.sanitize("mail a@b.com", "prompt") == hash_content("mail a@b.com")
        assert f.sanitize("mail a@b.com", "response") == "mail [REDACTED_EMAIL]"

    def test_truncate_when_nothing_else_applies(self):
        f = PrivacyFilter(PrivacyConfig(redact_pii=False), "production")
        out = f.sanitize("z" * 500, "response")
        assert "... [300 chars] ..." in out

    def test_config_from_settings(self):
        settings = Settings(hash_prompts=True, redact_pii=False, log_full_content=False, log_retention_days=7)
        config = PrivacyConfig.from_settings(settings)
        assert config.hash_prompts is True
        assert config.redact_pii is False
        assert config.retention_days == 7


class TestRetention:
    def test_within_and_beyond_window(self):
        f = PrivacyFilter(PrivacyConfig(retention_days=90))
        now = datetime(2026, 6, 1, tzinfo=timezone.utc)
        assert f.should_retain(now - timedelta(days=89), now=now) is True
        assert f.should_retain(now - timedelta(days=91), now=now) is False
