"""Regex-backed credential matchers used to classify search input."""
import re

from email_verification.core.config import settings
from email_verification.interfaces.credential import CredentialMatcher


class RegexCredentialMatcher(CredentialMatcher):
    def __init__(self, pattern: str | re.Pattern):
        self._pattern = re.compile(pattern) if isinstance(pattern, str) else pattern

    def matches(self, candidate: str) -> bool:
        return bool(candidate) and self._pattern.search(candidate) is not None

    def __repr__(self) -> str:
        return f"<RegexCredentialMatcher({self._pattern.pattern!r})>"


def username_matcher_from_settings() -> RegexCredentialMatcher:
    return RegexCredentialMatcher(settings.USERNAME_PATTERN)


def email_matcher_from_settings() -> RegexCredentialMatcher:
    return RegexCredentialMatcher(settings.EMAIL_PATTERN)
