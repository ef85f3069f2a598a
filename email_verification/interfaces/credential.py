from abc import ABC, abstractmethod


class CredentialMatcher(ABC):
    """Pure predicate deciding whether a string has a given credential shape."""

    @abstractmethod
    def matches(self, candidate: str) -> bool:
        pass
