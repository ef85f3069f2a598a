import asyncio
import copy
from datetime import datetime, timezone
from typing import Optional
from email_verification.core.constants import SearchField
from email_verification.core.exceptions import DuplicateTokenError, VerificationNotFoundError
from email_verification.interfaces.verification import IVerificationRepository
from email_verification.models.verification import as_aware_utc


class InMemoryVerificationRepository(IVerificationRepository):
    """Process-local verification store. Records do not survive a restart."""

    def __init__(self):
        self._lock = asyncio.Lock()
        self._by_token: dict[str, dict] = {}  # token -> record

    async def insert(self, record: dict) -> dict:
        """Save a pending verification keyed by token."""
        token = record["token"]
        payload = {
            "token": token,
            "address": record["address"],
            "category": record.get("category", ""),
            "username": record.get("username", ""),
            "description": record.get("description", ""),
            "request_settings": copy.deepcopy(record["request_settings"]),
            "locals": copy.deepcopy(record.get("locals", {})),
            "created_at": as_aware_utc(record.get("created_at")) or datetime.now(timezone.utc),
        }
        async with self._lock:
            if token in self._by_token:
                raise DuplicateTokenError(token)
            self._by_token[token] = payload
            return copy.deepcopy(payload)

    async def get_by_token(self, token: str) -> Optional[dict]:
        """Retrieve pending verification by token."""
        async with self._lock:
            record = self._by_token.get(token)
            return copy.deepcopy(record) if record else None

    async def delete_by_token(self, token: str) -> None:
        """Delete pending verification by token."""
        async with self._lock:
            if self._by_token.pop(token, None) is None:
                raise VerificationNotFoundError()

    async def find_by_category_and_field(
        self,
        category: str,
        field_name: str,
        field_value: str
    ) -> list[dict]:
        """Find pending verifications of a category by username or address."""
        try:
            field = SearchField(field_name)
        except ValueError:
            raise ValueError(f"Unsupported search field: {field_name}") from None

        async with self._lock:
            matches = [
                copy.deepcopy(record)
                for record in self._by_token.values()
                if record["category"] == category and record[field.value] == field_value
            ]
        return sorted(matches, key=lambda record: record["created_at"])

    async def delete_created_before(self, cutoff: datetime) -> int:
        """Delete verifications created before the cutoff."""
        async with self._lock:
            expired = [token for token, record in self._by_token.items() if record["created_at"] < cutoff]
            for token in expired:
                del self._by_token[token]
        return len(expired)
