from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional


class IVerificationRepository(ABC):
    @abstractmethod
    async def insert(self, record: dict) -> dict:
        """Persist a new verification record.

        Args:
            record: Record data keyed by token, address, category, username,
                description, request_settings and locals

        Returns:
            The stored record, including created_at

        Raises:
            DuplicateTokenError: If a record with the same token already exists
            StoreError: If the store fails
        """
        pass

    @abstractmethod
    async def get_by_token(self, token: str) -> Optional[dict]:
        """Retrieve a pending verification by token.

        Args:
            token: Raw verification token

        Returns:
            Verification data if found, None otherwise
        """
        pass

    @abstractmethod
    async def delete_by_token(self, token: str) -> None:
        """Delete a pending verification by token.

        Args:
            token: Raw verification token

        Raises:
            VerificationNotFoundError: If no record exists for the token
        """
        pass

    @abstractmethod
    async def find_by_category_and_field(
        self,
        category: str,
        field_name: str,
        field_value: str
    ) -> list[dict]:
        """Find pending verifications of a category by username or address.

        Args:
            category: Category the records were created under
            field_name: Either "username" or "address"
            field_value: Value the field must equal

        Returns:
            Matching records, empty when nothing matches
        """
        pass

    @abstractmethod
    async def delete_created_before(self, cutoff: datetime) -> int:
        """Delete verifications created before the cutoff.

        Args:
            cutoff: Timezone-aware timestamp

        Returns:
            Number of records removed
        """
        pass
