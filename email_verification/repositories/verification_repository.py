"""Verification repository implementation using SQLAlchemy."""
import logging
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from email_verification.core.constants import SearchField
from email_verification.core.exceptions import DuplicateTokenError, StoreError, VerificationNotFoundError
from email_verification.interfaces.verification import IVerificationRepository
from email_verification.models.verification import VerificationRecord

logger = logging.getLogger(__name__)

_SEARCH_COLUMNS = {
    SearchField.USERNAME: VerificationRecord.username,
    SearchField.ADDRESS: VerificationRecord.address,
}


class VerificationRepository(IVerificationRepository):
    """SQL implementation of the verification store.

    Each operation runs in its own session and transaction, so one repository
    instance can serve concurrent requests.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def insert(self, record: dict) -> dict:
        """Persist a new verification record."""
        verification = VerificationRecord(
            token=record["token"],
            address=record["address"],
            category=record.get("category", ""),
            username=record.get("username", ""),
            description=record.get("description", ""),
            request_settings=record["request_settings"],
            locals=record.get("locals", {}),
            created_at=record.get("created_at") or datetime.now(timezone.utc),
        )

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(verification)
                return verification.to_dict()
        except IntegrityError as e:
            if await self.get_by_token(record["token"]) is not None:
                logger.error(f"Duplicate verification token on insert: {e.orig}")
                raise DuplicateTokenError(record["token"]) from e
            logger.error(f"Constraint violation on verification insert: {e.orig}")
            raise StoreError(data={"operation": "insert"}, status_code=500) from e
        except SQLAlchemyError as e:
            raise StoreError(data={"operation": "insert"}) from e

    async def get_by_token(self, token: str) -> Optional[dict]:
        """Retrieve pending verification by token."""
        stmt = select(VerificationRecord).where(VerificationRecord.token == token)
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                verification = result.scalar_one_or_none()
                return verification.to_dict() if verification else None
        except SQLAlchemyError as e:
            raise StoreError(data={"operation": "get_by_token"}) from e

    async def delete_by_token(self, token: str) -> None:
        """Delete pending verification by token."""
        stmt = delete(VerificationRecord).where(VerificationRecord.token == token)
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(data={"operation": "delete_by_token"}) from e

        if result.rowcount == 0:
            raise VerificationNotFoundError()

    async def find_by_category_and_field(
        self,
        category: str,
        field_name: str,
        field_value: str
    ) -> list[dict]:
        """Find pending verifications of a category by username or address."""
        try:
            column = _SEARCH_COLUMNS[SearchField(field_name)]
        except ValueError:
            raise ValueError(f"Unsupported search field: {field_name}") from None

        stmt = (
            select(VerificationRecord)
            .where(VerificationRecord.category == category, column == field_value)
            .order_by(VerificationRecord.created_at)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return [row.to_dict() for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise StoreError(data={"operation": "find_by_category_and_field"}) from e

    async def delete_created_before(self, cutoff: datetime) -> int:
        """Delete verifications created before the cutoff."""
        stmt = delete(VerificationRecord).where(VerificationRecord.created_at < cutoff)
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(data={"operation": "delete_created_before"}) from e
        return result.rowcount or 0
