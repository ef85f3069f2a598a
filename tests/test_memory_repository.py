import unittest
from datetime import datetime, timedelta, timezone


from email_verification.core.exceptions import DuplicateTokenError, VerificationNotFoundError
from email_verification.repositories.memory import InMemoryVerificationRepository


def _record(token: str, **overrides) -> dict:
    record = {
        "token": token,
        "address": "a@b.com",
        "category": "signup",
        "username": "alice",
        "description": "",
        "request_settings": {"address": "a@b.com", "locals": {}},
        "locals": {"address": "a@b.com"},
    }
    record.update(overrides)
    return record


class TestInMemoryVerificationRepository(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.repo = InMemoryVerificationRepository()

    async def test_insert_then_get(self):
        stored = await self.repo.insert(_record("t1"))
        fetched = await self.repo.get_by_token("t1")

        self.assertEqual(fetched["address"], "a@b.com")
        self.assertEqual(fetched["locals"], {"address": "a@b.com"})
        self.assertEqual(fetched["created_at"], stored["created_at"])
        self.assertIsNotNone(fetched["created_at"].tzinfo)

    async def test_get_missing_returns_none(self):
        self.assertIsNone(await self.repo.get_by_token("missing"))

    async def test_duplicate_token_rejected(self):
        await self.repo.insert(_record("t1"))
        with self.assertRaises(DuplicateTokenError) as ctx:
            await self.repo.insert(_record("t1", address="other@b.com"))
        self.assertEqual(ctx.exception.token, "t1")

        # original record untouched
        self.assertEqual((await self.repo.get_by_token("t1"))["address"], "a@b.com")

    async def test_returned_records_are_copies(self):
        await self.repo.insert(_record("t1"))
        fetched = await self.repo.get_by_token("t1")
        fetched["locals"]["address"] = "mutated@b.com"

        self.assertEqual((await self.repo.get_by_token("t1"))["locals"]["address"], "a@b.com")

    async def test_delete(self):
        await self.repo.insert(_record("t1"))
        await self.repo.delete_by_token("t1")

        self.assertIsNone(await self.repo.get_by_token("t1"))
        with self.assertRaises(VerificationNotFoundError):
            await self.repo.delete_by_token("t1")

    async def test_find_scoped_by_category(self):
        now = datetime.now(timezone.utc)
        await self.repo.insert(_record("t1", created_at=now))
        await self.repo.insert(_record("t2", category="reset", created_at=now))
        await self.repo.insert(_record("t3", created_at=now - timedelta(minutes=5)))

        by_username = await self.repo.find_by_category_and_field("signup", "username", "alice")
        by_address = await self.repo.find_by_category_and_field("reset", "address", "a@b.com")

        self.assertEqual([r["token"] for r in by_username], ["t3", "t1"])
        self.assertEqual([r["token"] for r in by_address], ["t2"])

    async def test_find_rejects_unknown_field(self):
        with self.assertRaises(ValueError):
            await self.repo.find_by_category_and_field("signup", "description", "x")

    async def test_delete_created_before(self):
        now = datetime.now(timezone.utc)
        await self.repo.insert(_record("old", created_at=now - timedelta(hours=48)))
        await self.repo.insert(_record("new", created_at=now))

        removed = await self.repo.delete_created_before(now - timedelta(hours=24))

        self.assertEqual(removed, 1)
        self.assertIsNone(await self.repo.get_by_token("old"))
        self.assertIsNotNone(await self.repo.get_by_token("new"))


    async def test_naive_created_at_is_treated_as_utc(self):
        naive = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(hours=48)
        stored = await self.repo.insert(_record("old", created_at=naive))

        self.assertEqual(stored["created_at"].tzinfo, timezone.utc)
        removed = await self.repo.delete_created_before(datetime.now(timezone.utc) - timedelta(hours=24))
        self.assertEqual(removed, 1)


if __name__ == "__main__":
    unittest.main()
