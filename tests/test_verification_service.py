import asyncio
import unittest
from datetime import datetime, timedelta, timezone


from email_verification.core.exceptions import (
    DeliveryError,
    StoreError,
    ValidationError,
    VerificationNotFoundError,
)
from email_verification.repositories.memory import InMemoryVerificationRepository
from email_verification.schemas.verification import VerificationRequest
from email_verification.services.token import TokenGenerator, encode_token
from email_verification.services.verification import purge_expired_verifications

from fakes import (
    FailingDeleteRepository,
    FailingGetRepository,
    FailingInsertRepository,
    FailingSender,
    RecordingSender,
    make_service,
    signup_request,
)


class TestBeginCheckClear(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.repo = InMemoryVerificationRepository()
        self.sender = RecordingSender()
        self.service = make_service(self.repo, self.sender)

    async def test_begin_check_clear_check(self):
        token = await self.service.begin(signup_request())

        valid, locals = await self.service.check(token)
        self.assertTrue(valid)
        self.assertEqual(locals["address"], "a@b.com")

        await self.service.clear(token)

        valid, locals = await self.service.check(token)
        self.assertFalse(valid)
        self.assertIsNone(locals)

    async def test_begin_sends_merged_locals(self):
        token = await self.service.begin(signup_request(locals={"display_name": "Alice"}))

        self.assertEqual(len(self.sender.sent), 1)
        message = self.sender.sent[0]
        self.assertEqual(message["address"], "a@b.com")
        self.assertEqual(message["subject"], "Verify")
        self.assertEqual(message["template_ref"], "verify.html")
        self.assertEqual(message["locals"], {
            "display_name": "Alice",
            "address": "a@b.com",
            "site_url": "https://id.example.com",
            "asset_url": "https://id.example.com/resource/images/logo.png",
            "verify_url": f"https://id.example.com/verify/{encode_token(token)}",
        })

    async def test_check_returns_stored_locals(self):
        token = await self.service.begin(signup_request(locals={"display_name": "Alice"}))

        _, locals = await self.service.check(token)
        self.assertEqual(locals, self.sender.sent[0]["locals"])

    async def test_check_does_not_consume(self):
        token = await self.service.begin(signup_request())

        self.assertTrue((await self.service.check(token))[0])
        self.assertTrue((await self.service.check(token))[0])

    async def test_merge_keys_override_caller_locals(self):
        await self.service.begin(signup_request(locals={
            "address": "attacker@evil.com",
            "verify_url": "https://evil.com/",
            "plan": "pro",
        }))

        locals = self.sender.sent[0]["locals"]
        self.assertEqual(locals["address"], "a@b.com")
        self.assertTrue(locals["verify_url"].startswith("https://id.example.com/verify/"))
        self.assertEqual(locals["plan"], "pro")

    async def test_begin_accepts_model(self):
        request = VerificationRequest(**signup_request())
        token = await self.service.begin(request)
        self.assertTrue((await self.service.check(token))[0])

    async def test_custom_asset_path(self):
        service = make_service(self.repo, self.sender, asset_path="/static/brand.svg")
        await service.begin(signup_request())
        self.assertEqual(self.sender.sent[0]["locals"]["asset_url"], "https://id.example.com/static/brand.svg")

    async def test_without_verify_url_callback_is_optional(self):
        await self.service.begin(signup_request(callback_path=None, include_verify_url=False))

        self.assertNotIn("verify_url", self.sender.sent[0]["locals"])

    async def test_missing_callback_fails_fast(self):
        with self.assertRaises(ValidationError):
            await self.service.begin(signup_request(callback_path=None))
        with self.assertRaises(ValidationError):
            await self.service.begin(signup_request(callback_path="  "))

        self.assertEqual(self.sender.sent, [])
        self.assertEqual(await self.repo.find_by_category_and_field("signup", "address", "a@b.com"), [])

    async def test_off_site_callback_rejected(self):
        for callback in ("//evil.example/x", "https://evil.example/x", "verify", "/\\evil.example/x"):
            with self.subTest(callback=callback):
                with self.assertRaises(ValidationError) as ctx:
                    await self.service.begin(signup_request(callback_path=callback))
                self.assertEqual(ctx.exception.data, {"callback_path": callback})

        self.assertEqual(self.sender.sent, [])
        self.assertEqual(await self.repo.find_by_category_and_field("signup", "address", "a@b.com"), [])

    async def test_nested_callback_path(self):
        token = await self.service.begin(signup_request(callback_path="/account/verify/"))
        self.assertEqual(
            self.sender.sent[0]["locals"]["verify_url"],
            f"https://id.example.com/account/verify/{encode_token(token)}"
        )

    async def test_locals_are_stored_in_json_form(self):
        sent_at = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        token = await self.service.begin(signup_request(locals={"requested_at": sent_at}))

        _, locals = await self.service.check(token)
        self.assertEqual(locals["requested_at"], "2026-01-02T03:04:05Z")
        self.assertEqual(self.sender.sent[0]["locals"]["requested_at"], "2026-01-02T03:04:05Z")

    async def test_required_fields(self):
        for field in ("address", "subject", "template_ref"):
            with self.subTest(field=field):
                with self.assertRaises(ValidationError) as ctx:
                    await self.service.begin(signup_request(**{field: ""}))
                self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(self.sender.sent, [])

    async def test_malformed_request_mapping(self):
        with self.assertRaises(ValidationError) as ctx:
            await self.service.begin(signup_request(locals="not a mapping"))
        self.assertIn("errors", ctx.exception.data)

    async def test_random_token_is_not_valid(self):
        valid, locals = await self.service.check(TokenGenerator().new_token())
        self.assertFalse(valid)
        self.assertIsNone(locals)

    async def test_clear_unknown_token_is_not_an_error(self):
        await self.service.clear(TokenGenerator().new_token())

    async def test_concurrent_begins_produce_distinct_tokens(self):
        first, second = await asyncio.gather(
            self.service.begin(signup_request()),
            self.service.begin(signup_request()),
        )

        self.assertNotEqual(first, second)
        self.assertTrue((await self.service.check(first))[0])
        self.assertTrue((await self.service.check(second))[0])

        await self.service.clear(first)
        self.assertFalse((await self.service.check(first))[0])
        self.assertTrue((await self.service.check(second))[0])


class TestBeginFailures(unittest.IsolatedAsyncioTestCase):
    async def test_store_failure_sends_nothing(self):
        sender = RecordingSender()
        service = make_service(FailingInsertRepository(), sender)

        with self.assertRaises(StoreError):
            await service.begin(signup_request())
        self.assertEqual(sender.sent, [])

    async def test_delivery_failure_keeps_record(self):
        repo = InMemoryVerificationRepository()
        service = make_service(repo, FailingSender())

        with self.assertRaises(DeliveryError):
            await service.begin(signup_request())

        records = await repo.find_by_category_and_field("signup", "address", "a@b.com")
        self.assertEqual(len(records), 1)

    async def test_begin_logs_delivery(self):
        service = make_service()
        with self.assertLogs("email_verification.services.verification", level="INFO") as logs:
            await service.begin(signup_request())
        self.assertIn("[signup]: email verification sent to a@b.com", logs.output[-1])


class TestStoreFailures(unittest.IsolatedAsyncioTestCase):
    async def test_check_surfaces_store_error(self):
        service = make_service(FailingGetRepository())

        with self.assertRaises(StoreError) as ctx:
            await service.check(TokenGenerator().new_token())
        self.assertEqual(ctx.exception.status_code, 503)

    async def test_clear_surfaces_store_error(self):
        service = make_service(FailingDeleteRepository())
        token = await service.begin(signup_request())

        with self.assertRaises(StoreError):
            await service.clear(token)
        self.assertTrue((await service.check(token))[0])


class TestResend(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.repo = InMemoryVerificationRepository()
        self.sender = RecordingSender()
        self.service = make_service(self.repo, self.sender)

    async def test_resend_replaces_token(self):
        old = await self.service.begin(signup_request(locals={"display_name": "Alice"}))
        new = await self.service.resend(old)

        self.assertNotEqual(old, new)
        self.assertFalse((await self.service.check(old))[0])
        valid, locals = await self.service.check(new)
        self.assertTrue(valid)
        self.assertEqual(locals["display_name"], "Alice")

        self.assertEqual(len(self.sender.sent), 2)
        resent = self.sender.sent[1]
        self.assertEqual(resent["subject"], "Verify")
        self.assertEqual(resent["template_ref"], "verify.html")
        self.assertEqual(resent["locals"]["verify_url"], f"https://id.example.com/verify/{encode_token(new)}")

    async def test_resend_unknown_token(self):
        with self.assertRaises(VerificationNotFoundError) as ctx:
            await self.service.resend(TokenGenerator().new_token())

        self.assertEqual(ctx.exception.message, "Email verification record is not found, maybe expired")
        self.assertEqual(self.sender.sent, [])

    async def test_resend_after_clear_fails(self):
        token = await self.service.begin(signup_request())
        await self.service.clear(token)

        with self.assertRaises(VerificationNotFoundError):
            await self.service.resend(token)

    async def test_resend_continues_when_delete_fails(self):
        repo = FailingDeleteRepository()
        service = make_service(repo, self.sender)
        old = await service.begin(signup_request())

        with self.assertLogs("email_verification.services.verification", level="ERROR") as logs:
            new = await service.resend(old)

        self.assertNotEqual(old, new)
        self.assertTrue(any("old token left in place" in line for line in logs.output))
        # both tokens stay valid until the store expires the old one
        self.assertTrue((await service.check(old))[0])
        self.assertTrue((await service.check(new))[0])


class TestPurgeExpiredVerifications(unittest.IsolatedAsyncioTestCase):
    async def test_purge_removes_old_records(self):
        repo = InMemoryVerificationRepository()
        now = datetime.now(timezone.utc)
        for token, age in (("old", 50), ("new", 1)):
            await repo.insert({
                "token": token,
                "address": "a@b.com",
                "request_settings": {},
                "created_at": now - timedelta(hours=age),
            })

        removed = await purge_expired_verifications(repo, ttl_hours=24)

        self.assertEqual(removed, 1)
        self.assertIsNone(await repo.get_by_token("old"))
        self.assertIsNotNone(await repo.get_by_token("new"))


if __name__ == "__main__":
    unittest.main()
