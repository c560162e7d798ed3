"""Tests for the refresh token store against an in-memory database."""

import unittest
from datetime import timedelta
from unittest.mock import MagicMock

from shiftpay.core.security import as_utc, decode_refresh_token, utcnow, verify_token
from shiftpay.models import RefreshToken
from shiftpay.services import refresh_tokens
from shiftpay.services.errors import UnauthorizedError
from tests.support import make_session_factory, make_user


class RefreshTokenStoreTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()
        self.user = make_user(self.db)

    def tearDown(self) -> None:
        self.db.close()


class TestCreateRefreshToken(RefreshTokenStoreTestCase):
    def test_stores_hash_not_raw_token(self) -> None:
        issued = refresh_tokens.create_refresh_token(self.db, self.user)
        record = self.db.get(RefreshToken, issued.record.id)
        self.assertIsNotNone(record)
        self.assertNotEqual(record.hashed_token, issued.raw_token)
        self.assertTrue(verify_token(issued.raw_token, record.hashed_token))
        self.assertEqual(record.user_id, self.user.id)

    def test_jti_is_record_id(self) -> None:
        issued = refresh_tokens.create_refresh_token(self.db, self.user)
        payload = decode_refresh_token(issued.raw_token)
        self.assertEqual(payload["jti"], issued.record.id)
        self.assertEqual(payload["sub"], str(self.user.id))

    def test_login_starts_a_new_session(self) -> None:
        issued = refresh_tokens.create_refresh_token(self.db, self.user)
        self.assertEqual(issued.record.session_id, issued.record.id)
        continued = refresh_tokens.create_refresh_token(
            self.db, self.user, session_id=issued.record.session_id
        )
        self.assertEqual(continued.record.session_id, issued.record.id)

    def test_expires_after_seven_days(self) -> None:
        now = utcnow()
        issued = refresh_tokens.create_refresh_token(self.db, self.user, now=now)
        self.assertEqual(as_utc(issued.record.expires_at), now + timedelta(days=7))

    def test_each_token_is_distinct(self) -> None:
        first = refresh_tokens.create_refresh_token(self.db, self.user)
        second = refresh_tokens.create_refresh_token(self.db, self.user)
        self.assertNotEqual(first.raw_token, second.raw_token)
        self.assertNotEqual(first.record.id, second.record.id)


class TestLiveness(RefreshTokenStoreTestCase):
    """A record is live strictly before expires_at; at expires_at it is expired."""

    def test_live_before_expiry(self) -> None:
        issued = refresh_tokens.create_refresh_token(self.db, self.user)
        expires_at = as_utc(issued.record.expires_at)
        found = refresh_tokens.get_live_token(
            self.db, issued.record.id, now=expires_at - timedelta(microseconds=1)
        )
        self.assertIsNotNone(found)

    def test_expired_exactly_at_boundary(self) -> None:
        issued = refresh_tokens.create_refresh_token(self.db, self.user)
        expires_at = as_utc(issued.record.expires_at)
        self.assertIsNone(
            refresh_tokens.get_live_token(self.db, issued.record.id, now=expires_at)
        )

    def test_unknown_id(self) -> None:
        self.assertIsNone(refresh_tokens.get_live_token(self.db, "missing"))


class TestRevoke(RefreshTokenStoreTestCase):
    def test_revoke_removes_record(self) -> None:
        issued = refresh_tokens.create_refresh_token(self.db, self.user)
        token_id = issued.record.id
        self.assertEqual(refresh_tokens.revoke_refresh_token(self.db, token_id), 1)
        self.assertIsNone(refresh_tokens.get_live_token(self.db, token_id))

    def test_revoke_is_idempotent(self) -> None:
        issued = refresh_tokens.create_refresh_token(self.db, self.user)
        token_id = issued.record.id
        refresh_tokens.revoke_refresh_token(self.db, token_id)
        self.assertEqual(refresh_tokens.revoke_refresh_token(self.db, token_id), 0)
        self.assertEqual(refresh_tokens.revoke_refresh_token(self.db, "never-issued"), 0)
        self.assertIsNone(refresh_tokens.get_live_token(self.db, token_id))

    def test_revoke_scoped_to_owner(self) -> None:
        other = make_user(self.db, username="bob")
        issued = refresh_tokens.create_refresh_token(self.db, self.user)
        self.assertEqual(
            refresh_tokens.revoke_refresh_token(self.db, issued.record.id, user_id=other.id), 0
        )
        self.assertIsNotNone(refresh_tokens.get_live_token(self.db, issued.record.id))

    def test_revoke_session_follows_rotation(self) -> None:
        first = refresh_tokens.create_refresh_token(self.db, self.user)
        session_id = first.record.session_id
        other_session = refresh_tokens.create_refresh_token(self.db, self.user)
        rotated = refresh_tokens.rotate_refresh_token(self.db, first.record.id, self.user)
        self.assertEqual(refresh_tokens.revoke_session(self.db, session_id, self.user.id), 1)
        self.assertIsNone(refresh_tokens.get_live_token(self.db, rotated.record.id))
        self.assertIsNotNone(refresh_tokens.get_live_token(self.db, other_session.record.id))
        self.assertEqual(refresh_tokens.revoke_session(self.db, session_id, self.user.id), 0)

    def test_revoke_session_scoped_to_owner(self) -> None:
        other = make_user(self.db, username="bob")
        issued = refresh_tokens.create_refresh_token(self.db, self.user)
        self.assertEqual(
            refresh_tokens.revoke_session(self.db, issued.record.session_id, other.id), 0
        )
        self.assertIsNotNone(refresh_tokens.get_live_token(self.db, issued.record.id))

    def test_revoke_all_only_touches_owner(self) -> None:
        other = make_user(self.db, username="bob")
        refresh_tokens.create_refresh_token(self.db, self.user)
        refresh_tokens.create_refresh_token(self.db, self.user)
        kept = refresh_tokens.create_refresh_token(self.db, other)
        self.assertEqual(refresh_tokens.revoke_all_user_tokens(self.db, self.user.id), 2)
        self.assertEqual(refresh_tokens.get_user_active_tokens(self.db, self.user.id), [])
        self.assertIsNotNone(refresh_tokens.get_live_token(self.db, kept.record.id))


class TestActiveTokens(RefreshTokenStoreTestCase):
    def test_newest_first_and_expired_excluded(self) -> None:
        now = utcnow()
        old = refresh_tokens.create_refresh_token(self.db, self.user, now=now - timedelta(days=8))
        older = refresh_tokens.create_refresh_token(self.db, self.user, now=now - timedelta(hours=2))
        newer = refresh_tokens.create_refresh_token(self.db, self.user, now=now - timedelta(hours=1))
        active = refresh_tokens.get_user_active_tokens(self.db, self.user.id, now=now)
        self.assertEqual([r.id for r in active], [newer.record.id, older.record.id])
        self.assertNotIn(old.record.id, [r.id for r in active])


class TestRotate(RefreshTokenStoreTestCase):
    def test_rotation_replaces_old_token(self) -> None:
        first = refresh_tokens.create_refresh_token(self.db, self.user)
        first_id, first_session = first.record.id, first.record.session_id
        second = refresh_tokens.rotate_refresh_token(self.db, first_id, self.user)
        self.assertNotEqual(second.record.id, first_id)
        self.assertIsNone(refresh_tokens.get_live_token(self.db, first_id))
        self.assertIsNotNone(refresh_tokens.get_live_token(self.db, second.record.id))
        self.assertEqual(second.record.session_id, first_session)
        self.assertEqual(len(refresh_tokens.get_user_active_tokens(self.db, self.user.id)), 1)

    def test_second_rotation_of_same_token_refused(self) -> None:
        first = refresh_tokens.create_refresh_token(self.db, self.user)
        first_id = first.record.id
        refresh_tokens.rotate_refresh_token(self.db, first_id, self.user)
        with self.assertLogs("shiftpay.services.refresh_tokens", level="WARNING"):
            with self.assertRaises(UnauthorizedError):
                refresh_tokens.rotate_refresh_token(self.db, first_id, self.user)
        self.assertEqual(len(refresh_tokens.get_user_active_tokens(self.db, self.user.id)), 1)

    def test_rotation_of_other_users_token_refused(self) -> None:
        other = make_user(self.db, username="bob")
        issued = refresh_tokens.create_refresh_token(self.db, other)
        with self.assertRaises(UnauthorizedError):
            refresh_tokens.rotate_refresh_token(self.db, issued.record.id, self.user)
        self.assertIsNotNone(refresh_tokens.get_live_token(self.db, issued.record.id))


class TestRotateRollback(unittest.TestCase):
    """When issuing the replacement fails, the delete is rolled back."""

    def test_rolls_back_on_create_failure(self) -> None:
        session = MagicMock()
        owned = session.query.return_value.filter.return_value
        owned.with_entities.return_value.scalar.return_value = "session-1"
        owned.delete.return_value = 1
        session.flush.side_effect = RuntimeError("db down")
        user = MagicMock(id=1, username="alice")
        with self.assertRaises(RuntimeError):
            refresh_tokens.rotate_refresh_token(session, "old-id", user)
        session.rollback.assert_called_once()
        session.commit.assert_not_called()


class TestCleanup(RefreshTokenStoreTestCase):
    def test_deletes_only_expired(self) -> None:
        now = utcnow()
        refresh_tokens.create_refresh_token(self.db, self.user, now=now - timedelta(days=8))
        live = refresh_tokens.create_refresh_token(self.db, self.user, now=now)
        self.assertEqual(refresh_tokens.cleanup_expired_tokens(self.db, now=now), 1)
        self.assertEqual(refresh_tokens.cleanup_expired_tokens(self.db, now=now), 0)
        self.assertIsNotNone(refresh_tokens.get_live_token(self.db, live.record.id, now=now))

    def test_returns_zero_when_nothing_expired(self) -> None:
        session = MagicMock()
        session.query.return_value.filter.return_value.delete.return_value = 0
        self.assertEqual(refresh_tokens.cleanup_expired_tokens(session), 0)
        session.commit.assert_called_once()


if __name__ == "__main__":
    unittest.main()
