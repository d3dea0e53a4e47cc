import unittest
from decimal import Decimal
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from jackpot_be.app import create_app
from jackpot_be.config import TestingConfig
from jackpot_be.dto import Session, SpinOutcome
from jackpot_be.exceptions import (
    InsufficientFundsException, SessionClosedException, SessionNotFoundException, StoreFailureException
)
from jackpot_be.models import GameSessionRecord, db
from jackpot_be.services.session_store import InMemorySessionStore, find_session, load_session
from jackpot_be.services.sql_session_store import SQLSessionStore


def outcome(bet, win):
    return SpinOutcome(reels=(('Cherry', 'Lemon', 'Orange'),), bet_amount=Decimal(bet), win_amount=Decimal(win))


class SessionStoreContract:
    """Behaviour every SessionStore implementation must share."""

    def make_store(self):
        raise NotImplementedError

    def test_create_and_get(self):
        store = self.make_store()
        created = store.create_session(Decimal('25'))

        self.assertTrue(created.session_id.startswith('session_'))
        self.assertEqual(created.balance, Decimal('25.00'))
        self.assertTrue(created.is_active)

        fetched = store.get_session(created.session_id)
        self.assertEqual(fetched.session_id, created.session_id)
        self.assertEqual(fetched.balance, Decimal('25.00'))
        self.assertEqual(fetched.total_bet, Decimal('0.00'))
        self.assertEqual(fetched.total_win, Decimal('0.00'))
        self.assertTrue(fetched.is_active)

    def test_session_ids_are_unique(self):
        store = self.make_store()
        ids = {store.create_session(Decimal('10')).session_id for _ in range(20)}
        self.assertEqual(len(ids), 20)

    def test_create_rejects_non_positive_balance(self):
        store = self.make_store()
        with self.assertRaises(ValueError):
            store.create_session(Decimal('0'))

    def test_get_unknown_returns_none(self):
        self.assertIsNone(self.make_store().get_session('session_missing'))

    def test_save_spin_settlement(self):
        store = self.make_store()
        created = store.create_session(Decimal('20.00'))

        settled = store.save_spin_settlement(created.session_id, outcome('1.00', '10.00'))
        self.assertEqual(settled.balance, Decimal('29.00'))

        settled = store.save_spin_settlement(created.session_id, outcome('2.00', '0.00'))
        self.assertEqual(settled.balance, Decimal('27.00'))
        self.assertEqual(settled.total_bet, Decimal('3.00'))
        self.assertEqual(settled.total_win, Decimal('10.00'))

        fetched = store.get_session(created.session_id)
        self.assertEqual(fetched.balance, Decimal('27.00'))
        self.assertEqual(fetched.total_bet, Decimal('3.00'))
        self.assertGreaterEqual(fetched.last_activity, created.last_activity)

    def test_save_spin_settlement_refuses_overdraw(self):
        store = self.make_store()
        created = store.create_session(Decimal('0.50'))

        with self.assertRaises(InsufficientFundsException):
            store.save_spin_settlement(created.session_id, outcome('1.00', '0.00'))

        fetched = store.get_session(created.session_id)
        self.assertEqual(fetched.balance, Decimal('0.50'))
        self.assertEqual(fetched.total_bet, Decimal('0.00'))
        self.assertTrue(fetched.is_active)

    def test_save_spin_settlement_closes_at_zero_in_the_same_write(self):
        store = self.make_store()
        created = store.create_session(Decimal('1.00'))

        settled = store.save_spin_settlement(created.session_id, outcome('1.00', '0.00'))

        self.assertEqual(settled.balance, Decimal('0.00'))
        self.assertFalse(settled.is_active)
        fetched = store.get_session(created.session_id)
        self.assertFalse(fetched.is_active)
        self.assertEqual(fetched.total_bet, Decimal('1.00'))

    def test_save_spin_settlement_refuses_closed_session(self):
        store = self.make_store()
        created = store.create_session(Decimal('10.00'))
        store.update_session(created.closed())

        with self.assertRaises(SessionClosedException):
            store.save_spin_settlement(created.session_id, outcome('1.00', '0.00'))

        self.assertEqual(store.get_session(created.session_id).balance, Decimal('10.00'))

    def test_save_spin_settlement_unknown_session(self):
        with self.assertRaises(SessionNotFoundException):
            self.make_store().save_spin_settlement('session_missing', outcome('1.00', '0.00'))

    def test_update_session_replaces_record(self):
        store = self.make_store()
        created = store.create_session(Decimal('12.00'))

        store.update_session(created.closed(zero_balance=True))

        fetched = store.get_session(created.session_id)
        self.assertFalse(fetched.is_active)
        self.assertEqual(fetched.balance, Decimal('0.00'))

    def test_update_unknown_session_fails(self):
        with self.assertRaises(StoreFailureException):
            self.make_store().update_session(Session(session_id='session_ghost', balance=Decimal('5.00')))


class TestInMemorySessionStore(SessionStoreContract, unittest.TestCase):

    def make_store(self):
        return InMemorySessionStore()

    def test_stores_do_not_share_state(self):
        first, second = InMemorySessionStore(), InMemorySessionStore()
        created = first.create_session(Decimal('10'))
        self.assertIsNone(second.get_session(created.session_id))
        self.assertEqual(len(first), 1)
        self.assertEqual(len(second), 0)


class TestSQLSessionStore(SessionStoreContract, unittest.TestCase):

    def setUp(self):
        self.app = create_app(TestingConfig)
        self.app_context = self.app.app_context()
        self.app_context.push()
        db.create_all()

    def tearDown(self):
        db.session.remove()
        db.drop_all()
        self.app_context.pop()

    def make_store(self):
        return SQLSessionStore(db)

    def test_record_round_trip(self):
        store = self.make_store()
        created = store.create_session(Decimal('15.50'))

        record = db.session.get(GameSessionRecord, created.session_id)
        self.assertEqual(record.balance, Decimal('15.50'))
        self.assertIn(created.session_id, repr(record))
        self.assertIsNotNone(record.to_session().created_at.tzinfo)

    def test_driver_error_becomes_store_failure(self):
        store = self.make_store()
        created = store.create_session(Decimal('10.00'))

        with patch.object(db.session, 'commit', side_effect=OperationalError('UPDATE', {}, Exception('disk I/O error'))):
            with self.assertRaises(StoreFailureException) as ctx:
                store.save_spin_settlement(created.session_id, outcome('1.00', '0.00'))

        self.assertEqual(ctx.exception.operation, 'save_spin_settlement')
        self.assertEqual(ctx.exception.session_id, created.session_id)
        self.assertIsInstance(ctx.exception.__cause__, OperationalError)
        self.assertEqual(store.get_session(created.session_id).balance, Decimal('10.00'))


class TestLoadSession(unittest.TestCase):

    def setUp(self):
        self.store = InMemorySessionStore()

    def test_unknown_session(self):
        with self.assertRaises(SessionNotFoundException):
            load_session(self.store, 'session_missing')

    def test_closed_session_is_refused(self):
        session = self.store.create_session(Decimal('10'))
        self.store.update_session(session.closed())

        with self.assertRaises(SessionClosedException):
            load_session(self.store, session.session_id)

    def test_closed_session_is_reactivated_when_allowed(self):
        session = self.store.create_session(Decimal('10'))
        self.store.update_session(session.closed())

        loaded = load_session(self.store, session.session_id, reactivate_closed=True)

        self.assertTrue(loaded.is_active)
        self.assertTrue(self.store.get_session(session.session_id).is_active)

    def test_find_session_leaves_closed_session_closed(self):
        session = self.store.create_session(Decimal('10'))
        self.store.update_session(session.closed())

        found = find_session(self.store, session.session_id, reactivate_closed=True)

        self.assertFalse(found.is_active)
        self.assertFalse(self.store.get_session(session.session_id).is_active)
