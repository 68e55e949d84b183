import unittest
from datetime import datetime

from sqlmodel import Session, select

from agenda.core.clock import BUSINESS_TZ, to_local
from agenda.models.client import Client
from agenda.models.reminder import ScheduledReminder
from agenda.reminders import ReminderDispatcher, ReminderLifecycleManager, get_reminder_settings
from tests.fakes import FakeMessenger, memory_session

# 19:00 em -03:00 = 22:00 UTC
APPOINTMENT = datetime(2024, 1, 10, 19, 0, tzinfo=BUSINESS_TZ)
BEFORE_REMINDER = datetime(2024, 1, 10, 11, 0)  # 08:00 local
AFTER_REMINDER = datetime(2024, 1, 10, 12, 30)  # 09:30 local


class ReminderTestCase(unittest.TestCase):
    def setUp(self):
        self.session = memory_session()
        self.now = BEFORE_REMINDER
        self.manager = ReminderLifecycleManager(self.session, now=lambda: self.now)

    def tearDown(self):
        self.session.close()

    def rows(self):
        return self.session.exec(select(ScheduledReminder).order_by(ScheduledReminder.id)).all()


class TestReminderLifecycle(ReminderTestCase):
    def test_default_settings_are_created_on_first_read(self):
        settings = get_reminder_settings(self.session)
        self.assertTrue(settings.enabled)
        self.assertEqual(settings.reminder_hours, 10)
        self.assertIn("{nome}", settings.message_template)
        self.assertEqual(get_reminder_settings(self.session).id, settings.id)

    def test_create_schedules_ten_hours_before(self):
        outcome = self.manager.create("e1", "11999990001", "Ana", "Corte", APPOINTMENT)

        self.assertEqual(outcome.action, "created")
        self.assertTrue(outcome.scheduled)
        self.assertEqual(outcome.reminder_time, datetime(2024, 1, 10, 12, 0))
        self.assertEqual(to_local(outcome.reminder_time).strftime("%H:%M"), "09:00")

        row = self.manager.pending_for("e1")
        self.assertEqual(row.appointment_time, datetime(2024, 1, 10, 22, 0))
        self.assertFalse(row.sent)
        self.assertIsNone(row.error)

    def test_past_reminder_time_is_stored_as_contact_only(self):
        self.now = AFTER_REMINDER
        outcome = self.manager.create("e1", "11999990001", "Ana", "Corte", APPOINTMENT)

        self.assertEqual(outcome.action, "contact_only")
        self.assertFalse(outcome.scheduled)
        self.assertIsNone(self.manager.pending_for("e1"))
        row = self.rows()[0]
        self.assertTrue(row.sent)
        self.assertTrue(row.is_contact_only)
        self.assertEqual(row.error, "contact_only:reminder_time_passed")

    def test_disabled_reminders_keep_only_the_contact(self):
        settings = get_reminder_settings(self.session)
        settings.enabled = False
        self.session.add(settings)
        self.session.commit()

        outcome = self.manager.create("e1", "11999990001", "Ana", "Corte", APPOINTMENT)
        self.assertEqual(outcome.action, "contact_only")
        self.assertEqual(self.rows()[0].error, "contact_only:reminders_disabled")

    def test_second_create_updates_the_pending_row(self):
        self.manager.create("e1", "11999990001", "Ana", "Corte", APPOINTMENT)
        outcome = self.manager.create("e1", "11999990009", "Ana", "Corte + Barba", APPOINTMENT)

        self.assertEqual(outcome.action, "updated")
        rows = self.rows()
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].client_phone, "11999990009")
        self.assertEqual(rows[0].service_name, "Corte + Barba")

    def test_migrate_moves_the_pending_reminder(self):
        self.manager.create("e1", "11999990001", "Ana", "Corte", APPOINTMENT)
        new_time = datetime(2024, 1, 12, 15, 0, tzinfo=BUSINESS_TZ)
        outcome = self.manager.migrate("e1", "e2", "11999990001", "Ana", "Corte", new_time)

        self.assertEqual(outcome.action, "migrated")
        self.assertIsNone(self.manager.pending_for("e1"))
        row = self.manager.pending_for("e2")
        self.assertEqual(row.appointment_time, datetime(2024, 1, 12, 18, 0))
        self.assertEqual(row.reminder_time, datetime(2024, 1, 12, 8, 0))
        self.assertEqual(len(self.rows()), 1)

    def test_migrate_revives_a_contact_only_row(self):
        self.now = AFTER_REMINDER
        self.manager.create("e1", "11999990001", "Ana", "Corte", APPOINTMENT)

        new_time = datetime(2024, 1, 17, 19, 0, tzinfo=BUSINESS_TZ)
        outcome = self.manager.migrate("e1", "e2", "11999990001", "Ana", "Corte", new_time)

        self.assertEqual(outcome.action, "migrated")
        row = self.manager.pending_for("e2")
        self.assertFalse(row.sent)
        self.assertIsNone(row.error)
        self.assertIsNone(row.sent_at)
        self.assertEqual(len(self.rows()), 1)

    def test_migrate_into_the_past_keeps_the_contact_on_the_new_event(self):
        self.manager.create("e1", "11999990001", "Ana", "Corte", APPOINTMENT)
        soon = datetime(2024, 1, 10, 9, 0, tzinfo=BUSINESS_TZ)
        outcome = self.manager.migrate("e1", "e2", "11999990001", "Ana", "Corte", soon)

        self.assertEqual(outcome.action, "contact_only")
        rows = self.rows()
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].event_id, "e2")
        self.assertTrue(rows[0].is_contact_only)
        self.assertEqual(self.manager.resolve_phone("e2"), "11999990001")

    def test_migrate_without_previous_row_creates(self):
        outcome = self.manager.migrate("missing", "e2", "11999990001", "Ana", "Corte", APPOINTMENT)
        self.assertEqual(outcome.action, "created")

    def test_resolve_phone_uses_contact_only_rows(self):
        self.now = AFTER_REMINDER
        self.manager.create("e1", "11999990001", "Ana", "Corte", APPOINTMENT)
        self.assertEqual(self.manager.resolve_phone("e1"), "11999990001")
        self.assertIsNone(self.manager.resolve_phone("unknown"))
        self.assertIsNone(self.manager.resolve_phone(None))

    def test_missing_fields_are_skipped(self):
        outcome = self.manager.create("e1", "", "Ana", "Corte", APPOINTMENT)
        self.assertEqual(outcome.action, "skipped")
        self.assertFalse(outcome.stored)
        self.assertEqual(self.rows(), [])


class TestNaiveUtcColumns(ReminderTestCase):
    def test_datetime_columns_are_naive(self):
        for column in ("appointment_time", "reminder_time", "sent_at", "created_at"):
            self.assertFalse(ScheduledReminder.__table__.c[column].type.timezone, column)
        self.assertFalse(Client.__table__.c.created_at.type.timezone)

    def test_created_reminder_reloads_from_a_new_session(self):
        outcome = self.manager.create("e1", "11999990001", "Ana", "Corte", APPOINTMENT)
        self.assertTrue(outcome.stored)

        with Session(self.session.get_bind()) as other:
            row = other.exec(select(ScheduledReminder)).one()
        self.assertEqual(row.reminder_time, datetime(2024, 1, 10, 12, 0))
        self.assertEqual(row.appointment_time, datetime(2024, 1, 10, 22, 0))
        self.assertIsNone(row.reminder_time.tzinfo)

    def test_client_is_stored(self):
        self.session.add(Client(name="Ana Souza", phone="11999990001"))
        self.session.commit()
        client = self.session.exec(select(Client)).one()
        self.assertIsNone(client.created_at.tzinfo)


class TestReminderDispatcher(ReminderTestCase, unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        super().setUp()
        self.messenger = FakeMessenger()
        self.dispatch_at = datetime(2024, 1, 10, 12, 5)
        self.dispatcher = ReminderDispatcher(self.session, self.messenger, now=lambda: self.dispatch_at)

    def add_row(self, event_id, created_at, reminder_time=datetime(2024, 1, 10, 12, 0), **extra):
        row = ScheduledReminder(
            event_id=event_id,
            client_phone="11999990001",
            client_name="Ana",
            service_name="Corte",
            appointment_time=datetime(2024, 1, 10, 22, 0),
            reminder_time=reminder_time,
            created_at=created_at,
            **extra,
        )
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row

    async def test_sends_due_reminders_with_local_hour(self):
        self.manager.create("e1", "11999990001", "Ana", "Corte", APPOINTMENT)

        report = await self.dispatcher.dispatch_due()

        self.assertEqual(report.sent, 1)
        phone, message = self.messenger.sent[0]
        self.assertEqual(phone, "11999990001")
        self.assertIn("Ana", message)
        self.assertIn("19:00", message)
        self.assertIn("Corte", message)
        row = self.rows()[0]
        self.assertTrue(row.sent)
        self.assertEqual(row.sent_at, self.dispatch_at)
        self.assertIsNone(row.error)

    async def test_future_and_contact_only_rows_are_not_sent(self):
        self.add_row("e1", datetime(2024, 1, 9), reminder_time=datetime(2024, 1, 10, 13, 0))
        self.add_row("e2", datetime(2024, 1, 9), sent=True, error="contact_only:reminder_time_passed")

        report = await self.dispatcher.dispatch_due()

        self.assertEqual(report.sent, 0)
        self.assertEqual(self.messenger.sent, [])

    async def test_only_latest_row_per_event_is_sent(self):
        old = self.add_row("e1", datetime(2024, 1, 8))
        new = self.add_row("e1", datetime(2024, 1, 9))

        report = await self.dispatcher.dispatch_due()

        self.assertEqual(report.sent, 1)
        self.assertEqual(report.duplicates_skipped, 1)
        self.assertEqual(len(self.messenger.sent), 1)
        self.session.refresh(old)
        self.session.refresh(new)
        self.assertEqual(old.error, "duplicate_skipped")
        self.assertTrue(new.sent)
        self.assertIsNone(new.error)

    async def test_failed_send_is_recorded_and_not_retried(self):
        self.add_row("e1", datetime(2024, 1, 9))
        self.dispatcher.messenger = FakeMessenger(fail=True)

        report = await self.dispatcher.dispatch_due()

        self.assertEqual(report.failed, 1)
        self.assertEqual(len(report.errors), 1)
        row = self.rows()[0]
        self.assertFalse(row.sent)
        self.assertIn("falha simulada", row.error)

        again = await self.dispatcher.dispatch_due()
        self.assertEqual(again.failed, 0)
        self.assertEqual(again.sent, 0)


if __name__ == "__main__":
    unittest.main(verbosity=2)
