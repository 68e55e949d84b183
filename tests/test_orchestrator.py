import unittest
from datetime import date, datetime, time, timedelta

from agenda.core.errors import ConflictError, UpstreamError, ValidationError
from agenda.integrations.notifier import TAG_DELETED, TAG_NEW, TAG_RESCHEDULED
from agenda.models.appointment import BookingRequest, RecurringBookingRequest
from agenda.models.business_hours import BusinessHours
from agenda.models.client import Client
from agenda.models.service import Service
from agenda.orchestrator import SchedulingOrchestrator
from agenda.reminders import ReminderLifecycleManager
from agenda.scheduling.availability import AvailabilityPlanner
from agenda.scheduling.matching import NormalizedNameMatcher
from tests.fakes import FakeCalendarStore, FakeMessenger, RecordingNotifier, appt, memory_session

MONDAY = date(2024, 1, 1)


class OrchestratorTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.session = memory_session()
        for weekday in range(6):
            self.session.add(BusinessHours(weekday=weekday, open_time=time(9, 0), close_time=time(19, 0)))
        self.session.add(BusinessHours(weekday=6, is_closed=True))
        self.session.add(Service(name="Corte", duration_minutes=30, price=40.0))
        self.session.add(Service(name="Barba", duration_minutes=20, price=30.0))
        self.session.commit()

        self.clients = [
            Client(id=1, name="Gabriel Silva", phone="11999990001"),
            Client(id=2, name="Márcia Lima", phone="11999990003"),
        ]
        self.calendar = FakeCalendarStore()
        self.messenger = FakeMessenger()
        self.notifier = RecordingNotifier()
        self.reminders = ReminderLifecycleManager(self.session, now=lambda: datetime(2023, 12, 1, 12, 0))
        self.orchestrator = self.make_orchestrator()

    def tearDown(self):
        self.session.close()

    def make_orchestrator(self, enforce=True):
        planner = AvailabilityPlanner(self.session, self.calendar)
        return SchedulingOrchestrator(
            calendar=self.calendar,
            messenger=self.messenger,
            notifier=self.notifier,
            reminders=self.reminders,
            clients=NormalizedNameMatcher(self.clients),
            catalog=planner.catalog(),
            planner=planner,
            enforce_availability=enforce,
        )

    def request(self, client_name="Gabriel Silva", service="Corte", day=MONDAY, start="10:00", **extra):
        return BookingRequest(
            client_name=client_name, service=service, date=day, start_time=time.fromisoformat(start), **extra
        )


class TestBook(OrchestratorTestCase):
    async def test_book_creates_event_reminder_and_confirmation(self):
        result = await self.orchestrator.book(self.request())

        event = self.calendar.created[0]
        self.assertEqual(result.event_id, event["id"])
        self.assertEqual(event["summary"], "Corte - Gabriel Silva")
        self.assertEqual(event["description"], "Valor: R$ 40.00")
        self.assertEqual(event["start"]["dateTime"], "2024-01-01T10:00:00-03:00")
        self.assertEqual(event["end"]["dateTime"], "2024-01-01T10:30:00-03:00")

        self.assertTrue(result.reminder.scheduled)
        self.assertEqual(self.reminders.pending_for(result.event_id).client_phone, "11999990001")

        self.assertTrue(result.whatsapp_sent)
        phone, message = self.messenger.sent[0]
        self.assertEqual(phone, "11999990001")
        self.assertIn("confirmado", message)
        self.assertEqual(self.notifier.tags, [TAG_NEW])

    async def test_multi_service_duration_and_price(self):
        await self.orchestrator.book(self.request(service="Corte + Barba"))
        event = self.calendar.created[0]
        self.assertEqual(event["end"]["dateTime"], "2024-01-01T10:50:00-03:00")
        self.assertEqual(event["description"], "Valor: R$ 70.00")

    async def test_missing_fields_fail_before_any_call(self):
        with self.assertRaises(ValidationError):
            await self.orchestrator.book(self.request(service="  "))
        with self.assertRaises(ValidationError):
            await self.orchestrator.book(self.request(client_name=""))
        self.assertEqual(self.calendar.created, [])
        self.assertEqual(self.calendar.list_calls, [])

    async def test_end_past_midnight(self):
        orchestrator = self.make_orchestrator(enforce=False)
        with self.assertRaises(ValidationError):
            await orchestrator.book(self.request(start="23:50"))

    async def test_conflict_is_raised_before_creating(self):
        self.calendar.add(appt(None, "Márcia Lima", "Corte", MONDAY, "10:00", "10:30"))
        with self.assertRaises(ConflictError):
            await self.orchestrator.book(self.request(start="10:15"))
        self.assertEqual(self.calendar.created, [])

    async def test_availability_check_can_be_disabled(self):
        self.calendar.add(appt(None, "Márcia Lima", "Corte", MONDAY, "10:00", "10:30"))
        result = await self.make_orchestrator(enforce=False).book(self.request(start="10:15"))
        self.assertTrue(result.event_id)

    async def test_calendar_failure_aborts(self):
        self.calendar.fail_create_if = lambda start_iso: True
        with self.assertRaises(UpstreamError):
            await self.orchestrator.book(self.request())
        self.assertEqual(self.messenger.sent, [])
        self.assertEqual(self.notifier.notifications, [])

    async def test_whatsapp_failure_does_not_undo_booking(self):
        self.orchestrator.messenger = FakeMessenger(fail=True)
        result = await self.orchestrator.book(self.request())
        self.assertFalse(result.whatsapp_sent)
        self.assertIn(result.event_id, self.calendar.events)

    async def test_unknown_client_without_phone(self):
        result = await self.orchestrator.book(self.request(client_name="Visitante"))
        self.assertIsNone(result.reminder)
        self.assertFalse(result.whatsapp_sent)
        self.assertEqual(self.messenger.sent, [])

    async def test_explicit_phone_wins(self):
        await self.orchestrator.book(self.request(client_name="Visitante", client_phone="21988887777"))
        self.assertEqual(self.messenger.sent[0][0], "21988887777")


class TestBookRecurring(OrchestratorTestCase):
    async def test_four_weekly_occurrences(self):
        request = RecurringBookingRequest(
            client_name="Gabriel Silva", service="Corte", date=MONDAY, start_time=time(10, 0), weeks=4
        )
        result = await self.orchestrator.book_recurring(request)

        self.assertEqual((result.succeeded, result.failed), (4, 0))
        starts = [e["start"]["dateTime"][:10] for e in self.calendar.created]
        self.assertEqual(starts, ["2024-01-01", "2024-01-08", "2024-01-15", "2024-01-22"])

        # confirmação da primeira semana + resumo do horário fixo
        self.assertEqual(len(self.messenger.sent), 2)
        self.assertIn("Horário fixo semanal", self.messenger.sent[1][1])
        self.assertIn("4 semana(s)", self.messenger.sent[1][1])
        self.assertTrue(result.whatsapp_sent)
        self.assertEqual(self.notifier.notifications, [])

    async def test_conflicting_week_counts_as_failure(self):
        self.calendar.add(appt(None, "Márcia Lima", "Corte", date(2024, 1, 15), "10:00", "10:30"))
        request = RecurringBookingRequest(
            client_name="Gabriel Silva", service="Corte", date=MONDAY, start_time=time(10, 0), weeks=4
        )
        result = await self.orchestrator.book_recurring(request)

        self.assertEqual((result.succeeded, result.failed), (3, 1))
        self.assertIn("3 semana(s)", self.messenger.sent[-1][1])

    async def test_invalid_weeks(self):
        request = RecurringBookingRequest(
            client_name="Gabriel Silva", service="Corte", date=MONDAY, start_time=time(10, 0), weeks=0
        )
        with self.assertRaises(ValidationError):
            await self.orchestrator.book_recurring(request)


class TestCancel(OrchestratorTestCase):
    async def book_series(self, weeks=4, client_name="Gabriel Silva"):
        request = RecurringBookingRequest(
            client_name=client_name, service="Corte", date=MONDAY, start_time=time(10, 0), weeks=weeks
        )
        result = await self.orchestrator.book_recurring(request)
        return [self.calendar.events[i] for i in result.event_ids]

    async def test_cancel_single(self):
        booked = await self.orchestrator.book(self.request())
        result = await self.orchestrator.cancel(booked.appointment)

        self.assertEqual((result.deleted_count, result.error_count), (1, 0))
        self.assertTrue(result.whatsapp_sent)
        self.assertIn("cancelado", self.messenger.sent[-1][1])
        self.assertEqual(self.notifier.tags[-1], TAG_DELETED)

    async def test_cancel_series_sends_one_message(self):
        series = await self.book_series()
        sent_before = len(self.messenger.sent)

        result = await self.orchestrator.cancel(series[0], mode="series")

        self.assertEqual((result.deleted_count, result.error_count), (4, 0))
        self.assertEqual(self.calendar.events, {})
        self.assertEqual(len(self.messenger.sent) - sent_before, 1)
        self.assertIn("4 agendamento(s)", self.messenger.sent[-1][1])
        self.assertEqual(self.notifier.tags.count(TAG_DELETED), 1)

    async def test_series_lookup_window(self):
        series = await self.book_series(weeks=2)
        await self.orchestrator.cancel(series[0], mode="series")
        self.assertEqual(
            self.calendar.list_calls[-1],
            ("2024-01-01T00:00:00-03:00", (MONDAY + timedelta(days=366)).isoformat() + "T00:00:00-03:00"),
        )

    async def test_series_cancel_continues_after_delete_failure(self):
        series = await self.book_series()
        self.calendar.fail_delete_ids = {series[2].id}

        result = await self.orchestrator.cancel(series[0], mode="series")

        self.assertEqual((result.deleted_count, result.error_count), (3, 1))
        self.assertIn("3 agendamento(s)", self.messenger.sent[-1][1])
        self.assertEqual(list(self.calendar.events), [series[2].id])

    async def test_nothing_deleted_skips_whatsapp_but_notifies(self):
        booked = await self.orchestrator.book(self.request())
        sent_before = len(self.messenger.sent)
        self.calendar.fail_delete_ids = {booked.event_id}

        result = await self.orchestrator.cancel(booked.appointment)

        self.assertEqual((result.deleted_count, result.error_count), (0, 1))
        self.assertFalse(result.whatsapp_sent)
        self.assertEqual(len(self.messenger.sent), sent_before)
        self.assertEqual(self.notifier.tags[-1], TAG_DELETED)

    async def test_phone_falls_back_to_reminder_record(self):
        booked = await self.orchestrator.book(self.request(client_name="Visitante", client_phone="21988887777"))
        result = await self.orchestrator.cancel(booked.appointment)
        self.assertTrue(result.whatsapp_sent)
        self.assertEqual(self.messenger.sent[-1][0], "21988887777")

    async def test_invalid_mode(self):
        booked = await self.orchestrator.book(self.request())
        with self.assertRaises(ValidationError):
            await self.orchestrator.cancel(booked.appointment, mode="all")


class TestReschedule(OrchestratorTestCase):
    async def test_single_reschedule_moves_event_and_reminder(self):
        booked = await self.orchestrator.book(self.request())

        result = await self.orchestrator.reschedule(booked.appointment, date(2024, 1, 11), time(15, 0))

        self.assertEqual((result.success_count, result.error_count), (1, 0))
        self.assertNotIn(booked.event_id, self.calendar.events)
        (moved,) = self.calendar.events.values()
        self.assertEqual((moved.date, moved.start_time, moved.end_time), (date(2024, 1, 11), time(15, 0), time(15, 30)))

        self.assertIsNone(self.reminders.pending_for(booked.event_id))
        self.assertIsNotNone(self.reminders.pending_for(moved.id))

        self.assertTrue(result.whatsapp_sent)
        self.assertIn("reagendado", self.messenger.sent[-1][1])
        self.assertEqual(self.notifier.tags[-1], TAG_RESCHEDULED)

    async def test_series_keeps_day_offsets(self):
        request = RecurringBookingRequest(
            client_name="Gabriel Silva", service="Corte", date=MONDAY, start_time=time(10, 0), weeks=2
        )
        booked = await self.orchestrator.book_recurring(request)
        anchor = self.calendar.events[booked.event_ids[0]]
        sent_before = len(self.messenger.sent)

        result = await self.orchestrator.reschedule(anchor, MONDAY + timedelta(days=10), "16:00", mode="series")

        self.assertEqual((result.success_count, result.error_count), (2, 0))
        moved = sorted(self.calendar.events.values(), key=lambda a: a.date)
        self.assertEqual([a.date for a in moved], [MONDAY + timedelta(days=10), MONDAY + timedelta(days=17)])
        self.assertTrue(all(a.start_time == time(16, 0) for a in moved))
        self.assertEqual(len(self.messenger.sent) - sent_before, 1)

    async def test_failed_create_restores_old_event(self):
        booked = await self.orchestrator.book(self.request())
        sent_before = len(self.messenger.sent)
        self.calendar.fail_create_if = lambda start_iso: start_iso.startswith("2024-01-11")

        result = await self.orchestrator.reschedule(booked.appointment, date(2024, 1, 11), time(15, 0))

        self.assertEqual((result.success_count, result.error_count, result.restored_count), (0, 1, 1))
        (restored,) = self.calendar.events.values()
        self.assertNotEqual(restored.id, booked.event_id)
        self.assertEqual((restored.date, restored.start_time), (MONDAY, time(10, 0)))
        self.assertIsNotNone(self.reminders.pending_for(restored.id))
        # o cliente recebe um aviso único mesmo sem evento movido
        self.assertTrue(result.whatsapp_sent)
        self.assertEqual(len(self.messenger.sent) - sent_before, 1)
        self.assertEqual(self.notifier.tags[-1], TAG_RESCHEDULED)

    async def test_failed_delete_keeps_original(self):
        booked = await self.orchestrator.book(self.request())
        self.calendar.fail_delete_ids = {booked.event_id}

        result = await self.orchestrator.reschedule(booked.appointment, date(2024, 1, 11), time(15, 0))

        self.assertEqual((result.success_count, result.error_count), (0, 1))
        self.assertEqual(list(self.calendar.events), [booked.event_id])
        self.assertEqual(self.notifier.tags[-1], TAG_RESCHEDULED)

    async def test_invalid_time(self):
        booked = await self.orchestrator.book(self.request())
        with self.assertRaises(ValidationError):
            await self.orchestrator.reschedule(booked.appointment, date(2024, 1, 11), "25:00")
        with self.assertRaises(ValidationError):
            await self.orchestrator.reschedule(booked.appointment, date(2024, 1, 11), "23:45")


if __name__ == "__main__":
    unittest.main(verbosity=2)
