import unittest
from datetime import time

from agenda.core.errors import ValidationError
from agenda.models.business_hours import BusinessHours
from agenda.scheduling.slots import generate_slots, is_open


def hours(open_time="09:00", close_time="19:00", is_closed=False):
    return BusinessHours(
        weekday=0,
        is_closed=is_closed,
        open_time=time.fromisoformat(open_time) if open_time else None,
        close_time=time.fromisoformat(close_time) if close_time else None,
    )


class TestGenerateSlots(unittest.TestCase):
    def test_forty_minute_service_on_full_day(self):
        slots = generate_slots(hours(), 40, 10)
        self.assertEqual(slots[0], "09:00")
        self.assertEqual(slots[1], "09:10")
        # 18:20 + 40min termina exatamente no fechamento
        self.assertEqual(slots[-1], "18:20")
        self.assertEqual(len(slots), 57)

    def test_no_slot_ends_after_closing(self):
        for duration in (10, 25, 30, 45, 50, 90):
            for slot in generate_slots(hours("09:00", "12:00"), duration, 10):
                h, m = map(int, slot.split(":"))
                self.assertLessEqual(h * 60 + m + duration, 12 * 60)

    def test_step_is_independent_of_duration(self):
        self.assertEqual(generate_slots(hours("09:00", "10:00"), 30, 15), ["09:00", "09:15", "09:30"])

    def test_closed_day_has_no_slots(self):
        self.assertEqual(generate_slots(hours(is_closed=True), 30), [])
        self.assertEqual(generate_slots(None, 30), [])

    def test_service_longer_than_day(self):
        self.assertEqual(generate_slots(hours("09:00", "10:00"), 90), [])

    def test_invalid_duration_or_step(self):
        with self.assertRaises(ValidationError):
            generate_slots(hours(), 0)
        with self.assertRaises(ValidationError):
            generate_slots(hours(), 30, 0)


class TestIsOpen(unittest.TestCase):
    def test_is_open(self):
        self.assertTrue(is_open(hours()))
        self.assertFalse(is_open(hours(is_closed=True)))
        self.assertFalse(is_open(hours(open_time=None)))
        self.assertFalse(is_open(None))


if __name__ == "__main__":
    unittest.main(verbosity=2)
