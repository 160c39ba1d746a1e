import unittest
from datetime import date, timedelta
from decimal import Decimal

from spendsmart.models.obligation import Frequency, Kind
from spendsmart.services.errors import ValidationError
from spendsmart.services.recurrence import (
    DueState,
    advance,
    classify,
    is_due,
    is_exhausted,
    monthly_equivalent,
    needs_reminder,
    next_for,
)
from tests.fakes import make_ob


class TestAdvance(unittest.TestCase):
    def test_weekly_adds_seven_days(self):
        self.assertEqual(advance(date(2024, 12, 28), Frequency.WEEKLY), date(2025, 1, 4))

    def test_month_end_is_clamped(self):
        self.assertEqual(advance(date(2024, 1, 31), Frequency.MONTHLY), date(2024, 2, 29))
        self.assertEqual(advance(date(2023, 1, 31), Frequency.MONTHLY), date(2023, 2, 28))
        self.assertEqual(advance(date(2024, 3, 31), Frequency.MONTHLY), date(2024, 4, 30))

    def test_anchor_day_comes_back(self):
        self.assertEqual(
            advance(date(2024, 2, 29), Frequency.MONTHLY, anchor_day=31), date(2024, 3, 31)
        )
        self.assertEqual(
            advance(date(2024, 4, 30), Frequency.MONTHLY, anchor_day=31), date(2024, 5, 31)
        )

    def test_quarterly_and_yearly(self):
        self.assertEqual(advance(date(2024, 11, 30), Frequency.QUARTERLY), date(2025, 2, 28))
        self.assertEqual(advance(date(2024, 2, 29), Frequency.YEARLY), date(2025, 2, 28))
        self.assertEqual(advance(date(2024, 12, 15), Frequency.MONTHLY), date(2025, 1, 15))

    def test_accepts_plain_strings(self):
        self.assertEqual(advance(date(2024, 1, 1), "quarterly"), date(2024, 4, 1))

    def test_always_strictly_later(self):
        d = date(2023, 1, 1)
        while d < date(2025, 12, 31):
            for f in Frequency:
                self.assertGreater(advance(d, f), d, (d, f))
                self.assertGreater(advance(d, f, anchor_day=31), d, (d, f))
            d += timedelta(days=1)

    def test_unknown_frequency(self):
        with self.assertRaises(ValidationError):
            advance(date(2024, 1, 1), "daily")

    def test_next_for_uses_start_day(self):
        ob = make_ob(start_date=date(2024, 1, 31), next_occurrence=date(2024, 2, 29))
        self.assertEqual(next_for(ob), date(2024, 3, 31))


class TestClassify(unittest.TestCase):
    today = date(2024, 3, 10)

    def state(self, offset):
        return classify(self.today + timedelta(days=offset), self.today)

    def test_boundaries(self):
        self.assertIs(self.state(-1), DueState.OVERDUE)
        self.assertIs(self.state(-40), DueState.OVERDUE)
        self.assertIs(self.state(0), DueState.DUE_TODAY)
        self.assertIs(self.state(1), DueState.DUE_SOON)
        self.assertIs(self.state(7), DueState.DUE_SOON)
        self.assertIs(self.state(8), DueState.UPCOMING)
        self.assertIs(self.state(30), DueState.UPCOMING)
        self.assertIs(self.state(31), DueState.FUTURE)

    def test_due_is_overdue_or_today(self):
        due = {s for s in DueState if is_due(s)}
        self.assertEqual(due, {DueState.OVERDUE, DueState.DUE_TODAY})

    def test_every_offset_gets_a_state(self):
        seen = {self.state(n) for n in range(-60, 61)}
        self.assertEqual(seen, set(DueState))


class TestObligationState(unittest.TestCase):
    def test_exhausted_only_after_end_date(self):
        ob = make_ob(next_occurrence=date(2024, 6, 30), end_date=date(2024, 6, 30))
        self.assertFalse(is_exhausted(ob))
        self.assertTrue(is_exhausted(ob.with_changes(next_occurrence=date(2024, 7, 31))))
        self.assertFalse(is_exhausted(ob.with_changes(end_date=None)))

    def test_reminder_window(self):
        ob = make_ob(next_occurrence=date(2024, 3, 13), reminder_days=3)
        self.assertTrue(needs_reminder(ob, date(2024, 3, 10)))
        self.assertTrue(needs_reminder(ob, date(2024, 3, 13)))
        self.assertFalse(needs_reminder(ob, date(2024, 3, 9)))
        self.assertFalse(needs_reminder(ob, date(2024, 3, 14)))
        self.assertFalse(needs_reminder(ob.with_changes(is_active=False), date(2024, 3, 10)))
        self.assertFalse(needs_reminder(ob.with_changes(reminder_days=None), date(2024, 3, 10)))
        self.assertFalse(needs_reminder(ob.with_changes(kind=Kind.INCOME), date(2024, 3, 10)))

    def test_monthly_equivalent(self):
        self.assertEqual(monthly_equivalent(Decimal("120"), Frequency.WEEKLY), Decimal("520.00"))
        self.assertEqual(monthly_equivalent(Decimal("80"), Frequency.MONTHLY), Decimal("80.00"))
        self.assertEqual(monthly_equivalent(Decimal("300"), Frequency.QUARTERLY), Decimal("100.00"))
        self.assertEqual(monthly_equivalent(Decimal("1200"), Frequency.YEARLY), Decimal("100.00"))


if __name__ == "__main__":
    unittest.main()
