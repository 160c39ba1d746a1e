import unittest
from datetime import date
from decimal import Decimal

from spendsmart.models.obligation import Contribution, Frequency, Kind
from spendsmart.services.errors import DuplicateError, NotFoundError
from spendsmart.services.store import ObligationStore
from tests.fakes import make_ob

TODAY = date(2024, 3, 10)


class TestObligationStore(unittest.TestCase):
    def setUp(self):
        self.rent = make_ob(1, next_occurrence=date(2024, 3, 7))
        self.salary = make_ob(
            2, name="Salary", kind=Kind.INCOME, category="Salary",
            amount=Decimal("3000.00"), start_date=date(2024, 1, 10),
            next_occurrence=date(2024, 3, 10),
        )
        self.gym = make_ob(
            3, name="Gym", category="gym stuff", amount=Decimal("10.00"),
            frequency=Frequency.WEEKLY, start_date=date(2024, 3, 1),
            next_occurrence=date(2024, 3, 15),
        )
        self.old = make_ob(
            4, name="Loan", start_date=date(2023, 1, 5),
            next_occurrence=date(2024, 2, 5), end_date=date(2024, 1, 31),
        )
        self.paused = make_ob(5, name="Paused", next_occurrence=date(2024, 3, 1), is_active=False)
        self.store = ObligationStore([self.rent, self.salary, self.gym, self.old, self.paused])

    def test_views(self):
        self.assertEqual(len(self.store), 5)
        self.assertIn(3, self.store)
        self.assertNotIn(99, self.store)
        self.assertIsNone(self.store.by_id(99))
        self.assertEqual([o.id for o in self.store.inactive()], [5])
        self.assertEqual([o.id for o in self.store.of_kind("income")], [2])
        with self.assertRaises(NotFoundError):
            self.store.get(99)

    def test_due_excludes_paused_and_exhausted(self):
        due = self.store.due_on_or_before(TODAY)
        self.assertEqual([o.id for o in due], [1, 2])

    def test_due_after_toggle_off(self):
        self.store.set_active(1, False)
        self.assertEqual([o.id for o in self.store.due_on_or_before(TODAY)], [2])

    def test_upcoming_window(self):
        store = ObligationStore([
            make_ob(10, start_date=date(2024, 1, 1), next_occurrence=date(2024, 3, 3)),
            make_ob(11, start_date=date(2024, 1, 1), next_occurrence=date(2024, 3, 2)),
            make_ob(12, start_date=date(2024, 1, 1), next_occurrence=date(2024, 4, 9)),
            make_ob(13, start_date=date(2024, 1, 1), next_occurrence=date(2024, 4, 10)),
        ])
        self.assertEqual([o.id for o in store.upcoming(TODAY)], [10, 12])

    def test_by_category_buckets_unknown(self):
        cats = self.store.by_category(Kind.EXPENSE)
        self.assertEqual(cats, {"Other": Decimal("43.33"), "Rent": Decimal("1200.00")})

    def test_summary(self):
        s = self.store.summary(TODAY)
        self.assertEqual((s.active, s.inactive, s.due), (4, 1, 2))
        self.assertEqual(s.monthly_income, Decimal("3000.00"))
        self.assertEqual(s.monthly_expense, Decimal("1243.33"))

    def test_insert_duplicate(self):
        with self.assertRaises(DuplicateError):
            self.store.insert(make_ob(1))

    def test_replace_returns_previous(self):
        prev = self.store.replace(self.rent.with_changes(name="Flat"))
        self.assertIs(prev, self.rent)
        self.assertEqual(self.store.get(1).name, "Flat")

    def test_remove_and_restore_keep_contributions(self):
        c = Contribution(7, 1, Decimal("1200.00"), date(2024, 2, 29))
        self.store.add_contribution(c)
        ob, contribs = self.store.remove(1)
        self.assertNotIn(1, self.store)
        self.assertEqual(contribs, [c])
        self.assertEqual(self.store.contributions_for(1), [])
        self.store.restore(ob, contribs)
        self.assertIs(self.store.get(1), self.rent)
        self.assertEqual(self.store.contributions_for(1), [c])

    def test_rekey_keeps_order_and_contributions(self):
        local = make_ob(self.store.next_local_id(), name="New")
        self.assertEqual(local.id, -1)
        self.store.insert(local)
        self.store.add_contribution(Contribution(9, -1, Decimal("1"), TODAY))
        moved = self.store.rekey(-1, 42)
        self.assertEqual(moved.id, 42)
        self.assertNotIn(-1, self.store)
        self.assertEqual([o.id for o in self.store.all()], [1, 2, 3, 4, 5, 42])
        self.assertEqual(self.store.contributions_for(42)[0].obligation_id, 42)
        with self.assertRaises(DuplicateError):
            self.store.rekey(42, 1)

    def test_local_ids_stay_negative(self):
        self.assertEqual(ObligationStore().next_local_id(), -1)
        self.store.insert(make_ob(-1))
        self.assertEqual(self.store.next_local_id(), -2)


if __name__ == "__main__":
    unittest.main()
