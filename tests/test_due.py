import asyncio
import unittest
from datetime import date
from decimal import Decimal

from spendsmart.models.obligation import Frequency, Kind
from spendsmart.services.due import DueProcessor
from spendsmart.services.errors import PersistenceFailure
from spendsmart.services.mutations import MutationEngine
from spendsmart.services.store import ObligationStore
from tests.fakes import FakeLedger, FakePersistence, FakeScheduler, make_ob

TODAY = date(2024, 3, 10)


class TestDueProcessor(unittest.IsolatedAsyncioTestCase):
    def build(self, *records):
        self.store = ObligationStore(records)
        self.persistence = FakePersistence(records)
        self.ledger = FakeLedger()
        self.engine = MutationEngine(
            self.store, self.persistence, self.ledger, FakeScheduler(), today=lambda: TODAY,
        )
        self.processor = DueProcessor(self.engine)

    async def test_overdue_paid_once(self):
        self.build(make_ob(1, start_date=date(2024, 1, 7), next_occurrence=date(2024, 3, 7)))
        run = await self.processor.process_due()
        self.assertEqual((run.executed_count, run.skipped_count), (1, 0))
        self.assertEqual(len(self.ledger.postings), 1)
        posting = next(iter(self.ledger.postings.values()))
        self.assertEqual(posting.day, date(2024, 3, 7))
        self.assertEqual(self.store.get(1).next_occurrence, date(2024, 4, 7))
        self.assertEqual(run.results[0].posting_id, posting.id)
        self.assertTrue(run.results[0].ok)

    async def test_second_run_same_day_does_nothing(self):
        self.build(make_ob(1, start_date=date(2024, 1, 10), next_occurrence=TODAY))
        first = await self.processor.process_due(TODAY)
        second = await self.processor.process_due(TODAY)
        self.assertEqual(first.executed_count, 1)
        self.assertEqual(second.executed_count, 0)
        self.assertEqual(len(self.ledger.postings), 1)

    async def test_far_past_moves_one_step_per_run(self):
        self.build(make_ob(
            1, frequency=Frequency.WEEKLY, start_date=date(2024, 1, 1),
            next_occurrence=date(2024, 1, 1),
        ))
        run = await self.processor.process_due()
        self.assertEqual(run.executed_count, 1)
        self.assertEqual(self.store.get(1).next_occurrence, date(2024, 1, 8))
        run = await self.processor.process_due()
        self.assertEqual(run.executed_count, 1)
        self.assertEqual(self.store.get(1).next_occurrence, date(2024, 1, 15))
        self.assertEqual(self.store.get(1).execution_count, 2)
        self.assertEqual(
            sorted(p.day for p in self.ledger.postings.values()),
            [date(2024, 1, 1), date(2024, 1, 8)],
        )

    async def test_ignores_paused_finished_and_future(self):
        self.build(
            make_ob(1, next_occurrence=date(2024, 3, 1), is_active=False),
            make_ob(2, start_date=date(2023, 1, 5), next_occurrence=date(2024, 2, 5),
                    end_date=date(2024, 1, 31)),
            make_ob(3, start_date=date(2024, 3, 11)),
            make_ob(4, kind=Kind.INCOME, category="Salary", amount=Decimal("10"),
                    start_date=date(2024, 2, 10), next_occurrence=date(2024, 3, 10)),
        )
        run = await self.processor.process_due()
        self.assertEqual(run.executed_count, 1)
        self.assertEqual([r.obligation_id for r in run.results], [4])
        self.assertIs(next(iter(self.ledger.postings.values())).kind, Kind.INCOME)

    async def test_failure_does_not_stop_the_run(self):
        self.build(
            make_ob(1, start_date=date(2024, 1, 5), next_occurrence=date(2024, 3, 5)),
            make_ob(2, start_date=date(2024, 1, 6), next_occurrence=date(2024, 3, 6)),
        )
        self.ledger.fail.add("create")
        run = await self.processor.process_due()
        self.assertEqual((run.executed_count, run.skipped_count), (0, 2))
        self.assertEqual(len(run.failures), 2)
        self.assertIsInstance(run.failures[0].error, PersistenceFailure)
        self.assertEqual(self.store.get(1).next_occurrence, date(2024, 3, 5))

    async def test_busy_obligation_is_skipped(self):
        self.build(
            make_ob(1, start_date=date(2024, 1, 5), next_occurrence=date(2024, 3, 5)),
            make_ob(2, start_date=date(2024, 1, 6), next_occurrence=date(2024, 3, 6)),
        )
        self.persistence.gate = asyncio.Event()
        edit = asyncio.create_task(self.engine.update(1, name="Flat"))
        while not self.engine.is_busy(1):
            await asyncio.sleep(0)

        run_task = asyncio.create_task(self.processor.process_due())
        await asyncio.sleep(0)
        self.persistence.gate.set()
        run = await run_task
        await edit

        self.assertEqual((run.executed_count, run.skipped_count), (1, 1))
        self.assertEqual(self.store.get(1).next_occurrence, date(2024, 3, 5))
        self.assertEqual(self.store.get(2).next_occurrence, date(2024, 4, 6))

    async def start_batch_held_on_first(self):
        self.build(
            make_ob(1, start_date=date(2024, 1, 5), next_occurrence=date(2024, 3, 5)),
            make_ob(2, start_date=date(2024, 1, 6), next_occurrence=date(2024, 3, 6)),
        )
        self.persistence.hold[1] = asyncio.Event()
        run_task = asyncio.create_task(self.processor.process_due())
        while not self.engine.is_busy(1):
            await asyncio.sleep(0)
        return run_task

    async def test_paid_by_user_during_run_is_not_paid_again(self):
        run_task = await self.start_batch_held_on_first()
        await self.engine.pay(2)
        self.persistence.hold[1].set()
        run = await run_task

        self.assertEqual((run.executed_count, run.skipped_count), (1, 1))
        self.assertEqual(
            sorted(p.day for p in self.ledger.postings.values()),
            [date(2024, 3, 5), date(2024, 3, 6)],
        )
        ob2 = self.store.get(2)
        self.assertEqual(ob2.next_occurrence, date(2024, 4, 6))
        self.assertEqual(ob2.execution_count, 1)

    async def test_paused_during_run_is_skipped(self):
        run_task = await self.start_batch_held_on_first()
        await self.engine.toggle(2)
        self.persistence.hold[1].set()
        run = await run_task

        self.assertEqual((run.executed_count, run.skipped_count), (1, 1))
        self.assertEqual(run.failures, [])
        self.assertEqual(self.store.get(2).next_occurrence, date(2024, 3, 6))

    async def test_execute_due_response(self):
        self.build(make_ob(1, start_date=date(2024, 1, 10), next_occurrence=TODAY))
        self.assertEqual(
            await self.processor.execute_due(TODAY),
            {"executed_count": 1, "message": "Processed 1 recurring transactions"},
        )
        self.assertEqual(
            await self.processor.execute_due(TODAY),
            {"executed_count": 0, "message": "Processed 0 recurring transactions"},
        )


if __name__ == "__main__":
    unittest.main()
