import asyncio
import unittest

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from spendsmart.core.scheduler import UndoScheduler
from spendsmart.services.mutations import MutationEngine
from spendsmart.services.store import ObligationStore
from tests.fakes import FakeLedger, FakePersistence, make_ob


class TestUndoScheduler(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.aps = AsyncIOScheduler(timezone="UTC")
        self.aps.start()
        self.undo = UndoScheduler(self.aps)

    async def asyncTearDown(self):
        self.aps.shutdown(wait=False)

    async def test_job_fires_after_delay(self):
        fired = asyncio.Event()

        async def job():
            fired.set()

        self.undo.schedule("undo:t:1", 0.05, job)
        await asyncio.wait_for(fired.wait(), timeout=3)

    async def test_cancel_before_delay(self):
        fired = asyncio.Event()

        async def job():
            fired.set()

        self.undo.schedule("undo:t:2", 0.3, job)
        self.assertTrue(self.undo.cancel("undo:t:2"))
        await asyncio.sleep(0.6)
        self.assertFalse(fired.is_set())
        self.assertFalse(self.undo.cancel("undo:t:2"))

    async def test_engine_delete_reaches_storage_after_window(self):
        persistence = FakePersistence([make_ob(1)])
        store = ObligationStore([make_ob(1)])
        engine = MutationEngine(
            store, persistence, FakeLedger(), self.undo, undo_seconds=0.05, scope="t",
        )
        await engine.delete(1)
        for _ in range(60):
            if not engine.is_busy(1):
                break
            await asyncio.sleep(0.05)
        self.assertEqual(persistence.ops(), ["delete"])
        self.assertFalse(engine.undo(1))

    async def test_engine_undo_cancels_job(self):
        persistence = FakePersistence([make_ob(1)])
        store = ObligationStore([make_ob(1)])
        engine = MutationEngine(
            store, persistence, FakeLedger(), self.undo, undo_seconds=0.3, scope="t",
        )
        await engine.delete(1)
        self.assertIsNotNone(self.aps.get_job("undo:t:1"))
        self.assertTrue(engine.undo(1))
        self.assertIsNone(self.aps.get_job("undo:t:1"))
        await asyncio.sleep(0.5)
        self.assertEqual(persistence.ops(), [])
        self.assertIn(1, store)


if __name__ == "__main__":
    unittest.main()
