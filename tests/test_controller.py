import unittest

from controller.simulation_controller import PhotonUpdate, RunSummary, SimulationController
from simulation.random_source import RandomSource
from simulation.settings import ConfigurationError, SimulatorSettings
from tests.sources import FixedSource


def _controller(photon_count=128, target=256, eve=False, source=None):
    settings = SimulatorSettings(photon_count=photon_count, eavesdropper_present=eve,
                                 target_key_bits=target)
    return SimulationController(settings=settings, interval_ms=0,
                                source=source or RandomSource(seed=10))


class TestSimulationController(unittest.IsolatedAsyncioTestCase):
    async def test_step_once_emits_one_update(self):
        controller = _controller()
        updates = []
        controller.on_photon(updates.append)

        outcome = await controller.step_once()

        self.assertIsInstance(outcome, PhotonUpdate)
        self.assertEqual(updates, [outcome])
        self.assertEqual(outcome.event.index, 1)
        self.assertEqual(outcome.statistics.total_photons, 1)
        self.assertEqual(outcome.frame.as_tuple()[1:],
                         (outcome.event.sender_basis, outcome.event.receiver_basis))
        self.assertFalse(controller.is_running)

    async def test_start_runs_until_complete(self):
        controller = _controller(photon_count=1024, source=FixedSource())
        summaries = []
        updates = []
        controller.on_complete(summaries.append)
        controller.on_photon(updates.append)

        await controller.start()
        await controller.wait()

        self.assertFalse(controller.is_running)
        self.assertEqual(len(summaries), 1)
        self.assertEqual(summaries[0].key, "0" * 256)
        self.assertTrue(summaries[0].key_complete)
        self.assertEqual(len(updates), 256)

    async def test_pause_and_resume_at_photon_boundary(self):
        controller = _controller(photon_count=128, target=None)
        seen = []

        async def pause_at_ten(update):
            seen.append(update.event.index)
            if update.event.index == 10:
                await controller.pause()

        controller.on_photon(pause_at_ten)
        await controller.start()
        await controller.wait()

        self.assertEqual(controller.run.steps_done, 10)
        self.assertFalse(controller.run.is_complete)

        await controller.resume()
        await controller.wait()

        self.assertTrue(controller.run.is_complete)
        self.assertEqual(seen, list(range(1, 129)))

    async def test_async_and_sync_listeners_both_run(self):
        controller = _controller()
        received = []

        async def async_listener(update):
            received.append(("async", update.event.index))

        controller.on_photon(lambda u: received.append(("sync", u.event.index)))
        controller.on_photon(async_listener)
        await controller.step_once()
        self.assertEqual(received, [("sync", 1), ("async", 1)])

    async def test_complete_skips_pacing_and_photon_updates(self):
        controller = _controller(photon_count=128)
        updates, summaries = [], []
        controller.on_photon(updates.append)
        controller.on_complete(summaries.append)

        summary = await controller.complete()

        self.assertIsInstance(summary, RunSummary)
        self.assertEqual(updates, [])
        self.assertEqual(summaries, [summary])
        self.assertEqual(summary.statistics.total_photons, 128)
        self.assertFalse(summary.key_complete)

        # Stepping a finished run reports the same summary again
        self.assertIs(await controller.step_once(), summary)
        self.assertEqual(len(summaries), 1)

    async def test_reset_and_resume_after_completion(self):
        controller = _controller(photon_count=128)
        logs = []
        controller.on_log(logs.append)

        await controller.complete()
        await controller.resume()
        self.assertFalse(controller.is_running)
        self.assertTrue(any("already complete" in m for m in logs))

        await controller.reset()
        self.assertEqual(controller.run.steps_done, 0)
        self.assertIsNone(controller.summary)
        self.assertIn("Reset.", logs)

    async def test_configure_validates_and_replaces_run(self):
        controller = _controller()
        await controller.step_once()

        await controller.configure(SimulatorSettings(photon_count=512, speed="slow",
                                                     eavesdropper_present=True))
        self.assertEqual(controller.run.steps_done, 0)
        self.assertEqual(controller.run.max_photons, 512)
        self.assertTrue(controller.run.eavesdropper_present)

        with self.assertRaises(ConfigurationError):
            await controller.configure(SimulatorSettings(photon_count=3))

    async def test_set_speed(self):
        controller = _controller()
        controller.set_speed("slow")
        self.assertEqual(controller.interval_ms, 100)
        with self.assertRaises(ConfigurationError):
            controller.set_speed("ludicrous")

    async def test_configure_replaces_construction_interval(self):
        controller = SimulationController(settings=SimulatorSettings(photon_count=128),
                                          interval_ms=300, source=RandomSource(seed=3))
        self.assertEqual(controller.interval_ms, 300)

        await controller.configure(SimulatorSettings(photon_count=128, speed="medium"))
        self.assertEqual(controller.interval_ms, 20)
        self.assertEqual(controller.state()["settings"]["speed"], "medium")

    async def test_state_snapshot(self):
        controller = _controller(eve=True, target=None)
        for _ in range(3):
            await controller.step_once()
        state = controller.state(recent=2)

        self.assertEqual(state["steps_done"], 3)
        self.assertEqual([p["index"] for p in state["recent_photons"]], [2, 3])
        self.assertEqual(len(state["current_state"]), 3)
        self.assertTrue(state["settings"]["eavesdropper_present"])


if __name__ == '__main__':
    unittest.main()
