import asyncio
import json
import os
import tempfile
import unittest

from app.optics.controller import SimulationController, SimulationState, load_state, save_state
from app.optics.errors import InvalidParametersError
from app.optics.prism import Prism, cm_to_px
from app.optics.scheduler import RedrawScheduler
from app.optics.settings import (
    DEFAULT_LIGHT,
    LIGHT_POS,
    PRISM_RI,
    RAYS_ANGLE,
    RAYS_NUM,
    SAMPLE_RI,
    SettingsStore,
    decode_light,
    encode_light,
)
from app.optics.trace import OpticalParameters
from app.optics.vec2 import Vec2


PRISM = Prism.from_side_length(cm_to_px(15), 800)


class TestRedrawScheduler(unittest.IsolatedAsyncioTestCase):
    async def test_burst_fires_once(self):
        calls = []
        scheduler = RedrawScheduler(lambda: calls.append(1), delay=0.01)
        for _ in range(10):
            scheduler.schedule()
        self.assertTrue(scheduler.pending)
        await asyncio.sleep(0.1)
        self.assertEqual(calls, [1])
        self.assertFalse(scheduler.pending)

    async def test_separate_requests_fire_separately(self):
        calls = []
        scheduler = RedrawScheduler(lambda: calls.append(1), delay=0.01)
        scheduler.schedule()
        await asyncio.sleep(0.1)
        scheduler.schedule()
        await asyncio.sleep(0.1)
        self.assertEqual(len(calls), 2)

    async def test_cancel(self):
        calls = []
        scheduler = RedrawScheduler(lambda: calls.append(1), delay=0.01)
        scheduler.schedule()
        scheduler.cancel()
        await asyncio.sleep(0.05)
        self.assertEqual(calls, [])
        self.assertFalse(scheduler.pending)

    def test_negative_delay(self):
        with self.assertRaises(ValueError):
            RedrawScheduler(lambda: None, delay=-1)


class TestSimulationController(unittest.IsolatedAsyncioTestCase):
    def make_controller(self, store=None):
        self.frames = []
        return SimulationController(
            SimulationState(),
            PRISM,
            800,
            800,
            on_frame=self.frames.append,
            store=store,
            delay=0.01,
        )

    async def test_drag_burst_renders_last_position(self):
        controller = self.make_controller()
        for x in range(40, 61, 5):
            controller.move_light(x, 124)
        await asyncio.sleep(0.1)
        self.assertEqual(len(self.frames), 1)
        frame = self.frames[0]
        self.assertEqual(frame.result.light, Vec2(60.0, 124.0))
        self.assertIn('id="light-source"', frame.svg)
        self.assertEqual(frame.to_dict()["type"], "frame")
        self.assertEqual(controller.frames_rendered, 1)

    async def test_parameter_update(self):
        controller = self.make_controller()
        params = controller.update_parameters(ray_count=20, sample_index=1.33)
        self.assertEqual(params, OpticalParameters(ray_count=20, sample_index=1.33))
        await asyncio.sleep(0.1)
        self.assertEqual(len(self.frames), 1)
        self.assertEqual(self.frames[0].result.parameters.ray_count, 20)

    async def test_invalid_update_leaves_state_untouched(self):
        controller = self.make_controller()
        before = controller.state.parameters
        with self.assertRaises(InvalidParametersError):
            controller.update_parameters(sample_index=1.6)
        with self.assertRaises(InvalidParametersError):
            controller.update_parameters(colour="red")
        with self.assertRaises(InvalidParametersError):
            controller.move_light(float("nan"), 10)
        self.assertEqual(controller.state.parameters, before)
        self.assertFalse(controller.scheduler.pending)

    async def test_close_cancels_pending_frame(self):
        controller = self.make_controller()
        controller.request_redraw()
        controller.close()
        await asyncio.sleep(0.05)
        self.assertEqual(self.frames, [])

    async def test_changes_are_persisted(self):
        store = SettingsStore()
        controller = self.make_controller(store)
        controller.move_light(70, 130)
        controller.update_parameters(fan_angle_degrees=5.0)
        controller.close()
        self.assertEqual(store.get(RAYS_ANGLE), 5.0)
        self.assertEqual(decode_light(store.get(LIGHT_POS)), Vec2(70.0, 130.0))

    def test_render_frame_synchronously(self):
        controller = self.make_controller()
        frame = controller.render_frame()
        self.assertGreater(len(frame.result.paths), 0)
        self.assertIn("critical_angle_deg", frame.analysis)


class TestSettings(unittest.TestCase):
    def test_file_round_trip(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "nested", "settings.json")
            store = SettingsStore(path)
            state = SimulationState(
                parameters=OpticalParameters(prism_index=1.6, sample_index=1.4, ray_count=30, fan_angle_degrees=2.0),
                light_position=Vec2(80.5, 110.0),
            )
            save_state(store, state)
            with open(path, encoding="utf-8") as fh:
                raw = json.load(fh)
            self.assertEqual(raw[RAYS_NUM], 30)
            self.assertEqual(raw[LIGHT_POS], "[80.5, 110.0]")

            reloaded = load_state(SettingsStore(path))
            self.assertEqual(reloaded.parameters, state.parameters)
            self.assertEqual(reloaded.light_position, state.light_position)

    def test_defaults_when_empty(self):
        state = load_state(SettingsStore())
        self.assertEqual(state.parameters, OpticalParameters())
        self.assertEqual(state.light_position, DEFAULT_LIGHT)

    def test_invalid_stored_values_fall_back(self):
        store = SettingsStore()
        store.update({PRISM_RI: 1.2, SAMPLE_RI: 1.3, LIGHT_POS: "not json"})
        state = load_state(store)
        self.assertEqual(state.parameters, OpticalParameters())
        self.assertEqual(state.light_position, DEFAULT_LIGHT)

    def test_unreadable_file_is_ignored(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "settings.json")
            with open(path, "w", encoding="utf-8") as fh:
                fh.write("{broken")
            self.assertEqual(SettingsStore(path).as_dict(), {})

    def test_only_scalars(self):
        store = SettingsStore()
        with self.assertRaises(TypeError):
            store.set("optics_simulator_light_pos", [1, 2])

    def test_light_encoding(self):
        self.assertEqual(decode_light(encode_light(Vec2(1.5, 2.0))), Vec2(1.5, 2.0))
        self.assertEqual(decode_light(None), DEFAULT_LIGHT)

    def test_non_finite_light_falls_back(self):
        store = SettingsStore()
        store.set(LIGHT_POS, "[NaN, 120.0]")
        self.assertEqual(load_state(store).light_position, DEFAULT_LIGHT)
        self.assertEqual(decode_light("[60.0, Infinity]"), DEFAULT_LIGHT)


if __name__ == "__main__":
    unittest.main()
