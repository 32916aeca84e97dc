import inspect
import unittest

from fastapi.testclient import TestClient

from app.config import AppConfig, load_config
from app.main import create_app


class TestConfig(unittest.TestCase):
    def test_env_overrides(self):
        cfg = load_config({"PRISM_SIM_CANVAS_WIDTH": "1000", "PRISM_SIM_DEBOUNCE_MS": "40", "OTHER": "x"})
        self.assertEqual(cfg.canvas_width, 1000)
        self.assertAlmostEqual(cfg.debounce_seconds, 0.04)
        self.assertEqual(cfg.canvas_height, 800)

    def test_defaults(self):
        cfg = load_config({})
        self.assertEqual(cfg, AppConfig())
        self.assertIsNone(cfg.settings_path)


class TestApi(unittest.TestCase):
    def setUp(self):
        self.client = TestClient(create_app(AppConfig()))

    def test_index(self):
        res = self.client.get("/")
        self.assertEqual(res.status_code, 200)
        self.assertIn("light-source", res.text)

    def test_trace_defaults(self):
        res = self.client.post("/api/trace", json={})
        self.assertEqual(res.status_code, 200)
        body = res.json()
        self.assertEqual(body["light"], {"x": 60.0, "y": 124.0})
        self.assertGreater(len(body["rays"]), 0)
        self.assertEqual(body["analysis"]["rays_traced"], 80)

    def test_trace_rejects_sample_denser_than_prism(self):
        res = self.client.post("/api/trace", json={"parameters": {"prism_index": 1.4, "sample_index": 1.5}})
        self.assertEqual(res.status_code, 422)

    def test_trace_rejects_ray_count_out_of_range(self):
        res = self.client.post("/api/trace", json={"parameters": {"ray_count": 101}})
        self.assertEqual(res.status_code, 422)

    def test_render_svg(self):
        res = self.client.post("/api/render.svg", json={"light": {"x": 70, "y": 120}})
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.headers["content-type"].startswith("image/svg+xml"))
        self.assertIn("<svg", res.text)

    def test_settings_round_trip(self):
        res = self.client.get("/api/settings")
        self.assertEqual(res.json()["parameters"]["ray_count"], 80)
        res = self.client.put("/api/settings", json={"parameters": {"ray_count": 12}, "light": {"x": 50, "y": 140}})
        self.assertEqual(res.status_code, 200)
        body = self.client.get("/api/settings").json()
        self.assertEqual(body["parameters"]["ray_count"], 12)
        self.assertEqual(body["light"], {"x": 50.0, "y": 140.0})

    def test_settings_rejects_invalid_combination(self):
        res = self.client.put("/api/settings", json={"parameters": {"sample_index": 1.6}})
        self.assertEqual(res.status_code, 422)
        self.assertIn("prism index", res.json()["detail"])
        self.assertEqual(self.client.get("/api/settings").json()["parameters"]["sample_index"], 1.3)

    def test_trace_rejects_non_finite_light(self):
        res = self.client.post("/api/trace", json={"light": {"x": "nan", "y": 124}})
        self.assertEqual(res.status_code, 422)

    def test_settings_reject_non_finite_light(self):
        res = self.client.put("/api/settings", json={"light": {"x": "inf", "y": 140}})
        self.assertEqual(res.status_code, 422)
        res = self.client.get("/api/settings")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["light"], {"x": 60.0, "y": 124.0})

    def test_settings_endpoints_run_on_the_event_loop(self):
        endpoints = [r.endpoint for r in self.client.app.routes if getattr(r, "path", None) == "/api/settings"]
        self.assertEqual(len(endpoints), 2)
        for endpoint in endpoints:
            self.assertTrue(inspect.iscoroutinefunction(endpoint))

    def test_websocket_frames(self):
        with self.client.websocket_connect("/ws") as ws:
            first = ws.receive_json()
            self.assertEqual(first["type"], "frame")
            self.assertIn("<svg", first["svg"])

            ws.send_json({"type": "light", "x": 65, "y": 120})
            frame = ws.receive_json()
            self.assertEqual(frame["scene"]["light"], {"x": 65.0, "y": 120.0})

            ws.send_json({"type": "parameters", "sample_index": 1.6})
            err = ws.receive_json()
            self.assertEqual(err["type"], "error")

            ws.send_json({"type": "spin"})
            self.assertEqual(ws.receive_json()["type"], "error")

            ws.send_text("{not json")
            err = ws.receive_json()
            self.assertEqual(err["type"], "error")

            ws.send_json({"type": "light", "x": "nan", "y": 120})
            self.assertEqual(ws.receive_json()["type"], "error")

            ws.send_json({"type": "parameters", "ray_count": 10})
            frame = ws.receive_json()
            self.assertEqual(frame["analysis"]["rays_traced"], 10)


if __name__ == "__main__":
    unittest.main()
