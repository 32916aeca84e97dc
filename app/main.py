from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse, JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError

from app.config import AppConfig, load_config
from app.optics.controller import SimulationController, load_state, save_state
from app.optics.errors import InvalidParametersError
from app.optics.prism import Prism, cm_to_px
from app.optics.schema import LightMessage, ParametersMessage, SettingsUpdate, TraceRequest
from app.optics.settings import SettingsStore
from app.optics.simulate import from_parameters, parameter_changes, render_scene_svg, simulate_scene
from app.optics.vec2 import Vec2


logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _frontend_dir(config: AppConfig) -> Path:
    d = Path(config.frontend_dir)
    return d if d.is_absolute() else PROJECT_ROOT / d


def _settings_payload(store: SettingsStore) -> Dict[str, Any]:
    state = load_state(store)
    return {
        "parameters": from_parameters(state.parameters),
        "light": {"x": state.light_position.x, "y": state.light_position.y},
    }


def _apply_message(controller: SimulationController, msg: Any) -> None:
    kind = msg.get("type") if isinstance(msg, dict) else None
    if kind == "light":
        m = LightMessage.model_validate(msg)
        controller.move_light(m.x, m.y)
    elif kind == "parameters":
        m = ParametersMessage.model_validate(msg)
        controller.update_parameters(**parameter_changes(m))
    else:
        raise InvalidParametersError(f"unknown message type: {kind!r}")


async def _send_loop(websocket: WebSocket, outbox: "asyncio.Queue[Dict[str, Any]]") -> None:
    while True:
        await websocket.send_json(await outbox.get())


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    config = config or load_config()
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    store = SettingsStore(config.settings_path)
    prism = Prism.from_side_length(cm_to_px(config.prism_side_cm, config.px_per_cm), config.canvas_width)
    frontend = _frontend_dir(config)

    app = FastAPI(title="Refractometer prism simulator")
    app.state.config = config
    app.state.store = store
    app.state.prism = prism

    @app.exception_handler(InvalidParametersError)
    async def invalid_parameters(request: Request, exc: InvalidParametersError):
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.get("/")
    def index():
        return FileResponse(frontend / "index.html")

    if frontend.is_dir():
        app.mount("/static", StaticFiles(directory=frontend), name="static")
    else:
        logger.warning("frontend directory %s not found, static files disabled", frontend)

    @app.post("/api/trace")
    def api_trace(req: TraceRequest):
        return simulate_scene(req, prism, config.canvas_width)

    @app.post("/api/render.svg")
    def api_render_svg(req: TraceRequest):
        svg = render_scene_svg(req, prism, config.canvas_width, config.canvas_height)
        return Response(content=svg, media_type="image/svg+xml")

    @app.get("/api/settings")
    async def api_get_settings():
        return _settings_payload(store)

    @app.put("/api/settings")
    async def api_put_settings(update: SettingsUpdate):
        state = load_state(store)
        if update.parameters is not None:
            changes = parameter_changes(update.parameters)
            state.parameters = dataclasses.replace(state.parameters, **changes).validate()
        if update.light is not None:
            state.light_position = Vec2(float(update.light.x), float(update.light.y))
        save_state(store, state)
        return _settings_payload(store)

    @app.websocket("/ws")
    async def ws_scene(websocket: WebSocket):
        await websocket.accept()
        outbox: asyncio.Queue = asyncio.Queue()
        controller = SimulationController(
            load_state(store),
            prism,
            config.canvas_width,
            config.canvas_height,
            on_frame=lambda frame: outbox.put_nowait(frame.to_dict()),
            store=store,
            delay=config.debounce_seconds,
        )
        sender = asyncio.create_task(_send_loop(websocket, outbox))
        controller.request_redraw()
        try:
            while True:
                text = await websocket.receive_text()
                try:
                    _apply_message(controller, json.loads(text))
                except (json.JSONDecodeError, ValidationError, InvalidParametersError) as exc:
                    outbox.put_nowait({"type": "error", "detail": str(exc)})
        except WebSocketDisconnect:
            logger.info("scene client disconnected")
        finally:
            controller.close()
            sender.cancel()

    return app


app = create_app()


def run() -> None:
    import uvicorn

    cfg = load_config()
    uvicorn.run("app.main:app", host="127.0.0.1", port=8000, log_level=cfg.log_level.lower())
