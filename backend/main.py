"""
main.py — FastAPI application entry point.
BB84 QKD simulator backend for the browser front end.

Provides REST + WebSocket APIs for:
  - The interactive simulator view (shared key generation)
  - The eavesdropping view (intercept-resend demonstration)
  - Eavesdropping detection analysis
  - The encryption demo keyed by the shared key
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Union

from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from controller.simulation_controller import PhotonUpdate, RunSummary, SimulationController
from simulation.detection import run_detection_analysis
from simulation.settings import (
    EAVESDROPPING_INTERVAL_MS,
    SPEED_INTERVALS_MS,
    ConfigurationError,
    SimulatorSettings,
)

from .app_state import AppState
from .config import (
    CORS_ORIGINS,
    EAVESDROPPING_PHOTON_COUNT,
    KEY_BITS,
    RECENT_PHOTONS,
    SIMULATOR_PHOTON_COUNT,
)
from .kms import decrypt_message, encrypt_message
from .models import (
    AnalysisConfig,
    AnalysisReport,
    ConfigResponse,
    DecryptRequest,
    DecryptResponse,
    EncryptRequest,
    EncryptResponse,
    SharedKeyResponse,
    SimulatorConfig,
    SpeedRequest,
    StepResponse,
    View,
    ViewState,
)
from .websocket_manager import ConnectionManager

logger = logging.getLogger(__name__)


# ── Global state ─────────────────────────────────────────────────────── #

app_state = AppState()
ws_manager = ConnectionManager()
controllers: Dict[View, SimulationController] = {
    View.SIMULATOR: SimulationController(
        view=View.SIMULATOR.value,
        settings=SimulatorSettings(photon_count=SIMULATOR_PHOTON_COUNT,
                                   target_key_bits=KEY_BITS),
    ),
    View.EAVESDROPPING: SimulationController(
        view=View.EAVESDROPPING.value,
        settings=SimulatorSettings(photon_count=EAVESDROPPING_PHOTON_COUNT,
                                   eavesdropper_present=True,
                                   target_key_bits=None),
        interval_ms=EAVESDROPPING_INTERVAL_MS,
    ),
}


async def _broadcast_photon(update: PhotonUpdate) -> None:
    await ws_manager.broadcast(ws_manager.make_event("photon", update.to_dict()))


async def _broadcast_complete(summary: RunSummary) -> None:
    await ws_manager.broadcast(ws_manager.make_event("run_complete", summary.to_dict()))


def _make_log_forwarder(view: View):
    async def forward(message: str) -> None:
        await ws_manager.broadcast(
            ws_manager.make_event("log", {"view": view.value, "message": message})
        )
    return forward


for _view, _controller in controllers.items():
    _controller.on_photon(_broadcast_photon)
    _controller.on_complete(_broadcast_complete)
    _controller.on_log(_make_log_forwarder(_view))

# Only the simulator view writes the shared key
controllers[View.SIMULATOR].on_complete(app_state.publish_run)


# ── Lifespan ─────────────────────────────────────────────────────────── #

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("BB84 simulator backend starting")
    yield
    for controller in controllers.values():
        await controller.pause()
        await controller.wait()

app = FastAPI(
    title="BB84 QKD Simulator",
    description="Interactive BB84 key distribution, eavesdropping detection and encryption demo",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


def _step_response(view: View, outcome: Union[PhotonUpdate, RunSummary]) -> StepResponse:
    if isinstance(outcome, RunSummary):
        return StepResponse(
            view=view,
            complete=True,
            statistics=outcome.statistics.to_dict(),
            summary=outcome.to_dict(),
        )
    data = outcome.to_dict()
    return StepResponse(
        view=view,
        complete=controllers[view].run.is_complete,
        photon=data["photon"],
        frame=data["frame"],
        statistics=data["statistics"],
    )


def _view_state(view: View) -> ViewState:
    return ViewState(**controllers[view].state(recent=RECENT_PHOTONS))


# ===================================================================== #
#  CONFIGURATION                                                          #
# ===================================================================== #

@app.get("/api/config", response_model=ConfigResponse)
async def get_config():
    return ConfigResponse(speeds=dict(SPEED_INTERVALS_MS))


# ===================================================================== #
#  SIMULATOR / EAVESDROPPING ROUTES                                       #
# ===================================================================== #

@app.post("/api/{view}/configure", response_model=ViewState)
async def configure_view(view: View, config: SimulatorConfig):
    await controllers[view].configure(config.to_settings(view))
    return _view_state(view)


@app.post("/api/{view}/start", response_model=ViewState)
async def start_view(view: View):
    await controllers[view].start()
    return _view_state(view)


@app.post("/api/{view}/pause", response_model=ViewState)
async def pause_view(view: View):
    await controllers[view].pause()
    return _view_state(view)


@app.post("/api/{view}/resume", response_model=ViewState)
async def resume_view(view: View):
    await controllers[view].resume()
    return _view_state(view)


@app.post("/api/{view}/step", response_model=StepResponse)
async def step_view(view: View):
    outcome = await controllers[view].step_once()
    return _step_response(view, outcome)


@app.post("/api/{view}/complete", response_model=ViewState)
async def complete_view(view: View):
    await controllers[view].complete()
    return _view_state(view)


@app.post("/api/{view}/reset", response_model=ViewState)
async def reset_view(view: View):
    await controllers[view].reset()
    return _view_state(view)


@app.post("/api/{view}/speed", response_model=ViewState)
async def set_view_speed(view: View, body: SpeedRequest):
    controllers[view].set_speed(body.speed.value)
    return _view_state(view)


@app.get("/api/{view}/state", response_model=ViewState)
async def get_view_state(view: View):
    return _view_state(view)


@app.get("/api/key", response_model=SharedKeyResponse)
async def get_shared_key():
    return SharedKeyResponse(**app_state.key_info())


# ===================================================================== #
#  ANALYSIS ROUTES                                                        #
# ===================================================================== #

@app.post("/api/analysis/run", response_model=AnalysisReport)
async def run_analysis(config: AnalysisConfig):
    settings = config.to_settings().validated()
    report = run_detection_analysis(
        photon_count=settings.photon_count,
        sample_size=settings.sample_size,
        threshold_percent=settings.threshold_percent,
        estimate_from_sample=settings.estimate_from_sample,
    )
    app_state.store_analysis(report)
    return AnalysisReport(**report.to_dict())


@app.get("/api/analysis/last", response_model=AnalysisReport)
async def get_last_analysis():
    report = app_state.last_analysis
    if report is None:
        raise HTTPException(404, "No analysis has been run yet")
    return AnalysisReport(**report.to_dict())


# ===================================================================== #
#  ENCRYPTION ROUTES                                                      #
# ===================================================================== #

@app.post("/api/encryption/encrypt", response_model=EncryptResponse)
async def encrypt(body: EncryptRequest):
    outcome = encrypt_message(body.message, body.key, body.format.value)
    return EncryptResponse(
        success=outcome.success,
        status=outcome.status.value,
        ciphertext=outcome.ciphertext,
        format=outcome.format,
        error=outcome.error,
    )


@app.post("/api/encryption/decrypt", response_model=DecryptResponse)
async def decrypt(body: DecryptRequest):
    outcome = decrypt_message(
        body.ciphertext, body.key, body.format.value, encryption_key=body.encryption_key,
    )
    return DecryptResponse(
        success=outcome.success,
        status=outcome.status.value,
        plaintext=outcome.plaintext,
        error=outcome.error,
    )


# ===================================================================== #
#  WEBSOCKET                                                              #
# ===================================================================== #

async def _handle_command(view: View, msg_type: str, data: Dict[str, Any]) -> None:
    controller = controllers[view]
    if msg_type == "start":
        await controller.start()
    elif msg_type == "pause":
        await controller.pause()
    elif msg_type == "resume":
        await controller.resume()
    elif msg_type == "step":
        await controller.step_once()
    elif msg_type == "reset":
        await controller.reset()
    elif msg_type == "speed":
        controller.set_speed(data.get("speed", ""))
    elif msg_type == "configure":
        await controller.configure(SimulatorConfig(**data).to_settings(view))
    else:
        raise ConfigurationError(f"Unknown command {msg_type!r}")


async def _send_error(conn_id: int, message: str) -> None:
    await ws_manager.send_personal(conn_id, ws_manager.make_event("error", {"message": message}))


@app.websocket("/ws/simulator")
async def websocket_endpoint(websocket: WebSocket):
    conn_id = await ws_manager.connect(websocket)
    try:
        while True:
            try:
                message = await websocket.receive_json()
            except (ValueError, KeyError):
                # KeyError: binary frame
                await _send_error(conn_id, "Frames must be JSON objects")
                continue
            if not isinstance(message, dict):
                await _send_error(conn_id, "Frames must be JSON objects")
                continue

            msg_type = message.get("type", "")
            data = message.get("data") or {}
            if not isinstance(data, dict):
                await _send_error(conn_id, "'data' must be a JSON object")
                continue

            if msg_type == "ping":
                await ws_manager.send_personal(conn_id, ws_manager.make_event("pong"))
                continue

            try:
                view = View(data.get("view", View.SIMULATOR.value))
                await _handle_command(view, msg_type, data)
            except ValueError as exc:
                # ConfigurationError, pydantic ValidationError and unknown views
                await _send_error(conn_id, str(exc))
                continue

            await ws_manager.send_personal(
                conn_id,
                ws_manager.make_event("state", _view_state(view).model_dump()),
            )
    except WebSocketDisconnect:
        pass
    finally:
        ws_manager.disconnect(conn_id)


# ===================================================================== #
#  HEALTH                                                                 #
# ===================================================================== #

@app.get("/api/health")
async def health():
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "connections": ws_manager.connection_count(),
        "shared_key_bits": len(app_state.shared_key),
        "running": {view.value: c.is_running for view, c in controllers.items()},
    }
