import logging
import math
import os
import sys
from typing import Any, Dict, List, Optional

# Add current directory to path so we can import backend modules
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from config import ConfigurationError, SimulationParameters
from economy import Economy, History, derive_events
from run_simulation import create_economy

# Load environment variables from .env
load_dotenv()

LOG_LEVEL = os.getenv("ECOSIM_LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [o.strip() for o in os.getenv("ECOSIM_CORS_ORIGINS", "*").split(",") if o.strip()]
MAX_STEPS_PER_REQUEST = int(os.getenv("ECOSIM_MAX_STEPS", "10000"))
MAX_AGENTS_PER_SIMULATION = int(os.getenv("ECOSIM_MAX_AGENTS", "100000"))

# Setup logging
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="AGI Economy Simulator", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


class SimulationNotInitializedError(RuntimeError):
    """Raised when an operation needs a simulation and none exists."""

    def __init__(self, message: str = "No simulation running"):
        super().__init__(message)


# ---------- Request Models ----------

class SimulateRequest(BaseModel):
    model_config = ConfigDict(strict=True, extra="allow", populate_by_name=True)

    n_agents: Optional[int] = Field(None, alias="nAgents")
    agi_boost: Optional[float] = Field(None, alias="agiBoost")
    worker_rationality: Optional[float] = Field(None, alias="workerRationality")
    herd_effect: Optional[float] = Field(None, alias="herdEffect")
    ubi: Optional[float] = None
    compute_tax: Optional[float] = Field(None, alias="computeTax")
    work_hours: Optional[float] = Field(None, alias="workHours")
    seed: Optional[int] = None


class StepRequest(BaseModel):
    model_config = ConfigDict(strict=True, populate_by_name=True)

    steps: int = Field(5, ge=1)
    deploy_agi: bool = Field(False, alias="deployAGI")


# ---------- Simulation Handle ----------

class SimulationManager:
    """Owns the one simulation served by this process."""

    def __init__(self, max_agents: int = MAX_AGENTS_PER_SIMULATION):
        self.economy: Optional[Economy] = None
        self.max_agents = max_agents

    def initialize(self, config: Optional[Dict[str, Any]] = None) -> Economy:
        params = SimulationParameters.from_dict(config or {})
        if params.n_agents > self.max_agents:
            raise ConfigurationError(f"nAgents cannot exceed {self.max_agents}, got {params.n_agents}")
        logger.info(f"Initializing simulation with {params.n_agents} agents (agiBoost={params.agi_boost}, "
                    f"ubi={params.ubi}, computeTax={params.compute_tax})")
        if params.extra:
            logger.info(f"Storing unrecognized parameters: {sorted(params.extra)}")
        self.economy = create_economy(params)
        return self.economy

    def require_economy(self) -> Economy:
        if self.economy is None:
            raise SimulationNotInitializedError()
        return self.economy

    def advance(self, steps: int, deploy_agi: bool = False) -> Dict[str, Any]:
        """Run `steps` steps, then apply the deployment shock if requested."""
        economy = self.require_economy()
        economy.advance(steps)
        if deploy_agi and not economy.agi_deployed:
            economy.deploy_agi()

        stats = economy.get_stats()
        events = derive_events(stats)
        for event in events:
            logger.info(f"Event at step {stats['step']}: [{event['type']}] {event['message']}")
        return {"stats": stats, "history": economy.history.to_dict(), "events": events}

    def stats(self) -> Dict[str, Any]:
        return self.require_economy().get_stats()

    def history(self) -> Dict[str, List[float]]:
        if self.economy is None:
            return History.empty_dict()
        return self.economy.history.to_dict()

    def reset(self) -> None:
        self.economy = None
        logger.info("Simulation reset")


manager = SimulationManager()


# ---------- Helpers ----------

async def _read_json(request: Request) -> Dict[str, Any]:
    """Parse the request body; a missing or malformed body counts as empty."""
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _json_safe(value: Any) -> Any:
    """Replace NaN and infinite floats with None, recursively; JSON has no encoding for them."""
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_json_safe(v) for v in value]
    return value


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


@app.exception_handler(SimulationNotInitializedError)
async def simulation_not_initialized_handler(request: Request, exc: SimulationNotInitializedError):
    logger.warning(f"{request.method} {request.url.path} rejected: {exc}")
    return _error(400, str(exc))


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.warning(f"{request.method} {request.url.path} rejected: {exc}")
    return _error(400, str(exc))


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    logger.warning(f"{request.method} {request.url.path} rejected: invalid request body")
    details = [{"loc": list(e["loc"]), "msg": e["msg"]} for e in exc.errors()]
    return _error(400, "Invalid request", details=details)


# ---------- API Endpoints ----------

@app.get("/", response_class=PlainTextResponse)
async def index():
    return ("AGI Economy Simulator API\n"
            "Endpoints: /api/simulate, /api/step, /api/stats, /api/history, /api/reset")


@app.post("/api/simulate")
async def simulate(request: Request):
    req = SimulateRequest.model_validate(await _read_json(request))
    economy = manager.initialize(req.model_dump(by_alias=True, exclude_none=True))
    return _json_safe({
        "success": True,
        "message": "Simulation initialized",
        "stats": economy.get_stats(),
        "history": economy.history.to_dict(),
        "params": economy.params.to_dict(),
    })


@app.post("/api/step")
async def step(request: Request):
    manager.require_economy()
    req = StepRequest.model_validate(await _read_json(request))
    if req.steps > MAX_STEPS_PER_REQUEST:
        return _error(400, f"steps cannot exceed {MAX_STEPS_PER_REQUEST}")
    result = manager.advance(req.steps, req.deploy_agi)
    return _json_safe({"success": True, **result})


@app.get("/api/stats")
async def stats():
    return _json_safe({"success": True, "stats": manager.stats()})


@app.get("/api/history")
async def history():
    return _json_safe(manager.history())


@app.post("/api/reset")
async def reset():
    manager.reset()
    return {"success": True, "message": "Simulation reset"}
