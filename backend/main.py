"""
Expat RRS - FastAPI Backend
===========================
HTTP surface of the retirement readiness engine.

Every calculation runs locally in Python against the fixed 2024 tables.
Requests are stateless: the client sends the whole profile each time and
nothing is stored server-side.
"""

import os
import json
import logging
from datetime import datetime
from typing import Any, Dict
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

# Local imports
from german_tax import (
    TAX_YEAR,
    TAX_BRACKETS_2024,
    SOCIAL_SECURITY_RATES_2024,
    CONTRIBUTION_CEILINGS_2024,
    get_tax_bracket_info,
    get_planning_assumptions,
)
from models import SimulationRequest
from validation import ProfileValidationError, InvalidValueError, validate
from retirement_engine import RetirementCalculator, ScenarioSimulator, ProjectionEngine
from score_view import to_standardized_score

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://localhost:5173"

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("RRS_CORS_ORIGINS", DEFAULT_CORS_ORIGINS).split(",")
    if origin.strip()
]
HOST = os.getenv("RRS_HOST", "0.0.0.0")
PORT = int(os.getenv("RRS_PORT", "8000"))


# =============================================================================
# APPLICATION SETUP
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Expat RRS starting up...")
    yield
    logger.info("Expat RRS shutting down...")


app = FastAPI(
    title="Expat RRS",
    description="Retirement readiness scoring for expats in Germany",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

calculator = RetirementCalculator()
projector = ProjectionEngine()


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

async def read_json_body(request: Request) -> Any:
    """Parse the request body, rejecting anything that is not JSON."""
    try:
        return await request.json()
    except ValueError:
        raise InvalidValueError("body", "request body must be valid JSON")


# =============================================================================
# API ENDPOINTS
# =============================================================================

@app.get("/")
async def root():
    """API health check."""
    return {
        "service": "Expat RRS",
        "version": "1.0.0",
        "status": "healthy",
        "tax_year": TAX_YEAR
    }


@app.get("/api/health")
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "components": {
            "validator": "ready",
            "projection_engine": "ready",
            "scorer": "ready",
            "recommendations": "ready"
        }
    }


# --- CALCULATION ---

@app.post("/api/calculate")
@app.post("/calculate")
async def calculate(request: Request):
    """
    Score a raw profile.

    Returns {success, data: {results, score}} where results is the full
    calculation and score is the standardized view the UI renders.
    """
    profile = validate(await read_json_body(request))
    result = calculator.calculate(profile)

    logger.info(f"Calculated readiness score {result.score} ({result.category})")

    return {
        "success": True,
        "data": {
            "results": result.model_dump(mode="json"),
            "score": to_standardized_score(result).model_dump(mode="json"),
        }
    }


@app.post("/api/validate")
async def validate_profile(request: Request):
    """Return the normalized profile without scoring it."""
    profile = validate(await read_json_body(request))
    return {"success": True, "data": profile.model_dump(mode="json")}


# --- SIMULATION ---

@app.post("/api/simulate")
async def run_simulation(request: Request):
    """
    Run a what-if simulation.

    Example changes:
    - {"extra_monthly_savings": 200} - Save €200 more per month
    - {"delay_retirement_years": 2} - Retire two years later
    - {"risk_tolerance": "high"} - Switch to a growth portfolio
    """
    body = await read_json_body(request)
    try:
        sim_request = SimulationRequest.model_validate(body)
    except PydanticValidationError as exc:
        error = exc.errors()[0]
        field = str(error["loc"][0]) if error.get("loc") else "body"
        raise InvalidValueError(field, error["msg"]) from exc

    simulator = ScenarioSimulator(validate(sim_request.profile))

    if sim_request.use_action_plan:
        result = simulator.simulate_action_plan()
    else:
        result = simulator.run_simulation(sim_request.changes, sim_request.scenario_name or "Custom Simulation")

    return {"success": True, "data": result.model_dump(mode="json")}


@app.post("/api/timeline")
async def savings_timeline(request: Request):
    """Year-by-year savings balance until retirement."""
    profile = validate(await read_json_body(request))
    timeline = projector.build_savings_timeline(profile)

    return {
        "success": True,
        "data": {
            "years_to_retirement": profile.years_to_retirement,
            "timeline": json.loads(timeline.to_json(orient="records")),
        }
    }


# --- REFERENCE DATA ---

@app.get("/api/reference/brackets")
async def get_tax_brackets():
    """Get 2024 income tax brackets and social security rates."""
    brackets = []
    prev_limit = 0
    for limit, rate in TAX_BRACKETS_2024:
        brackets.append({
            "from": prev_limit,
            "to": limit if limit != float('inf') else "unlimited",
            "rate": rate
        })
        prev_limit = limit

    return {
        "tax_year": TAX_YEAR,
        "brackets": brackets,
        "summary": get_tax_bracket_info(),
        "social_security_rates": SOCIAL_SECURITY_RATES_2024,
        "contribution_ceilings": CONTRIBUTION_CEILINGS_2024,
    }


@app.get("/api/reference/assumptions")
async def get_assumptions() -> Dict[str, Any]:
    """Get the fixed planning assumptions."""
    return get_planning_assumptions()


# --- ERROR HANDLERS ---

@app.exception_handler(ProfileValidationError)
async def validation_exception_handler(request, exc: ProfileValidationError):
    logger.warning(f"Rejected request to {request.url.path}: {exc}")
    return JSONResponse(status_code=400, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.error(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc) if os.getenv("DEBUG") else "An error occurred"
        }
    )


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=HOST, port=PORT)
