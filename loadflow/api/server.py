"""FastAPI server for running load tests over HTTP."""

import os
from typing import Optional
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel, ConfigDict
import uvicorn

from ..errors import LoadFlowError
from ..models import LoadResult, LoadSettings
from ..service import LoadService

logger = logging.getLogger(__name__)


# -------------------------------------------------------------------------
# Request/Response Models
# -------------------------------------------------------------------------

class RunHttpRequest(BaseModel):
    """Request to load-test an HTTP endpoint."""
    name: str
    url: str
    method: str = "GET"
    expected_status: Optional[int] = None
    settings: LoadSettings


class ScenarioInfo(BaseModel):
    """Scenario information."""
    key: str
    name: str
    order: int
    description: str
    settings: dict


class ResultResponse(BaseModel):
    """Load result response model."""
    id: str
    scenario_name: str
    created_at: str
    total: int
    success: int
    failure: int
    success_rate: float
    time: float
    min_latency: float
    max_latency: float
    average_latency: float
    median_latency: float
    percentile_95_latency: float
    percentile_99_latency: float
    requests_per_second: float
    requests_started: int
    requests_in_flight: int
    avg_queue_time: float
    max_queue_time: float
    worker_threads_used: int
    worker_utilization: float
    batches_completed: int

    model_config = ConfigDict(from_attributes=True)


class StatsResponse(BaseModel):
    """Service statistics response."""
    running: bool
    scenarios_loaded: int
    worker_mode: str
    results_by_scenario: dict[str, dict]


# -------------------------------------------------------------------------
# App Factory
# -------------------------------------------------------------------------

def create_app(service: Optional[LoadService] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        service: Service to expose; built from LOADFLOW_* environment
            variables when omitted
    """
    if service is None:
        service = LoadService(
            db_path=os.environ.get("LOADFLOW_DB_PATH", "data/loadflow.db"),
            scenarios_dir=os.environ.get("LOADFLOW_SCENARIOS_DIR", "scenarios"),
            config_path=os.environ.get("LOADFLOW_CONFIG", "config/loadflow.yaml"),
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting LoadFlow API server...")
        await service.start()
        logger.info("LoadFlow API server started")

        yield

        logger.info("Shutting down LoadFlow API server...")
        await service.stop()
        logger.info("LoadFlow API server stopped")

    app = FastAPI(
        title="LoadFlow API",
        description="API for running load scenarios and browsing their results",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.service = service

    # -------------------------------------------------------------------------
    # Health Check
    # -------------------------------------------------------------------------

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    @app.get("/api/stats", response_model=StatsResponse)
    async def get_stats():
        """Get service statistics."""
        return await service.get_stats()

    # -------------------------------------------------------------------------
    # Scenario Endpoints
    # -------------------------------------------------------------------------

    @app.get("/api/scenarios", response_model=list[ScenarioInfo])
    async def list_scenarios():
        """List discovered scenarios in execution order."""
        return service.list_scenarios()

    @app.post("/api/scenarios/{name}/run", response_model=ResultResponse, status_code=201)
    async def run_scenario(name: str):
        """Run a scenario now."""
        try:
            result = await service.run_scenario(name)
        except KeyError:
            raise HTTPException(status_code=404, detail="Scenario not found")
        except LoadFlowError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _result_to_response(result)

    # -------------------------------------------------------------------------
    # Ad-hoc Runs
    # -------------------------------------------------------------------------

    @app.post("/api/runs", response_model=ResultResponse, status_code=201)
    async def run_http(request: RunHttpRequest):
        """Load-test an HTTP endpoint."""
        try:
            result = await service.run_http(
                name=request.name,
                url=request.url,
                settings=request.settings,
                method=request.method,
                expected_status=request.expected_status,
            )
        except LoadFlowError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _result_to_response(result)

    # -------------------------------------------------------------------------
    # Result Endpoints
    # -------------------------------------------------------------------------

    @app.get("/api/results", response_model=list[ResultResponse])
    async def list_results(
        scenario: Optional[str] = Query(None, description="Filter by scenario name"),
        limit: int = Query(100, ge=1, le=1000),
        offset: int = Query(0, ge=0),
    ):
        """List stored results, newest first."""
        results = await service.list_results(scenario=scenario, limit=limit, offset=offset)
        return [_result_to_response(r) for r in results]

    @app.get("/api/results/{result_id}", response_model=ResultResponse)
    async def get_result(result_id: str):
        """Get a result by ID."""
        result = await service.get_result(result_id)
        if not result:
            raise HTTPException(status_code=404, detail="Result not found")
        return _result_to_response(result)

    @app.delete("/api/results/{result_id}")
    async def delete_result(result_id: str):
        """Delete a result."""
        success = await service.delete_result(result_id)
        if not success:
            raise HTTPException(status_code=404, detail="Result not found")
        return {"deleted": True}

    return app


def _result_to_response(result: LoadResult) -> dict:
    """Convert a LoadResult to a response dict."""
    data = result.model_dump()
    data["created_at"] = result.created_at.isoformat()
    data["success_rate"] = result.success_rate
    return data


# -------------------------------------------------------------------------
# Main Entry Point
# -------------------------------------------------------------------------

def main():
    """Run the API server."""
    import argparse

    parser = argparse.ArgumentParser(description="LoadFlow API Server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument("--log-level", default="info", help="Log level")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    uvicorn.run(
        "loadflow.api.server:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
