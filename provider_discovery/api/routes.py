"""API routes for provider discovery."""

import csv
import io
import logging
import uuid
from dataclasses import dataclass, field
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from provider_discovery.models import (
    ConfidenceTier,
    ConfigurationError,
    DiscoveryProfile,
    ExportRow,
    ScoredProvider,
)
from provider_discovery.pipeline import RunReport, run_discovery
from provider_discovery.score import filter_by_tier, to_export_rows
from provider_discovery.store import ProviderStore

logger = logging.getLogger(__name__)

router = APIRouter()


class RunRequest(BaseModel):
    """Request body for starting a discovery run."""
    profile: Optional[DiscoveryProfile] = None
    use_mock: bool = False
    persist: bool = False


class RunResponse(BaseModel):
    """Response for run submission."""
    run_id: str
    status: str
    message: str


class StatusResponse(BaseModel):
    """Response for run status."""
    run_id: str
    status: str
    report: Optional[dict] = None
    error_message: Optional[str] = None


class ResultItem(ExportRow):
    """Single result item for API response."""
    rank: int
    category_source: str
    reasons: list[str]


class ResultsResponse(BaseModel):
    """Response for run results."""
    run_id: str
    status: str
    total_results: int
    results: list[ResultItem]


@dataclass
class RunState:
    profile: DiscoveryProfile
    use_mock: bool = False
    persist: bool = False
    status: str = "pending"  # pending, running, completed, failed
    results: list[ScoredProvider] = field(default_factory=list)
    report: Optional[RunReport] = None
    error: Optional[str] = None


class RunRegistry:
    """Runs started through the API, kept in memory for the process lifetime."""

    def __init__(self):
        self._runs: dict[str, RunState] = {}

    def create(self, state: RunState) -> str:
        run_id = str(uuid.uuid4())
        self._runs[run_id] = state
        return run_id

    def get(self, run_id: str) -> RunState:
        state = self._runs.get(run_id)
        if state is None:
            raise HTTPException(status_code=404, detail="Run not found")
        return state


runs = RunRegistry()


@router.post("/runs", response_model=RunResponse)
async def start_run(request: RunRequest, background_tasks: BackgroundTasks):
    """Start a new discovery run."""
    profile = request.profile or DiscoveryProfile()
    try:
        profile.validate_for_run()
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    run_id = runs.create(RunState(profile=profile, use_mock=request.use_mock, persist=request.persist))

    # Run discovery in background
    background_tasks.add_task(execute_run, run_id)

    return RunResponse(
        run_id=run_id,
        status="pending",
        message="Run started. Use /runs/{run_id} to check progress.",
    )


@router.get("/runs/{run_id}", response_model=StatusResponse)
async def get_status(run_id: str):
    """Get the status of a discovery run."""
    state = runs.get(run_id)
    return StatusResponse(
        run_id=run_id,
        status=state.status,
        report=state.report.to_dict() if state.report else None,
        error_message=state.error,
    )


@router.get("/runs/{run_id}/results", response_model=ResultsResponse)
async def get_results(run_id: str, tier: Optional[ConfidenceTier] = None):
    """Get ranked results, optionally limited to one confidence tier."""
    state = runs.get(run_id)
    results = state.results
    if tier is not None:
        results = filter_by_tier(results, [tier])

    items = [
        ResultItem(
            **row.model_dump(),
            rank=result.rank or 0,
            category_source=result.category_source,
            reasons=result.score.reasons,
        )
        for row, result in zip(to_export_rows(results), results)
    ]
    return ResultsResponse(
        run_id=run_id,
        status=state.status,
        total_results=len(items),
        results=items,
    )


@router.get("/runs/{run_id}/export")
async def export_results(run_id: str):
    """Export run results as CSV."""
    state = runs.get(run_id)
    if not state.results:
        raise HTTPException(status_code=404, detail="No results to export")

    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=ExportRow.columns())
    writer.writeheader()
    for row in to_export_rows(state.results):
        writer.writerow(row.model_dump())

    output.seek(0)
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=providers_{run_id[:8]}.csv"},
    )


async def execute_run(run_id: str):
    """Execute the discovery pipeline for a submitted run."""
    state = runs.get(run_id)
    state.status = "running"

    try:
        results, report = await run_discovery(state.profile, use_mock=state.use_mock)

        report.run_id = run_id
        state.results = results
        state.report = report
        state.status = "completed"
        logger.info(f"[{run_id}] Completed with {len(results)} providers")

        if state.persist:
            store = ProviderStore()
            store.save(results)
            store.record_run(report, profile_json=state.profile.model_dump_json())

    except Exception as e:
        logger.error(f"[{run_id}] Run failed: {e}")
        state.status = "failed"
        state.error = str(e)
