import threading
import time
import uuid
from typing import Optional, Union

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from solver.solver import propagate_nonogram, solve_nonogram
from solver.utils import format_grid_rows


RunsField = list[Union[str, list[int]]]


class SolveRequest(BaseModel):
    row_runs: RunsField = Field(..., description="Run lengths for each row, as integer lists or compact strings like '73117'")
    col_runs: RunsField = Field(..., description="Run lengths for each column, as integer lists or compact strings")
    known_grid: Optional[list[list[Optional[int]]]] = Field(
        default=None,
        description="Grid of pinned cells: 1 for black, 0 for white, null for unknown",
    )
    max_seconds: Optional[float] = Field(
        default=10.0,
        ge=0.0,
        description="Time budget for the lookahead search. Use null to search until exhausted.",
    )
    use_multiprocessing: bool = Field(default=False, description="Propagate both hypotheses of a cell in worker processes.")
    workers: Optional[int] = Field(default=None, ge=1, description="Number of worker processes when multiprocessing is enabled.")
    trace: bool = Field(default=False, description="Include solver trace output in the response")
    trace_steps: bool = Field(default=False, description="Include structured trace steps for walkthrough/debugging.")
    trace_max_steps: int = Field(default=1000, ge=1, le=20000, description="Maximum number of trace steps to return.")


class TraceStepResponse(BaseModel):
    event: str
    message: str
    depth: int
    row: Optional[int] = None
    col: Optional[int] = None
    value: Optional[int] = None
    grid: list[list[Optional[int]]]


class SolveResponse(BaseModel):
    status: str
    solved: bool
    solution: list[list[Optional[int]]]
    grid_rows: list[str]
    grid_text: str
    unknown_cells: int
    passes: int
    branches_explored: int
    contradictions: int
    elapsed_seconds: float
    message: str
    trace: Optional[list[str]] = None
    trace_steps: Optional[list[TraceStepResponse]] = None
    trace_truncated: bool = False


class PropagateRequest(BaseModel):
    row_runs: RunsField = Field(..., description="Run lengths for each row")
    col_runs: RunsField = Field(..., description="Run lengths for each column")
    known_grid: Optional[list[list[Optional[int]]]] = Field(default=None, description="Grid of pinned cells")
    include_passes: bool = Field(default=False, description="Include a rendered snapshot of every propagation pass")


class PassSummaryResponse(BaseModel):
    pass_index: int
    status: str
    resolved: int
    unresolved: int
    valid_rows: int
    valid_columns: int
    grid_rows: list[str]


class PropagateResponse(BaseModel):
    status: str
    solution: list[list[Optional[int]]]
    grid_rows: list[str]
    grid_text: str
    unknown_cells: int
    passes: int
    contradictions: int
    pass_summaries: Optional[list[PassSummaryResponse]] = None


class SolveJobStartResponse(BaseModel):
    job_id: str
    status: str


class SolveJobStatusResponse(BaseModel):
    job_id: str
    status: str
    elapsed_seconds: float
    passes: int
    branches_explored: int
    solve_status: Optional[str] = None
    solved: Optional[bool] = None
    solution: Optional[list[list[Optional[int]]]] = None
    grid_rows: Optional[list[str]] = None
    message: Optional[str] = None
    error: Optional[str] = None


app = FastAPI(
    title="Nonogram Solver API",
    description="Solve monochrome nonogram (picross) puzzles with line propagation and lookahead search.",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://127.0.0.1:5173", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_SOLVE_JOBS: dict[str, dict] = {}
_SOLVE_JOBS_LOCK = threading.Lock()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/solve", response_model=SolveResponse)
def solve(request: SolveRequest) -> SolveResponse:
    trace_enabled = request.trace or request.trace_steps
    trace_log: list[str] = []
    trace_steps: list[dict[str, object]] = []
    trace_meta = {"truncated": False}
    try:
        result = solve_nonogram(
            row_runs=request.row_runs,
            col_runs=request.col_runs,
            known_grid=request.known_grid,
            max_seconds=request.max_seconds,
            use_multiprocessing=request.use_multiprocessing,
            workers=request.workers,
            trace=trace_enabled,
            trace_log=trace_log if trace_enabled else None,
            trace_steps=trace_steps if request.trace_steps else None,
            trace_meta=trace_meta,
            trace_max_steps=request.trace_max_steps,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    grid_rows = format_grid_rows(result["grid"])
    return SolveResponse(
        status=result["status"],
        solved=result["solved"],
        solution=result["grid"],
        grid_rows=grid_rows,
        grid_text="\n".join(grid_rows),
        unknown_cells=result["unknown_cells"],
        passes=result["passes"],
        branches_explored=result["branches_explored"],
        contradictions=result["contradictions"],
        elapsed_seconds=result["elapsed_seconds"],
        message=result["message"],
        trace=trace_log if request.trace else None,
        trace_steps=trace_steps if request.trace_steps else None,
        trace_truncated=trace_meta["truncated"],
    )


@app.post("/propagate", response_model=PropagateResponse)
def propagate(request: PropagateRequest) -> PropagateResponse:
    try:
        result = propagate_nonogram(
            row_runs=request.row_runs,
            col_runs=request.col_runs,
            known_grid=request.known_grid,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    pass_summaries = None
    if request.include_passes:
        pass_summaries = [
            PassSummaryResponse(
                pass_index=report["pass_index"],
                status=report["status"],
                resolved=report["resolved"],
                unresolved=report["unresolved"],
                valid_rows=report["valid_rows"],
                valid_columns=report["valid_columns"],
                grid_rows=format_grid_rows(report["grid"]),
            )
            for report in result["pass_reports"]
        ]

    grid_rows = format_grid_rows(result["grid"])
    return PropagateResponse(
        status=result["status"],
        solution=result["grid"],
        grid_rows=grid_rows,
        grid_text="\n".join(grid_rows),
        unknown_cells=result["unknown_cells"],
        passes=result["passes"],
        contradictions=result["contradictions"],
        pass_summaries=pass_summaries,
    )


@app.post("/solve/jobs/start", response_model=SolveJobStartResponse, status_code=status.HTTP_202_ACCEPTED)
def solve_start(request: SolveRequest) -> SolveJobStartResponse:
    job_id = str(uuid.uuid4())
    cancel_event = threading.Event()
    solve_kwargs = {
        "row_runs": request.row_runs,
        "col_runs": request.col_runs,
        "known_grid": request.known_grid,
        "max_seconds": request.max_seconds,
        "use_multiprocessing": request.use_multiprocessing,
        "workers": request.workers,
        "stop_requested": cancel_event.is_set,
    }

    with _SOLVE_JOBS_LOCK:
        _SOLVE_JOBS[job_id] = {
            "job_id": job_id,
            "status": "queued",
            "started_at": None,
            "completed_at": None,
            "result": None,
            "passes": 0,
            "branches_explored": 0,
            "error": None,
            "cancel_event": cancel_event,
        }

    threading.Thread(target=_run_solve_job, args=(job_id, solve_kwargs), daemon=True).start()
    return SolveJobStartResponse(job_id=job_id, status="queued")


@app.get("/solve/jobs/{job_id}", response_model=SolveJobStatusResponse)
def solve_status(job_id: str) -> SolveJobStatusResponse:
    with _SOLVE_JOBS_LOCK:
        return _build_job_status_response(_get_job(job_id))


@app.post("/solve/jobs/{job_id}/cancel", response_model=SolveJobStatusResponse)
def solve_cancel(job_id: str) -> SolveJobStatusResponse:
    with _SOLVE_JOBS_LOCK:
        job = _get_job(job_id)
        if job["status"] == "queued":
            job["status"] = "canceled"
            job["completed_at"] = time.time()
        elif job["status"] == "running":
            job["status"] = "canceling"
        job["cancel_event"].set()
        return _build_job_status_response(job)


def _get_job(job_id: str) -> dict:
    # Caller holds _SOLVE_JOBS_LOCK.
    job = _SOLVE_JOBS.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="solve job not found")
    return job


def _run_solve_job(job_id: str, solve_kwargs: dict) -> None:
    with _SOLVE_JOBS_LOCK:
        job = _SOLVE_JOBS[job_id]
        if job["status"] == "canceled":
            return
        job["status"] = "running"
        job["started_at"] = time.time()

    def on_progress(progress: dict[str, int]) -> None:
        with _SOLVE_JOBS_LOCK:
            job["passes"] = progress.get("passes", 0)
            job["branches_explored"] = progress.get("branches_explored", 0)

    try:
        result = solve_nonogram(progress_callback=on_progress, **solve_kwargs)
    except ValueError as exc:
        _finish_job(job, "failed", error=str(exc))
        return
    except Exception as exc:  # pragma: no cover
        _finish_job(job, "failed", error=f"unexpected error: {exc}")
        return

    canceled = job["cancel_event"].is_set() and not result["solved"]
    if canceled:
        result["message"] = "Solve canceled. Returning the best-effort grid."
    _finish_job(
        job,
        "canceled" if canceled else "completed",
        result=result,
        passes=result["passes"],
        branches_explored=result["branches_explored"],
    )


def _finish_job(job: dict, final_status: str, **fields: object) -> None:
    with _SOLVE_JOBS_LOCK:
        job.update(fields)
        job["status"] = final_status
        job["completed_at"] = time.time()


def _build_job_status_response(job: dict) -> SolveJobStatusResponse:
    if job["started_at"] is None:
        elapsed_seconds = 0.0
    else:
        elapsed_seconds = (job["completed_at"] or time.time()) - job["started_at"]

    result = job["result"] or {}
    grid = result.get("grid")
    return SolveJobStatusResponse(
        job_id=job["job_id"],
        status=job["status"],
        elapsed_seconds=elapsed_seconds,
        passes=job["passes"],
        branches_explored=job["branches_explored"],
        solve_status=result.get("status"),
        solved=result.get("solved"),
        solution=grid,
        grid_rows=None if grid is None else format_grid_rows(grid),
        message=result.get("message"),
        error=job["error"],
    )
