"""Health check endpoints."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from ordefy import __version__

router = APIRouter()


@router.get("/health")
async def health_check():
    return {"status": "healthy", "service": "ordefy-webhooks", "version": __version__}


@router.get("/health/live")
async def liveness():
    """Liveness probe: 200 while the process is up."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness(request: Request):
    """Readiness probe: checks the database and, when running, the queue worker."""
    checks: dict[str, str] = {}
    overall_ok = True

    try:
        session_factory = request.app.state.db_session_factory
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as exc:
        checks["database"] = f"error: {exc}"
        overall_ok = False

    worker_tasks = getattr(request.app.state, "background_tasks", None)
    if not worker_tasks:
        checks["worker"] = "disabled"
    elif any(task.done() for task in worker_tasks):
        checks["worker"] = "stopped"
        overall_ok = False
    else:
        checks["worker"] = "running"

    status_code = 200 if overall_ok else 503
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "ready" if overall_ok else "not_ready",
            "checks": checks,
        },
    )
