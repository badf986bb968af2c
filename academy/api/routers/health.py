"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from academy import __version__
from academy.api.deps import get_recorder
from academy.core.audit import AuditRecorder

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(recorder: AuditRecorder = Depends(get_recorder)):
    """
    Liveness plus the state of the local audit trail.

    Forward failures are reported but never make the service unhealthy.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "audit": {
            "buffered": len(recorder.recent()),
            "capacity": recorder.capacity,
            "pending_forwards": recorder.pending,
            "forward_failures": recorder.forward_failures,
        },
    }
