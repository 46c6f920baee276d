from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from guardit.monitor.runtime import MonitorRuntime


def get_monitor(request: Request) -> MonitorRuntime:
    """The runtime owned by the running application."""
    monitor: MonitorRuntime = request.app.state.monitor
    return monitor


def require_store(monitor: MonitorRuntime = Depends(get_monitor)) -> MonitorRuntime:
    """Same runtime, but 503 while the durable store is not ready."""
    if not monitor.readiness.is_ready:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Store not ready ({monitor.readiness.state.value})",
        )
    return monitor


# Type aliases for dependency injection
Monitor = Annotated[MonitorRuntime, Depends(get_monitor)]
ReadyMonitor = Annotated[MonitorRuntime, Depends(require_store)]
