from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from perfdesk.errors import SnapshotUnavailableError, error_payload
from perfdesk.service import SnapshotService

router = APIRouter()


def get_snapshot_service(request: Request) -> SnapshotService:
    return request.app.state.snapshot_service


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/social-trading")
def social_trading(service: SnapshotService = Depends(get_snapshot_service)):
    # sync route: the blocking upstream fetch runs on the threadpool
    try:
        result = service.get_snapshot()
    except SnapshotUnavailableError as exc:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_payload(exc),
        )
    return result.to_payload()
