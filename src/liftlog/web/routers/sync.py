"""Sync status and control routes."""

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from ...models.outbox import OutboxStatus
from ...services.context import AppContext

router = APIRouter(prefix="/sync", tags=["sync"])


class TokenRequest(BaseModel):
    token: str


def get_context(request: Request) -> AppContext:
    """Get the service context from app state."""
    return request.app.state.context


@router.get("/status")
async def sync_status(context: AppContext = Depends(get_context)):
    """Login state, outbox counts and last successful sync."""
    current = await context.processor.status()
    snapshot = await context.repository.export_snapshot()
    return {
        **current.to_dict(),
        "device_id": context.repository.device_id,
        "online": context.connectivity.online,
        "summary": snapshot.get_summary(),
    }


@router.get("/outbox")
async def list_outbox(
    status: OutboxStatus | None = None,
    context: AppContext = Depends(get_context),
):
    """List queued changes, optionally filtered by status."""
    items = await context.repository.outbox.get_all(status)
    return {"items": [item.to_dict() for item in items]}


@router.post("/drain")
async def drain(context: AppContext = Depends(get_context)):
    """Drain the outbox now."""
    result = await context.processor.drain()
    return result.to_dict()


@router.post("/retry-failed")
async def retry_failed(context: AppContext = Depends(get_context)):
    """Re-queue failed changes and drain."""
    result = await context.processor.retry_failed()
    return result.to_dict()


@router.post("/pull")
async def pull(context: AppContext = Depends(get_context)):
    """Merge the remote document into local data."""
    outcome = await context.engine.pull()
    return {
        "document_id": outcome.document_id,
        "stats": outcome.stats.to_dict(),
        "issues": [str(issue) for issue in outcome.issues],
    }


@router.put("/token")
async def set_token(body: TokenRequest, context: AppContext = Depends(get_context)):
    """Store a new access token and re-enable automatic drains."""
    if not body.token.strip():
        raise HTTPException(status_code=422, detail="Token must not be empty")
    await context.client.set_token(body.token)
    context.processor.reset_auth()
    return {"status": "stored"}


@router.delete("/token")
async def logout(context: AppContext = Depends(get_context)):
    """Forget the token and remembered gist."""
    await context.client.logout()
    return {"status": "logged_out"}


@router.get("/snapshot")
async def snapshot(context: AppContext = Depends(get_context)):
    """Export the full local state as a snapshot document."""
    exported = await context.engine.export_snapshot()
    return exported.to_dict()
