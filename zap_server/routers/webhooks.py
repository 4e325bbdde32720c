# zap_server/routers/webhooks.py
import json
import logging

from fastapi import APIRouter, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from zap_server.services.executor import execute_zap
from zap_server.services.registry import find_zap_by_webhook_id
from zapflow.adapters import build_webhook_event

logger = logging.getLogger(__name__)

router = APIRouter()


async def _read_body(request: Request):
    """JSON body if it parses, raw text otherwise, None when empty."""
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return raw.decode("utf-8", errors="replace")


@router.post("/webhook/{webhook_id}")
async def receive_webhook(webhook_id: str, request: Request):
    """Fire the active zap whose webhook trigger matches `webhook_id`."""
    logger.info("Received webhook for ID: %s", webhook_id)
    body = await _read_body(request)

    try:
        zap = await run_in_threadpool(find_zap_by_webhook_id, webhook_id)
        if zap is None:
            logger.warning("No active zap for webhook %s", webhook_id)
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"success": False, "message": "Webhook not found or inactive"},
            )

        event = build_webhook_event(zap.id, webhook_id, dict(request.headers), body)
        result = await run_in_threadpool(execute_zap, zap, event.payload, "webhook")
    except Exception as e:
        logger.error("Error processing webhook %s: %s", webhook_id, e, exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "Failed to process webhook", "error": str(e)},
        )

    return {
        "success": True,
        "message": "Webhook processed successfully",
        "zap_id": zap.id,
        "zap_run_id": result.zap_run_id,
        "status": result.status.value,
        "action_results": result.action_results,
    }
