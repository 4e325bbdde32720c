# zap_server/routers/execute.py
import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from zap_server.schemas.runs import ExecuteRequest
from zap_server.services.executor import execute_zap_by_id
from zapflow.exceptions import ZapNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/execute/{zap_id}")
def execute_zap_endpoint(zap_id: str, request: ExecuteRequest):
    """Run a zap once with the given trigger payload."""
    try:
        result = execute_zap_by_id(zap_id, request.trigger_payload, source=request.source)
    except ZapNotFoundError as e:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"success": False, "message": str(e)},
        )
    except Exception as e:
        logger.error("Error executing zap %s: %s", zap_id, e, exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "Failed to execute zap", "error": str(e)},
        )
    return result.model_dump(mode="json")
