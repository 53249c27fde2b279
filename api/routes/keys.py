"""
Enqueue endpoint: ``/addkey?key=<object key>``.

Appends the key to the keys log so the next backup run picks it up.  A key
enqueued while a run is in progress waits for the following run.
"""

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from api.dependencies import get_edit_log
from api.models import STATUS_NO_KEY, STATUS_PUT_FAILED, ErrorOut, PutKeyOut
from editlog import EditLog

logger = logging.getLogger(__name__)

router = APIRouter(tags=["keys"])


@router.api_route(
    "/addkey",
    methods=["GET", "POST"],
    response_model=PutKeyOut,
    responses={
        STATUS_NO_KEY: {"model": ErrorOut, "description": "No key given"},
        STATUS_PUT_FAILED: {"model": ErrorOut, "description": "Keys log write failed"},
    },
    summary="Enqueue an object key for backup",
)
def add_key(
    key: str = Query("", description="Object key to back up"),
    edit_log: EditLog = Depends(get_edit_log),
):
    if not key:
        logger.error("No key to put")
        return JSONResponse(status_code=STATUS_NO_KEY,
                            content={"error": "No key to put", "status_code": STATUS_NO_KEY})
    try:
        task_id = edit_log.put_key(key)
    except (OSError, ValueError) as exc:
        logger.error("Error with the key : %s (%s)", key, exc)
        return JSONResponse(status_code=STATUS_PUT_FAILED,
                            content={"error": f"Error with the key: {exc}",
                                     "status_code": STATUS_PUT_FAILED})
    logger.info("Success with the key : %s", key)
    return PutKeyOut(key=key, task_id=task_id)
