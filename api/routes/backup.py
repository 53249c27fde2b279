"""
Backup trigger endpoint: ``/backup``.

Starts a run in the background and answers at once; a trigger that arrives
while a run is in progress queues behind it.  Per-task outcomes are written
to the history log, not returned here.
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from api.dependencies import get_edit_log
from api.models import STATUS_BACKUP_FAILED, BackupStartedOut, ErrorOut
from editlog import EditLog

logger = logging.getLogger(__name__)

router = APIRouter(tags=["backup"])


@router.api_route(
    "/backup",
    methods=["GET", "POST"],
    status_code=status.HTTP_202_ACCEPTED,
    response_model=BackupStartedOut,
    responses={
        STATUS_BACKUP_FAILED: {"model": ErrorOut, "description": "Backup could not be started"},
    },
    summary="Trigger a backup run",
)
def trigger_backup(edit_log: EditLog = Depends(get_edit_log)):
    try:
        edit_log.start_backup()
    except (OSError, RuntimeError) as exc:
        logger.error("Error starting backup: %s", exc)
        return JSONResponse(status_code=STATUS_BACKUP_FAILED,
                            content={"error": "Error starting backup",
                                     "status_code": STATUS_BACKUP_FAILED})
    return BackupStartedOut(bucket=edit_log.bucket)
