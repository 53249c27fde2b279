"""
Request dependencies for the control plane.

The ``EditLog`` served by the app lives on ``app.state.edit_log``; routes get
it through ``Depends(get_edit_log)`` so tests can build an app around any
bucket.
"""

from fastapi import HTTPException, Request

from editlog import EditLog


def get_edit_log(request: Request) -> EditLog:
    """Return the EditLog attached to the running app."""
    edit_log = getattr(request.app.state, "edit_log", None)
    if edit_log is None:
        raise HTTPException(status_code=503, detail="Backup agent not initialised")
    return edit_log
