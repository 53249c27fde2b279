"""
Pydantic response models for the control plane.

Failure responses use the original agent's status codes:

    495  backup could not be started
    496  caller address not allowed
    497  no key given
    498  key could not be written to the keys log
"""

from __future__ import annotations

from pydantic import BaseModel, Field

STATUS_BACKUP_FAILED = 495
STATUS_IP_FORBIDDEN = 496
STATUS_NO_KEY = 497
STATUS_PUT_FAILED = 498


class PutKeyOut(BaseModel):
    """A key accepted into the keys log."""
    status: str = Field("ok", examples=["ok"])
    key: str = Field(..., description="The key as submitted", examples=["photos/2024/cat.jpg"])
    task_id: str = Field(..., description="Escaped key and enqueue time",
                         examples=["photos/2024/cat.jpg:1718000000000000000"])


class BackupStartedOut(BaseModel):
    """A backup run handed to the background worker."""
    status: str = Field("started", examples=["started"])
    bucket: str = Field(..., examples=["my-bucket"])


class ErrorOut(BaseModel):
    """Error payload for every non-2xx response."""
    error: str = Field(..., examples=["No key to put"])
    status_code: int = Field(..., examples=[STATUS_NO_KEY])


class HealthOut(BaseModel):
    """Liveness payload."""
    status: str = Field("ok", examples=["ok"])
    bucket: str = Field(..., examples=["my-bucket"])
    uptime_seconds: float = Field(..., examples=[12.5])
