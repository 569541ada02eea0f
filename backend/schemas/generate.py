from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .mockup import MockupSettings


class RunStateName(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class GenerateAcceptedResponse(BaseModel):
    """Run accepted; poll /generate/status for progress"""

    run_id: str
    state: RunStateName = RunStateName.RUNNING
    total_sources: int = Field(..., ge=1)
    total_jobs: int = Field(..., ge=1)


class RunStatusResponse(BaseModel):
    """Snapshot of the current (or last) generation run"""

    state: RunStateName
    run_id: Optional[str] = None
    progress_label: str = ""
    completed_jobs: int = Field(0, ge=0)
    total_jobs: int = Field(0, ge=0)
    error_message: Optional[str] = None
    asset_ids: List[str] = []


class CancelResponse(BaseModel):
    cancelled: bool
    state: RunStateName


class RefineResponse(BaseModel):
    """Settings and source screenshot to start a refinement run from"""

    settings: MockupSettings
    source_base64: Optional[str] = None
    source_mime_type: Optional[str] = None
    source_filename: Optional[str] = None
    source_restored: bool = False
