from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


# ----------------------------------------------------------------------
# Event Types (Finite and Versioned)
# ----------------------------------------------------------------------
class InspectionEventType(str, Enum):
    """
    Progression events emitted during an inspection.

    NOTE:
    This enum is finite and versioned.
    New entries must preserve observational semantics.
    """

    # ------------------------------------------------------------------
    # Global lifecycle
    # ------------------------------------------------------------------
    INSPECTION_STARTED = "inspection_started"
    INSPECTION_COMPLETED = "inspection_completed"
    INSPECTION_FAILED = "inspection_failed"

    # ------------------------------------------------------------------
    # Collection
    # ------------------------------------------------------------------
    ADS_TXT_COLLECTED = "ads_txt_collected"
    BIDDING_COLLECTED = "bidding_collected"

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------
    ANALYSIS_COMPLETED = "analysis_completed"


# ----------------------------------------------------------------------
# Event Model
# ----------------------------------------------------------------------
class InspectionEvent(BaseModel):
    """
    An immutable observation of a phase transition.

    Events are strictly observational and never authoritative; the
    InspectionReport is the only result contract.
    """

    event_id: UUID = Field(default_factory=uuid4)
    inspection_id: str = Field(..., description="The inspection identifier")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    event_type: InspectionEventType

    # Optional contextual metadata (domain, counts, statuses, report)
    details: Optional[Dict[str, Any]] = None

    def to_sse_payload(self) -> str:
        """Serialize as a Server-Sent Events frame."""
        data = json.dumps(self.model_dump(mode="json"), ensure_ascii=False)
        return f"event: {self.event_type.value}\ndata: {data}\n\n"

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )
