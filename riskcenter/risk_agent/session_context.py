# riskcenter/risk_agent/session_context.py
# Purpose: Explicit per-session collaborators (no process-wide session state)

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Mapping, Optional

from ..config import APP_CONFIG, SessionConfig
from .report_pipeline import ReportPipeline
from .report_store import ReportStore
from .scheduler import Scheduler


@dataclass(frozen=True)
class SessionContext:
    """Everything a SessionController needs, passed in rather than looked up."""

    pipeline: ReportPipeline
    store: ReportStore
    scheduler: Scheduler
    corpus: Mapping[str, str]
    config: SessionConfig = field(default_factory=lambda: APP_CONFIG.session)
    generation_timeout_s: float = field(default_factory=lambda: APP_CONFIG.generation.timeout_s)
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    user_id: Optional[str] = None


__all__ = ["SessionContext"]
