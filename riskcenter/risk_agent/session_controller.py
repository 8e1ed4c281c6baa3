# riskcenter/risk_agent/session_controller.py
# Purpose: Per-session state machine (generation lifecycle, scenarios, step reveal)

"""
Session Controller

    IDLE --submit--> GENERATING --success--> COMPLETE
                         |       --failure/timeout--> FAILED
    any --select_scenario--> DEMO_COMPLETE

Every submit/select_scenario issues a new request token. A generation
result is applied only if its token is still current, so the last request
wins regardless of arrival order. A timeout invalidates the token; the
underlying call keeps running and its result is dropped on arrival.

Each step has a reveal state CLOSED -> PENDING -> OPEN, driven by the
injected Scheduler so tests can use a fake clock.

Locking: state changes happen under one lock. The executor, the store and
listeners are always called with the lock released.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .errors import InputError, NetworkError, NotFound, Result, RiskCenterError, StateConflict
from .report_models import ContentModel, ErrorContent, StructuredReport
from .scenarios import load_scenario
from .scheduler import DelayHandle
from .session_context import SessionContext


logger = logging.getLogger(__name__)


# ============================================================================
# Enums and Views
# ============================================================================

class SessionState(Enum):
    IDLE = "idle"
    GENERATING = "generating"
    COMPLETE = "complete"
    FAILED = "failed"
    DEMO_COMPLETE = "demo_complete"


class RevealState(Enum):
    CLOSED = "closed"
    PENDING = "pending"
    OPEN = "open"


ERROR_STEP_INDEX = 1
ERROR_STEP_TITLE = "Error"
REPORT_STATES = (SessionState.COMPLETE, SessionState.DEMO_COMPLETE)


@dataclass(frozen=True)
class StepView:
    """One step card as the UI sees it."""

    index: int
    title: str
    reveal: RevealState
    content: ContentModel


@dataclass(frozen=True)
class SessionSnapshot:
    session_id: str
    state: SessionState
    token: int
    issue_text: Optional[str] = None
    report: Optional[StructuredReport] = None
    error: Optional[RiskCenterError] = None
    reveal: Dict[int, RevealState] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "state": self.state.value,
            "token": self.token,
            "issue_text": self.issue_text,
            "report_id": self.report.id if self.report else None,
            "error": {
                "kind": self.error.kind,
                "message": self.error.user_message(),
            } if self.error else None,
            "reveal": {str(index): state.value for index, state in sorted(self.reveal.items())},
        }


# ============================================================================
# Controller
# ============================================================================

class SessionController:
    """One per session; never shared between sessions."""

    def __init__(self, context: SessionContext, executor=None):
        self.context = context
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=4, thread_name_prefix=f"session-{context.session_id[:8]}"
        )

        self._lock = threading.Lock()
        self._changed = threading.Condition(self._lock)
        self._listeners: List[Callable[[SessionSnapshot], None]] = []

        self._state = SessionState.IDLE
        self._token = 0
        self._issue_text: Optional[str] = None
        self._report: Optional[StructuredReport] = None
        self._error: Optional[RiskCenterError] = None
        self._reveal: Dict[int, RevealState] = {}
        self._reveal_timers: Dict[int, DelayHandle] = {}
        self._timeout_handle: Optional[DelayHandle] = None

    @property
    def session_id(self) -> str:
        return self.context.session_id

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def submit(self, issue_text: str) -> Result:
        """Start a generation; returns the request token."""
        if not isinstance(issue_text, str) or not issue_text.strip():
            return Result.fail(InputError("issue text is blank"))

        with self._lock:
            token = self._next_token_locked()
            self._state = SessionState.GENERATING
            self._issue_text = issue_text.strip()
            self._report = None
            self._error = None
            self._reveal = {}
            self._timeout_handle = self.context.scheduler.call_later(
                self.context.generation_timeout_s, lambda: self._on_timeout(token)
            )

        logger.info(f"Session {self.session_id}: GENERATING (token {token})")
        self._executor.submit(self._run_generation, token, issue_text)
        self._notify()
        return Result.ok(token)

    def _run_generation(self, token: int, issue_text: str) -> None:
        try:
            result = self.context.pipeline.run(issue_text)
        except Exception as e:
            logger.error(f"Session {self.session_id}: generation crashed", exc_info=True)
            result = Result.fail(RiskCenterError(f"Unexpected error while generating the report: {e}"))
        self._apply(token, result)

    def _apply(self, token: int, result: Result) -> None:
        with self._lock:
            if token != self._token or self._state is not SessionState.GENERATING:
                logger.debug(f"Session {self.session_id}: discarding stale result for token {token}")
                return
            self._cancel_timeout_locked()
            if result.success:
                self._show_report_locked(result.value, SessionState.COMPLETE, RevealState.CLOSED)
            else:
                self._fail_locked(result.error)
            state = self._state

        logger.info(f"Session {self.session_id}: {state.name} (token {token})")
        self._notify()

    def _on_timeout(self, token: int) -> None:
        with self._lock:
            if token != self._token or self._state is not SessionState.GENERATING:
                return
            self._token += 1
            self._timeout_handle = None
            self._fail_locked(NetworkError(
                f"generation did not finish within {self.context.generation_timeout_s}s",
                category="timeout",
            ))

        logger.warning(f"Session {self.session_id}: generation timed out (token {token})")
        self._notify()

    # ------------------------------------------------------------------
    # Scenarios
    # ------------------------------------------------------------------

    def select_scenario(self, key: str) -> Result:
        """Show a canned report immediately; any in-flight generation is dropped."""
        result = load_scenario(key)
        if not result.success:
            return result

        with self._lock:
            token = self._next_token_locked()
            self._issue_text = result.value.issue_text
            self._show_report_locked(result.value, SessionState.DEMO_COMPLETE, RevealState.OPEN)

        logger.info(f"Session {self.session_id}: DEMO_COMPLETE '{key}' (token {token})")
        self._notify()
        return result

    # ------------------------------------------------------------------
    # Step reveal
    # ------------------------------------------------------------------

    def toggle_step(self, index: int) -> Result:
        """CLOSED -> PENDING (-> OPEN after the delay); PENDING is a no-op; OPEN -> CLOSED."""
        with self._lock:
            current = self._reveal.get(index)
            if current is None:
                return Result.fail(NotFound(f"No step {index} in the current view"))
            if current is RevealState.PENDING:
                return Result.ok(current)

            if current is RevealState.OPEN:
                self._reveal[index] = RevealState.CLOSED
            else:
                self._reveal[index] = RevealState.PENDING
                token = self._token
                self._reveal_timers[index] = self.context.scheduler.call_later(
                    self.context.config.reveal_delay_s, lambda: self._finish_reveal(token, index)
                )
            new_state = self._reveal[index]

        self._notify()
        return Result.ok(new_state)

    def _finish_reveal(self, token: int, index: int) -> None:
        with self._lock:
            if token != self._token or self._reveal.get(index) is not RevealState.PENDING:
                return
            self._reveal[index] = RevealState.OPEN
            self._reveal_timers.pop(index, None)
        self._notify()

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def visible_steps(self) -> List[StepView]:
        with self._lock:
            if self._state in REPORT_STATES and self._report is not None:
                return [
                    StepView(step.index, step.title, self._reveal[step.index], step.content)
                    for step in self._report.steps
                ]
            if self._state is SessionState.FAILED and self._error is not None:
                content = ErrorContent(message=self._error.user_message(), kind=self._error.kind)
                return [StepView(ERROR_STEP_INDEX, ERROR_STEP_TITLE, self._reveal[ERROR_STEP_INDEX], content)]
            return []

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return self._snapshot_locked()

    def _snapshot_locked(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self.session_id,
            state=self._state,
            token=self._token,
            issue_text=self._issue_text,
            report=self._report,
            error=self._error,
            reveal=dict(self._reveal),
        )

    # ------------------------------------------------------------------
    # Archive
    # ------------------------------------------------------------------

    def archive(self) -> Result:
        """Append the current report to the store; returns its archive id."""
        with self._lock:
            report = self._report if self._state in REPORT_STATES else None
        if report is None:
            return Result.fail(StateConflict("there is no completed report to archive"))

        report_id = self.context.store.append(report)
        logger.info(f"Session {self.session_id}: archived report {report_id}")
        return Result.ok(report_id)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def subscribe(self, callback: Callable[[SessionSnapshot], None]) -> Callable[[], None]:
        """Register a change listener; returns an unsubscribe function."""
        with self._lock:
            self._listeners.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return unsubscribe

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the session is not GENERATING. False on timeout."""
        with self._changed:
            return self._changed.wait_for(lambda: self._state is not SessionState.GENERATING, timeout)

    def close(self) -> None:
        with self._lock:
            self._next_token_locked()
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
            snapshot = self._snapshot_locked()
            self._changed.notify_all()
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:
                logger.error(f"Session {self.session_id}: listener failed", exc_info=True)

    # ------------------------------------------------------------------
    # Locked helpers (caller holds self._lock)
    # ------------------------------------------------------------------

    def _next_token_locked(self) -> int:
        """New request token; drops pending timers tied to the old one."""
        self._token += 1
        self._cancel_timeout_locked()
        for handle in self._reveal_timers.values():
            handle.cancel()
        self._reveal_timers.clear()
        return self._token

    def _cancel_timeout_locked(self) -> None:
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None

    def _show_report_locked(self, report: StructuredReport, state: SessionState, reveal: RevealState) -> None:
        self._state = state
        self._report = report
        self._error = None
        self._reveal = {step.index: reveal for step in report.steps}

    def _fail_locked(self, error: RiskCenterError) -> None:
        self._state = SessionState.FAILED
        self._report = None
        self._error = error
        self._reveal = {ERROR_STEP_INDEX: RevealState.OPEN}


__all__ = [
    "SessionController",
    "SessionState",
    "RevealState",
    "StepView",
    "SessionSnapshot",
]
