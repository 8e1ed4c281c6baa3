# riskcenter/factories.py
# Purpose: Wire shared collaborators into per-session controllers
#          - One store / corpus / generation client per process
#          - One SessionController per session, kept in a bounded registry

from __future__ import annotations

import logging
from collections import OrderedDict
from threading import Lock
from typing import Any, Mapping, Optional

from .config import APP_CONFIG, AppConfig
from .risk_agent.corpus import ReferenceCorpus
from .risk_agent.generation_client import GenerationClient, LLMGenerationClient
from .risk_agent.report_pipeline import ReportPipeline
from .risk_agent.report_store import ReportStore, get_report_store
from .risk_agent.scheduler import Scheduler, ThreadingScheduler
from .risk_agent.session_context import SessionContext
from .risk_agent.session_controller import SessionController


logger = logging.getLogger(__name__)


class SessionFactory:
    """
    Builds SessionControllers that share the process-wide collaborators.

    Anything not passed in is created from config:
        store             -> get_report_store(config.store)
        corpus            -> ReferenceCorpus.load(config.corpus_path)
        generation_client -> LLMGenerationClient(profile=config.generation.profile)
        scheduler         -> ThreadingScheduler()
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        store: Optional[ReportStore] = None,
        corpus: Optional[Mapping[str, str]] = None,
        generation_client: Optional[GenerationClient] = None,
        scheduler: Optional[Scheduler] = None,
        executor: Optional[Any] = None,
    ):
        self.config = config or APP_CONFIG
        self.store = store or get_report_store(self.config.store)
        self.corpus = corpus if corpus is not None else ReferenceCorpus.load(self.config.corpus_path)
        self.generation_client = generation_client or LLMGenerationClient(
            profile=self.config.generation.profile,
            temperature=self.config.generation.temperature,
        )
        self.scheduler = scheduler or ThreadingScheduler()
        self.executor = executor

    def create(self, user_id: Optional[str] = None, corpus: Optional[Mapping[str, str]] = None) -> SessionController:
        corpus = corpus if corpus is not None else self.corpus
        pipeline = ReportPipeline.from_config(self.generation_client, corpus, self.config.generation)
        context = SessionContext(
            pipeline=pipeline,
            store=self.store,
            scheduler=self.scheduler,
            corpus=corpus,
            config=self.config.session,
            generation_timeout_s=self.config.generation.timeout_s,
            user_id=user_id,
        )
        return SessionController(context, executor=self.executor)


class SessionRegistry:
    """Live sessions by id; the oldest is closed once max_sessions is exceeded."""

    def __init__(self, factory: SessionFactory, max_sessions: Optional[int] = None):
        self.factory = factory
        self.max_sessions = max_sessions or factory.config.session.max_sessions
        self._sessions: "OrderedDict[str, SessionController]" = OrderedDict()
        self._lock = Lock()

    def create(self, user_id: Optional[str] = None) -> SessionController:
        controller = self.factory.create(user_id=user_id)
        evicted = []
        with self._lock:
            self._sessions[controller.session_id] = controller
            while len(self._sessions) > self.max_sessions:
                _, old = self._sessions.popitem(last=False)
                evicted.append(old)
        for old in evicted:
            logger.info(f"Evicting session {old.session_id}")
            old.close()
        return controller

    def get(self, session_id: str) -> Optional[SessionController]:
        with self._lock:
            controller = self._sessions.get(session_id)
            if controller is not None:
                self._sessions.move_to_end(session_id)
            return controller

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


__all__ = ["SessionFactory", "SessionRegistry"]
