# riskcenter/risk_agent/report_store.py
# Purpose: Append-only archive of validated reports (JSON-lines file or MongoDB)

"""
Report Store

append() is idempotent on report id, get() rebuilds the report through
ReportContract.validate so a replay equals the original, and list() keeps
insertion order. Both backends are safe to share between sessions.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pymongo import ASCENDING, MongoClient
from pymongo.errors import DuplicateKeyError

from ..config import APP_CONFIG, StoreConfig
from .errors import NotFound
from .report_contract import ReportContract
from .report_models import StructuredReport, format_report_date
from .scenarios import load_scenario, scenario_keys


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArchiveSummary:
    id: str
    title: str
    date: str

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "title": self.title, "date": self.date}


def _summary(wire: Dict[str, Any]) -> ArchiveSummary:
    return ArchiveSummary(id=wire["id"], title=wire["title"], date=format_report_date(wire["createdAt"]))


class ReportStore(ABC):
    def __init__(self, contract: Optional[ReportContract] = None):
        self.contract = contract or ReportContract()

    @abstractmethod
    def append(self, report: StructuredReport) -> str:
        """Archive ``report``; returns its id. Re-appending an id is a no-op."""

    @abstractmethod
    def get(self, report_id: str) -> StructuredReport:
        """Raises NotFound for unknown ids."""

    @abstractmethod
    def list(self) -> List[ArchiveSummary]:
        """Summaries in insertion order."""

    def _wire(self, report: StructuredReport) -> Dict[str, Any]:
        # Re-check before writing; stored documents must always validate
        checked = self.contract.validate(report).unwrap()
        return self.contract.serialize(checked)

    def _rebuild(self, wire: Dict[str, Any]) -> StructuredReport:
        return self.contract.validate(wire).unwrap()


# ============================================================================
# JSON-lines file
# ============================================================================

class JsonFileReportStore(ReportStore):
    """One JSON document per line; the whole file is indexed at startup."""

    def __init__(self, path: Union[str, Path], contract: Optional[ReportContract] = None):
        super().__init__(contract)
        self.path = Path(path)
        self._lock = threading.Lock()
        self._index: Dict[str, Dict[str, Any]] = {}
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        with open(self.path, "r", encoding="utf-8") as f:
            for line_no, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    record = json.loads(line)
                except json.JSONDecodeError as e:
                    logger.error(f"Skipping corrupt archive line {line_no} in {self.path}: {e}")
                    continue
                report_id = record.get("id") if isinstance(record, dict) else None
                if not isinstance(report_id, str) or not report_id:
                    logger.error(f"Skipping archive line {line_no} in {self.path}: no report id")
                    continue
                self._index.setdefault(report_id, record)
        logger.info(f"Loaded {len(self._index)} archived reports from {self.path}")

    def append(self, report: StructuredReport) -> str:
        wire = self._wire(report)
        with self._lock:
            if wire["id"] in self._index:
                return wire["id"]
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(json.dumps(wire, ensure_ascii=False) + "\n")
                f.flush()
                os.fsync(f.fileno())
            self._index[wire["id"]] = wire
        logger.info(f"Archived report {wire['id']}")
        return wire["id"]

    def get(self, report_id: str) -> StructuredReport:
        with self._lock:
            wire = self._index.get(report_id)
        if wire is None:
            raise NotFound(f"No archived report with id '{report_id}'")
        return self._rebuild(wire)

    def list(self) -> List[ArchiveSummary]:
        with self._lock:
            records = list(self._index.values())
        return [_summary(wire) for wire in records]


# ============================================================================
# MongoDB
# ============================================================================

class MongoReportStore(ReportStore):
    """Archive in a pymongo collection, unique on report_id."""

    def __init__(self, collection, contract: Optional[ReportContract] = None):
        super().__init__(contract)
        self.collection = collection
        self.collection.create_index([("report_id", ASCENDING)], unique=True, name="report_id")

    @classmethod
    def from_config(cls, config: StoreConfig) -> "MongoReportStore":
        client = MongoClient(config.mongo_uri, serverSelectionTimeoutMS=config.server_selection_timeout_ms)
        return cls(client[config.db_name][config.collection])

    def append(self, report: StructuredReport) -> str:
        wire = self._wire(report)
        try:
            self.collection.insert_one({"report_id": wire["id"], "report": wire})
        except DuplicateKeyError:
            logger.debug(f"Report {wire['id']} already archived")
            return wire["id"]
        logger.info(f"Archived report {wire['id']}")
        return wire["id"]

    def get(self, report_id: str) -> StructuredReport:
        doc = self.collection.find_one({"report_id": report_id})
        if doc is None:
            raise NotFound(f"No archived report with id '{report_id}'")
        return self._rebuild(doc["report"])

    def list(self) -> List[ArchiveSummary]:
        cursor = self.collection.find({}, {"report": 1}).sort("_id", ASCENDING)
        return [_summary(doc["report"]) for doc in cursor]


# ============================================================================
# Factory
# ============================================================================

def get_report_store(config: Optional[StoreConfig] = None) -> ReportStore:
    """Build the store selected by STORE_BACKEND."""
    config = config or APP_CONFIG.store
    backend = config.backend.lower()
    if backend == "json":
        return JsonFileReportStore(config.json_path)
    if backend == "mongo":
        return MongoReportStore.from_config(config)
    raise ValueError(f"Unknown store backend '{config.backend}'. Available: ['json', 'mongo']")


def seed_scenario_archive(store: ReportStore) -> List[str]:
    """Archive the canned scenarios (no-op for ones already stored)."""
    return [store.append(load_scenario(key).unwrap()) for key in scenario_keys()]


__all__ = [
    "ArchiveSummary",
    "ReportStore",
    "JsonFileReportStore",
    "MongoReportStore",
    "get_report_store",
    "seed_scenario_archive",
]
