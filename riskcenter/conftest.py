"""Shared pytest fixtures: fake generation client, manual executor/scheduler, stores."""

import copy
import json

import pytest

from riskcenter.config import SessionConfig
from riskcenter.risk_agent.corpus import ReferenceCorpus
from riskcenter.risk_agent.errors import Result
from riskcenter.risk_agent.generation_client import GenerationClient
from riskcenter.risk_agent.report_models import ReportEnvelope
from riskcenter.risk_agent.report_pipeline import ReportPipeline
from riskcenter.risk_agent.report_store import JsonFileReportStore
from riskcenter.risk_agent.scheduler import ManualScheduler
from riskcenter.risk_agent.session_context import SessionContext
from riskcenter.risk_agent.session_controller import SessionController


def _option4(letter, score):
    return {
        "title": f"Option {letter}",
        "suggestedLanguage": f"Drafted reply {letter}.",
        "policyMatch": "Section 4.3",
        "riskScore": score,
        "legalReference": f"Case {letter} v. School (2020)",
        "recommendation": "Proceed." if letter == "A" else "Not advised.",
    }


def _option5(letter, risk):
    return {
        "title": f"Option {letter}",
        "likelyResponse": f"Reaction to option {letter}.",
        "schoolRisk": risk,
        "legalReference": f"Case {letter} v. School (2020)",
    }


_DOCUMENT = {
    "step1": {"title": "Classify the Issue", "content": [
        {"header": "Issue Type:", "text": "Parent Complaint"},
        {"header": "Summary:", "text": "Parent says **no notice** was given."},
    ]},
    "step2": {"title": "Match Handbook & Policies", "content": [
        {"header": "Relevant Section:", "text": "Section 4.3"},
    ]},
    "step3": {"title": "Initial Risk Assessment", "content": [
        {"header": "Risk Tier:", "text": "Moderate"},
    ]},
    "step4": {"title": "Administrator Response Options", "content": {
        "optionA": _option4("A", "Low"),
        "optionB": _option4("B", "Moderate"),
        "optionC": _option4("C", "High"),
    }},
    "step5": {"title": "Projected Complainant Reactions", "content": {
        "optionA": _option5("A", "Low"),
        "optionB": _option5("B", "Moderate"),
        "optionC": _option5("C", "High"),
    }},
    "step6": {"title": "Final Recommendation & Action Plan", "content": {
        "recommendationSummary": "**Recommended Option:** Option A\n**Confidence Level:** High",
        "implementationSteps": ["1. **Acknowledge:** Call the parent.", "2. Review the file."],
    }},
}


@pytest.fixture
def document():
    """A generated document (step1..step6 only) that satisfies the contract."""
    return copy.deepcopy(_DOCUMENT)


@pytest.fixture
def envelope():
    return ReportEnvelope(
        id="report-1",
        title="Parent complaint",
        issue_text="Parent complaint about a suspension",
        created_at="2025-08-12T09:30:00+00:00",
    )


@pytest.fixture
def corpus():
    return ReferenceCorpus({
        "1. Introduction": "1.1 Welcome",
        "4. Compensation Policies": "4.3 Separation from Employment",
    })


class FakeGenerationClient(GenerationClient):
    """Returns queued Results (or raw strings) in order; repeats the last one."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def generate(self, instruction, contract):
        self.calls.append(instruction)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Result):
            return response
        if isinstance(response, dict):
            return Result.ok(json.dumps(response))
        return Result.ok(response)


class ManualExecutor:
    """Queues submitted jobs; tests run them explicitly, in any order."""

    def __init__(self):
        self.jobs = []

    def submit(self, fn, *args, **kwargs):
        self.jobs.append((fn, args, kwargs))

    def run(self, index):
        fn, args, kwargs = self.jobs[index]
        fn(*args, **kwargs)

    def run_all(self):
        while self.jobs:
            fn, args, kwargs = self.jobs.pop(0)
            fn(*args, **kwargs)


class ImmediateExecutor:
    def submit(self, fn, *args, **kwargs):
        fn(*args, **kwargs)


@pytest.fixture
def fake_client_factory():
    return FakeGenerationClient


@pytest.fixture
def manual_executor():
    return ManualExecutor()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def json_store(tmp_path):
    return JsonFileReportStore(tmp_path / "archive.jsonl")


@pytest.fixture
def make_controller(corpus, json_store, scheduler):
    """Build a SessionController around a fake client; returns (controller, client)."""

    def _make(*responses, executor=None, reveal_delay_s=0.75, timeout_s=30.0):
        client = FakeGenerationClient(*responses)
        context = SessionContext(
            pipeline=ReportPipeline(client, corpus),
            store=json_store,
            scheduler=scheduler,
            corpus=corpus,
            config=SessionConfig(reveal_delay_s=reveal_delay_s, max_sessions=10),
            generation_timeout_s=timeout_s,
            session_id="session-test",
        )
        return SessionController(context, executor=executor or ImmediateExecutor()), client

    return _make
