from datetime import datetime, timezone

from riskcenter.risk_agent.errors import InputError, NetworkError, ParseError, Result
from riskcenter.risk_agent.report_pipeline import TITLE_MAX_CHARS, ReportPipeline, derive_title


def _pipeline(client, corpus, **kwargs):
    sleeps = []
    pipeline = ReportPipeline(
        client,
        corpus,
        sleep=sleeps.append,
        clock=lambda: datetime(2025, 8, 12, 9, 30, tzinfo=timezone.utc),
        **kwargs,
    )
    return pipeline, sleeps


def test_blank_issue_never_reaches_the_client(fake_client_factory, corpus, document):
    client = fake_client_factory(document)
    pipeline, _ = _pipeline(client, corpus)

    result = pipeline.run("  \t\n")

    assert isinstance(result.error, InputError)
    assert client.calls == []


def test_success_builds_envelope(fake_client_factory, corpus, document):
    client = fake_client_factory(document)
    pipeline, _ = _pipeline(client, corpus)

    report = pipeline.run("  Parent complaint\nmore detail  ", report_id="r-9").unwrap()

    assert report.id == "r-9"
    assert report.title == "Parent complaint"
    assert report.issue_text == "Parent complaint\nmore detail"
    assert report.display_date() == "August 12, 2025"
    assert 'User-Provided Scenario: "Parent complaint\nmore detail"' in client.calls[0].prompt


def test_generated_ids_are_unique(fake_client_factory, corpus, document):
    pipeline, _ = _pipeline(fake_client_factory(document), corpus)

    assert pipeline.run("a").unwrap().id != pipeline.run("a").unwrap().id


def test_network_errors_retried_with_backoff(fake_client_factory, corpus, document):
    failure = Result.fail(NetworkError("down", status_code=503))
    client = fake_client_factory(failure, failure, document)
    pipeline, sleeps = _pipeline(client, corpus, max_network_retries=2, retry_backoff_s=1.0)

    assert pipeline.run("issue").success
    assert len(client.calls) == 3
    assert sleeps == [1.0, 2.0]


def test_retries_exhausted_returns_network_error(fake_client_factory, corpus):
    client = fake_client_factory(Result.fail(NetworkError("down")))
    pipeline, sleeps = _pipeline(client, corpus, max_network_retries=1)

    result = pipeline.run("issue")

    assert isinstance(result.error, NetworkError)
    assert len(client.calls) == 2
    assert sleeps == [1.0]


def test_no_retry_by_default(fake_client_factory, corpus):
    client = fake_client_factory(Result.fail(NetworkError("down")))
    pipeline, sleeps = _pipeline(client, corpus)

    assert not pipeline.run("issue").success
    assert len(client.calls) == 1
    assert sleeps == []


def test_parse_errors_are_not_retried(fake_client_factory, corpus):
    client = fake_client_factory("not json at all")
    pipeline, sleeps = _pipeline(client, corpus, max_network_retries=3)

    result = pipeline.run("issue")

    assert isinstance(result.error, ParseError)
    assert len(client.calls) == 1
    assert sleeps == []


def test_derive_title():
    assert derive_title("  Short title\nbody") == "Short title"
    long_line = "x" * 200
    title = derive_title(long_line)
    assert len(title) == TITLE_MAX_CHARS
    assert title.endswith("...")
