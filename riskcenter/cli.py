"""Command-line interface for the Incident Risk Center.

Usage examples:
    # Generate a live report (uses the configured generation profile)
    riskcenter analyze "Parent says their child was suspended without notice"

    # Use a custom handbook and archive the result
    riskcenter analyze "..." --corpus ./handbook.json --archive

    # Print a canned walkthrough report
    riskcenter scenario parentComplaint

    # Browse the archive
    riskcenter reports list
    riskcenter reports show scenario-facultyLeave

    # Run the HTTP API
    riskcenter serve --port 5000
"""

import argparse
import json
import logging
import sys

from .app import LOG_FORMAT, create_app
from .config import APP_CONFIG
from .factories import SessionFactory
from .risk_agent.corpus import ReferenceCorpus
from .risk_agent.errors import NotFound
from .risk_agent.renderer import render_report
from .risk_agent.report_store import get_report_store
from .risk_agent.scenarios import SCENARIO_TITLES, load_scenario
from .risk_agent.session_controller import SessionState


logger = logging.getLogger(__name__)

# Grace period on top of the controller's own generation timeout
WAIT_SLACK_S = 5.0


def _print_report(report, as_json: bool) -> None:
    if as_json:
        print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    else:
        print(render_report(report).to_text())


def cmd_analyze(args) -> int:
    corpus = ReferenceCorpus.load(args.corpus) if args.corpus else None
    factory = SessionFactory(config=APP_CONFIG, corpus=corpus)
    controller = factory.create()

    try:
        submitted = controller.submit(args.text)
        if not submitted.success:
            print(f"Error: {submitted.error.user_message()}", file=sys.stderr)
            return 2

        print("Analyzing...", file=sys.stderr)
        controller.wait(APP_CONFIG.generation.timeout_s + WAIT_SLACK_S)
        snapshot = controller.snapshot()

        if snapshot.state is not SessionState.COMPLETE:
            message = snapshot.error.user_message() if snapshot.error else "Generation did not finish."
            print(f"Error: {message}", file=sys.stderr)
            return 1

        _print_report(snapshot.report, args.json)
        if args.archive:
            archived = controller.archive()
            print(f"Archived as {archived.value}", file=sys.stderr)
        return 0
    finally:
        controller.close()


def cmd_scenario(args) -> int:
    result = load_scenario(args.key)
    if not result.success:
        print(f"Error: {result.error.user_message()}", file=sys.stderr)
        print(f"Available: {', '.join(SCENARIO_TITLES)}", file=sys.stderr)
        return 1
    _print_report(result.value, args.json)
    return 0


def cmd_reports(args) -> int:
    store = get_report_store(APP_CONFIG.store)

    if args.reports_command == "list":
        summaries = store.list()
        if args.json:
            print(json.dumps([s.to_dict() for s in summaries], indent=2))
            return 0
        if not summaries:
            print("No archived reports.")
        for summary in summaries:
            print(f"{summary.id}  {summary.date:<20}  {summary.title}")
        return 0

    try:
        report = store.get(args.id)
    except NotFound as e:
        print(f"Error: {e.user_message()}", file=sys.stderr)
        return 1
    _print_report(report, args.json)
    return 0


def cmd_serve(args) -> int:
    app = create_app(APP_CONFIG)
    app.run(debug=APP_CONFIG.flask_debug, host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="riskcenter",
        description="Structured six-step risk reports for school incidents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--log-level",
        default=APP_CONFIG.log_level,
        help="Logging level (default: LOG_LEVEL env or INFO)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Generate a report from free text")
    analyze.add_argument("text", help="Incident description")
    analyze.add_argument("--corpus", default=None, help="Handbook JSON file or directory of .txt/.md sections")
    analyze.add_argument("--archive", action="store_true", help="Archive the report when generation succeeds")
    analyze.add_argument("--json", action="store_true", help="Print the wire JSON instead of text")
    analyze.set_defaults(func=cmd_analyze)

    scenario = subparsers.add_parser("scenario", help="Print a canned walkthrough report")
    scenario.add_argument("key", help=f"One of: {', '.join(SCENARIO_TITLES)}")
    scenario.add_argument("--json", action="store_true", help="Print the wire JSON instead of text")
    scenario.set_defaults(func=cmd_scenario)

    reports = subparsers.add_parser("reports", help="Browse archived reports")
    reports_sub = reports.add_subparsers(dest="reports_command", required=True)
    reports_list = reports_sub.add_parser("list", help="List archived reports")
    reports_list.add_argument("--json", action="store_true")
    reports_show = reports_sub.add_parser("show", help="Show one archived report")
    reports_show.add_argument("id", help="Report id")
    reports_show.add_argument("--json", action="store_true")
    reports.set_defaults(func=cmd_reports)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=5000)
    serve.set_defaults(func=cmd_serve)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.INFO), format=LOG_FORMAT)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
