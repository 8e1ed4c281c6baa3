# riskcenter/risk_routes.py
"""
Flask Blueprint routes for the risk assessment API.

All endpoints return JSON. Expected failures map to 400/404/409 with
{"error": <user message>, "kind": <error kind>}; anything else is logged
and returned as 500.

Endpoints:
    POST /api/risk/sessions                          - Create a session
    GET  /api/risk/sessions/<sid>                    - Snapshot + rendered open steps
    POST /api/risk/sessions/<sid>/submit             - Start generation {"issue": "..."}
    POST /api/risk/sessions/<sid>/scenarios/<key>    - Load a canned scenario
    POST /api/risk/sessions/<sid>/steps/<n>/toggle   - Toggle a step's reveal state
    POST /api/risk/sessions/<sid>/archive            - Archive the current report
    GET  /api/risk/scenarios                         - Canned scenario keys and titles
    GET  /api/risk/reports                           - Archive summaries
    GET  /api/risk/reports/<report_id>               - Archived report + rendered tree
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from .risk_agent.errors import InputError, NotFound, RiskCenterError
from .risk_agent.renderer import render, render_report
from .risk_agent.scenarios import SCENARIO_TITLES
from .risk_agent.session_controller import RevealState, SessionController

logger = logging.getLogger(__name__)

risk_bp = Blueprint("risk", __name__, url_prefix="/api/risk")

STATUS_BY_KIND = {
    "input": 400,
    "not_found": 404,
    "conflict": 409,
}


def init_app(app):
    """Register the risk blueprint with the Flask application."""
    if "risk" not in app.blueprints:
        app.register_blueprint(risk_bp)
        app.logger.info("Risk assessment blueprint registered at /api/risk.")


# ===========================================================================
# Helpers
# ===========================================================================

def _services() -> dict:
    return current_app.extensions["riskcenter"]


def _error(error: RiskCenterError):
    status = STATUS_BY_KIND.get(error.kind, 502)
    return jsonify({"error": error.user_message(), "kind": error.kind}), status


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise InputError(
            f"request body is a JSON {type(payload).__name__}",
            hint="The request body must be a JSON object.",
        )
    return payload


def _session(session_id: str) -> SessionController:
    controller = _services()["sessions"].get(session_id)
    if controller is None:
        raise NotFound(f"Session {session_id} not found")
    return controller


def _session_view(controller: SessionController) -> dict:
    view = controller.snapshot().to_dict()
    view["steps"] = [
        {
            "index": step.index,
            "title": step.title,
            "reveal": step.reveal.value,
            "display": render(step.content).to_dict() if step.reveal is RevealState.OPEN else None,
        }
        for step in controller.visible_steps()
    ]
    return view


def _internal_error(endpoint: str, e: Exception):
    logger.error("Error in %s: %s", endpoint, e, exc_info=True)
    return jsonify({"error": "Internal server error"}), 500


# ===========================================================================
# Sessions
# ===========================================================================

@risk_bp.route("/sessions", methods=["POST"])
def create_session_endpoint():
    """POST /api/risk/sessions - optional body {"user_id": "..."}."""
    try:
        payload = _json_body()
        controller = _services()["sessions"].create(user_id=payload.get("user_id"))
        return jsonify({"session_id": controller.session_id}), 201
    except RiskCenterError as e:
        return _error(e)
    except Exception as e:
        return _internal_error("create_session_endpoint", e)


@risk_bp.route("/sessions/<session_id>", methods=["GET"])
def session_endpoint(session_id: str):
    try:
        return jsonify(_session_view(_session(session_id)))
    except RiskCenterError as e:
        return _error(e)
    except Exception as e:
        return _internal_error("session_endpoint", e)


@risk_bp.route("/sessions/<session_id>/submit", methods=["POST"])
def submit_endpoint(session_id: str):
    """
    POST /api/risk/sessions/<sid>/submit

    Body: {"issue": "free-text incident description"}
    Returns 202 with the request token; poll the session for the outcome.
    """
    try:
        controller = _session(session_id)
        payload = _json_body()
        issue = payload.get("issue", "")
        if not isinstance(issue, str):
            raise InputError("issue is not a string", hint="The \"issue\" field must be a string.")
        result = controller.submit(issue)
        if not result.success:
            return _error(result.error)
        return jsonify({"token": result.value, "state": controller.state.value}), 202
    except RiskCenterError as e:
        return _error(e)
    except Exception as e:
        return _internal_error("submit_endpoint", e)


@risk_bp.route("/sessions/<session_id>/scenarios/<key>", methods=["POST"])
def select_scenario_endpoint(session_id: str, key: str):
    try:
        controller = _session(session_id)
        result = controller.select_scenario(key)
        if not result.success:
            return _error(result.error)
        return jsonify(_session_view(controller))
    except RiskCenterError as e:
        return _error(e)
    except Exception as e:
        return _internal_error("select_scenario_endpoint", e)


@risk_bp.route("/sessions/<session_id>/steps/<int:index>/toggle", methods=["POST"])
def toggle_step_endpoint(session_id: str, index: int):
    try:
        result = _session(session_id).toggle_step(index)
        if not result.success:
            return _error(result.error)
        return jsonify({"index": index, "reveal": result.value.value})
    except RiskCenterError as e:
        return _error(e)
    except Exception as e:
        return _internal_error("toggle_step_endpoint", e)


@risk_bp.route("/sessions/<session_id>/archive", methods=["POST"])
def archive_endpoint(session_id: str):
    try:
        result = _session(session_id).archive()
        if not result.success:
            return _error(result.error)
        return jsonify({"id": result.value}), 201
    except RiskCenterError as e:
        return _error(e)
    except Exception as e:
        return _internal_error("archive_endpoint", e)


# ===========================================================================
# Scenarios and archive
# ===========================================================================

@risk_bp.route("/scenarios", methods=["GET"])
def scenarios_endpoint():
    return jsonify({
        "scenarios": [{"key": key, "title": title} for key, title in SCENARIO_TITLES.items()]
    })


@risk_bp.route("/reports", methods=["GET"])
def reports_endpoint():
    try:
        summaries = _services()["factory"].store.list()
        return jsonify({"reports": [summary.to_dict() for summary in summaries]})
    except Exception as e:
        return _internal_error("reports_endpoint", e)


@risk_bp.route("/reports/<report_id>", methods=["GET"])
def report_endpoint(report_id: str):
    """GET /api/risk/reports/<id> - wire form plus the same tree a live session renders."""
    try:
        report = _services()["factory"].store.get(report_id)
        return jsonify({
            "report": report.to_dict(),
            "display": render_report(report).to_dict(),
        })
    except RiskCenterError as e:
        return _error(e)
    except Exception as e:
        return _internal_error("report_endpoint", e)
