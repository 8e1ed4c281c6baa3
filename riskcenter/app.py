# riskcenter/app.py
# Flask application factory for the Incident Risk Center

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from flask import Flask, jsonify

from .config import APP_CONFIG
from .factories import SessionFactory, SessionRegistry
from .risk_agent.report_store import seed_scenario_archive
from .risk_routes import init_app as init_risk_routes

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(app, config):
    """Console handler always; rotating file handler when LOG_FILE is set."""
    level = getattr(logging, config.log_level, logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)

    package_logger = logging.getLogger("riskcenter")
    package_logger.setLevel(level)

    if not any(getattr(h, "_riskcenter", False) for h in package_logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        console_handler._riskcenter = True
        package_logger.addHandler(console_handler)

        if config.log_file:
            Path(config.log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(config.log_file, maxBytes=10 * 1024 * 1024, backupCount=10)
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            file_handler._riskcenter = True
            package_logger.addHandler(file_handler)

    app.logger.setLevel(level)


def create_app(
    config=None,
    *,
    store=None,
    generation_client=None,
    scheduler=None,
    executor=None,
    corpus=None,
):
    """
    Build the Flask app.

    Collaborators default to what the config describes; tests pass fakes.
    """
    config = config or APP_CONFIG

    app = Flask(__name__)
    app.secret_key = config.secret_key
    app.config["DEBUG"] = config.flask_debug
    configure_logging(app, config)

    factory = SessionFactory(
        config=config,
        store=store,
        corpus=corpus,
        generation_client=generation_client,
        scheduler=scheduler,
        executor=executor,
    )
    app.extensions["riskcenter"] = {
        "config": config,
        "factory": factory,
        "sessions": SessionRegistry(factory),
    }

    if config.store.seed_scenarios:
        seeded = seed_scenario_archive(factory.store)
        app.logger.info(f"Archive seeded with {len(seeded)} canned scenarios")

    init_risk_routes(app)

    @app.route("/health")
    def health():
        return jsonify({"status": "ok", "sessions": len(app.extensions["riskcenter"]["sessions"])})

    return app


if __name__ == '__main__':
    create_app().run(debug=APP_CONFIG.flask_debug, host='0.0.0.0', port=5000)
