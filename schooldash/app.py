#!/usr/bin/env python3
"""
SchoolDash - Classroom Administration Dashboard
===============================================
Run: python3 -m schooldash.app
Then open: http://localhost:3000/api/dashboard
"""

import logging

from flask import Flask, jsonify
from flask_cors import CORS

from schooldash import __version__
from schooldash import store as actions
from schooldash.config import MAX_IMPORT_BYTES, config
from schooldash.demo_data import build_demo_data
from schooldash.routes import register_routes
from schooldash.services.analytics_engine import analytics_for_state

logger = logging.getLogger(__name__)


def register_analytics_refresh(store):
    """Recompute the analytics snapshot whenever the graded data changes.

    Only runs once there is at least one student and one grade entry.
    """
    def _refresh(action, state):
        if not config.auto_refresh_analytics or action["type"] not in actions.DATA_ACTIONS:
            return
        if not state["students"] or not state["grade_entries"]:
            return
        store.dispatch(actions.UPDATE_AI_ANALYTICS, analytics_for_state(state))

    return store.subscribe(_refresh)


def create_app(store=None, load_demo=None):
    """Build the Flask app around a store (a fresh one by default)."""
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = MAX_IMPORT_BYTES
    CORS(app)

    store = store or actions.Store()
    if load_demo is None:
        load_demo = config.load_demo_data
    if load_demo:
        store.dispatch(actions.LOAD_INITIAL_DATA, build_demo_data())
        logger.info("Loaded demo data: %d students", len(store.state["students"]))
    register_analytics_refresh(store)

    register_routes(app, store)
    app.extensions["schooldash_store"] = store

    @app.route('/')
    def index():
        return jsonify({"message": "SchoolDash Backend", "version": __version__})

    @app.errorhandler(413)
    def too_large(e):
        return jsonify({"error": "File too large (max 5MB)"}), 413

    return app


def main():
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app()
    logger.info("Starting SchoolDash on http://%s:%d", config.host, config.port)
    app.run(host=config.host, port=config.port, debug=config.debug)


if __name__ == '__main__':
    main()
