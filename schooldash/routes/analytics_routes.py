"""
Analytics API routes for SchoolDash.
Serves the cached analytics snapshot and recomputes it on request.
"""
import logging
import time

from flask import Blueprint, jsonify

from schooldash import store as actions
from schooldash.config import config
from schooldash.services.analytics_engine import analytics_for_state, overview_stats

logger = logging.getLogger(__name__)

analytics_bp = Blueprint('analytics', __name__)

SECTIONS = ('insights', 'trends', 'learning_gaps', 'recommendations', 'alerts', 'subject_breakdowns')

# Set by register_routes during initialization
store = None


def init_analytics_routes(store_ref):
    """Initialize analytics routes with the shared store."""
    global store
    store = store_ref


@analytics_bp.route('/api/analytics')
def get_analytics():
    """Current analytics snapshot plus overview counts."""
    snapshot = store.state["analytics"]
    return jsonify({**snapshot, "overview": overview_stats(snapshot)})


@analytics_bp.route('/api/analytics/refresh', methods=['POST'])
def refresh_analytics():
    """Recompute the snapshot from the current students, grades and assessments."""
    if config.analysis_delay > 0:
        time.sleep(config.analysis_delay)

    snapshot = analytics_for_state(store.state)
    store.dispatch(actions.UPDATE_AI_ANALYTICS, snapshot)
    logger.info("Analytics refreshed on request")
    return jsonify({**snapshot, "overview": overview_stats(snapshot)})


@analytics_bp.route('/api/analytics/overview')
def get_overview():
    return jsonify(overview_stats(store.state["analytics"]))


@analytics_bp.route('/api/analytics/<section>')
def get_section(section):
    if section not in SECTIONS:
        return jsonify({"error": f"Unknown analytics section: {section}"}), 404
    items = store.state["analytics"][section]
    return jsonify({section: items, "count": len(items)})
