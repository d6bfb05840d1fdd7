"""
Dashboard API routes for SchoolDash.
Handles the whole-state read, view/theme toggles, the dashboard summary,
results and reports screens, and reloading the demo data.
"""
from flask import Blueprint, request, jsonify

from schooldash import store as actions
from schooldash.config import VIEWS, config
from schooldash.demo_data import build_demo_data
from schooldash.services.queries import dashboard_summary, results, subject_report

dashboard_bp = Blueprint('dashboard', __name__)

# Set by register_routes during initialization
store = None


def init_dashboard_routes(store_ref):
    """Initialize dashboard routes with the shared store."""
    global store
    store = store_ref


@dashboard_bp.route('/api/state')
def get_state():
    """Full store state (collections, analytics and UI flags)."""
    return jsonify(store.state)


@dashboard_bp.route('/api/view', methods=['POST'])
def set_view():
    data = request.get_json(silent=True) or {}
    view = data.get('view', '')
    if view not in VIEWS:
        return jsonify({"error": f"Unknown view: {view}", "views": VIEWS}), 400
    state = store.dispatch(actions.SET_VIEW, view)
    return jsonify({"current_view": state["current_view"]})


@dashboard_bp.route('/api/theme/toggle', methods=['POST'])
def toggle_theme():
    state = store.dispatch(actions.TOGGLE_DARK_MODE)
    return jsonify({"dark_mode": state["dark_mode"]})


@dashboard_bp.route('/api/dashboard')
def get_dashboard():
    state = store.state
    return jsonify({
        "teacher": state["current_teacher"],
        "summary": dashboard_summary(state),
        "current_view": state["current_view"],
        "dark_mode": state["dark_mode"],
    })


@dashboard_bp.route('/api/results')
def get_results():
    """Graded results, filterable by search text and subject."""
    rows = results(
        store.state,
        search=request.args.get('search', ''),
        subject=request.args.get('subject', ''),
    )
    return jsonify({"results": rows, "count": len(rows)})


@dashboard_bp.route('/api/reports')
def get_reports():
    return jsonify(subject_report(store.state, subject=request.args.get('subject', '')))


@dashboard_bp.route('/api/demo/reload', methods=['POST'])
def reload_demo():
    """Replace all collections with a fresh copy of the demo dataset."""
    state = store.dispatch(actions.LOAD_INITIAL_DATA, build_demo_data())
    return jsonify({"status": "loaded", "students": len(state["students"])})


@dashboard_bp.route('/api/settings')
def get_settings():
    return jsonify(config.to_dict())
