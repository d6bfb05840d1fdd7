"""
Assessment API routes for SchoolDash.
Handles assessments, the grade-entry sheet, saving grades, and the
per-student assessment history.
"""
from flask import Blueprint, request, jsonify

from schooldash import store as actions
from schooldash.config import config
from schooldash.records import canonical_subject, new_assessment, safe_number, validate_assessment
from schooldash.services.grading_service import (
    assessment_completion, grade_sheet, refresh_students, save_grades,
)
from schooldash.services.queries import assessment_history, class_name, filter_assessments, find_by_id

assessment_bp = Blueprint('assessments', __name__)

# Set by register_routes during initialization
store = None


def init_assessment_routes(store_ref):
    """Initialize assessment routes with the shared store."""
    global store
    store = store_ref


@assessment_bp.route('/api/assessments')
def list_assessments():
    state = store.state
    assessments = filter_assessments(
        state["assessments"],
        search=request.args.get('search', ''),
        class_id=request.args.get('class_id', ''),
        assessment_type=request.args.get('type', ''),
    )
    return jsonify({
        "assessments": [
            {
                **a,
                "class_name": class_name(state, a["class_id"]),
                "completion": assessment_completion(state, a["id"]),
            }
            for a in assessments
        ],
        "count": len(assessments),
    })


@assessment_bp.route('/api/assessments', methods=['POST'])
def create_assessment():
    data = request.get_json(silent=True) or {}
    errors = validate_assessment(data)
    if errors:
        return jsonify({"error": errors[0], "errors": errors}), 400

    state = store.state
    teacher = state.get("current_teacher") or {}
    assessment = new_assessment(
        data, teacher.get("id") or config.default_teacher_id,
        classes=state["classes"],
        catalog=state["subjects"],
    )
    store.dispatch(actions.ADD_ASSESSMENT, assessment)
    return jsonify(assessment), 201


@assessment_bp.route('/api/assessments/history')
def get_history():
    history = assessment_history(
        store.state,
        search=request.args.get('search', ''),
        student_id=request.args.get('student_id', ''),
        subject=request.args.get('subject', ''),
        class_id=request.args.get('class_id', ''),
    )
    return jsonify({"history": history, "count": len(history)})


@assessment_bp.route('/api/assessments/<assessment_id>', methods=['PUT'])
def update_assessment(assessment_id):
    assessment = find_by_id(store.state["assessments"], assessment_id)
    if assessment is None:
        return jsonify({"error": "Assessment not found"}), 404

    data = request.get_json(silent=True) or {}
    editable = {"title", "subject", "class_id", "type", "total_marks", "weight", "due_date", "instructions"}
    updated = {**assessment, **{k: v for k, v in data.items() if k in editable}}
    errors = validate_assessment(updated)
    if errors:
        return jsonify({"error": errors[0], "errors": errors}), 400

    # Stored marks and weight are always numbers, as on create
    updated["total_marks"] = safe_number(updated.get("total_marks", 100))
    updated["weight"] = safe_number(updated.get("weight", 10))
    subject = updated.get("subject")
    if not subject:
        owner = find_by_id(store.state["classes"], updated["class_id"])
        subject = owner["subject"] if owner else ""
    updated["subject"] = canonical_subject(subject, store.state["subjects"]) if subject else ""

    store.dispatch(actions.UPDATE_ASSESSMENT, updated)
    return jsonify(updated)


@assessment_bp.route('/api/assessments/<assessment_id>', methods=['DELETE'])
def delete_assessment(assessment_id):
    """Delete an assessment and its grade entries, then refresh affected students."""
    state = store.state
    graded = [g["student_id"] for g in state["grade_entries"] if g["assessment_id"] == assessment_id]
    store.dispatch(actions.DELETE_ASSESSMENT, assessment_id)
    refresh_students(store, graded)
    return jsonify({"status": "deleted"})


@assessment_bp.route('/api/assessments/<assessment_id>/grades')
def get_grade_sheet(assessment_id):
    sheet = grade_sheet(store.state, assessment_id)
    if sheet is None:
        return jsonify({"error": "Assessment not found"}), 404
    return jsonify(sheet)


@assessment_bp.route('/api/assessments/<assessment_id>/grades', methods=['POST'])
def post_grades(assessment_id):
    """
    Save grades for an assessment.
    Body: {"grades": {student_id: {"score": 18, "feedback": "...", "graded": true}}}
    A score of 0 without "graded": true is treated as not yet graded.
    """
    if find_by_id(store.state["assessments"], assessment_id) is None:
        return jsonify({"error": "Assessment not found"}), 404

    data = request.get_json(silent=True) or {}
    grades = data.get('grades')
    if not isinstance(grades, dict):
        return jsonify({"error": "grades must be an object keyed by student id"}), 400

    saved = save_grades(store, assessment_id, grades)
    return jsonify({
        "status": "saved",
        "saved": saved,
        "completion": assessment_completion(store.state, assessment_id),
    })
