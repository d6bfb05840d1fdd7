"""
Class API routes for SchoolDash.
Handles class listing/filtering, creation, details and roster membership.
"""
from flask import Blueprint, request, jsonify

from schooldash import store as actions
from schooldash.config import config
from schooldash.records import new_class, validate_class
from schooldash.services.queries import class_details, class_stats, filter_classes, find_by_id

class_bp = Blueprint('classes', __name__)

# Set by register_routes during initialization
store = None


def init_class_routes(store_ref):
    """Initialize class routes with the shared store."""
    global store
    store = store_ref


def _teacher_id():
    teacher = store.state.get("current_teacher") or {}
    return teacher.get("id") or config.default_teacher_id


@class_bp.route('/api/classes')
def list_classes():
    state = store.state
    classes = filter_classes(
        state["classes"],
        search=request.args.get('search', ''),
        grade=request.args.get('grade', ''),
        subject=request.args.get('subject', ''),
    )
    return jsonify({
        "classes": [{**c, "stats": class_stats(state, c["id"])} for c in classes],
        "count": len(classes),
    })


@class_bp.route('/api/classes', methods=['POST'])
def create_class():
    data = request.get_json(silent=True) or {}
    errors = validate_class(data)
    if errors:
        return jsonify({"error": errors[0], "errors": errors}), 400

    cls = new_class(
        data, _teacher_id(),
        academic_year=config.academic_year,
        catalog=store.state["subjects"],
    )
    store.dispatch(actions.ADD_CLASS, cls)
    return jsonify(cls), 201


@class_bp.route('/api/classes/<class_id>')
def get_class(class_id):
    details = class_details(store.state, class_id)
    if details is None:
        return jsonify({"error": "Class not found"}), 404
    return jsonify(details)


@class_bp.route('/api/classes/<class_id>', methods=['PUT'])
def update_class(class_id):
    """Update class fields; roster changes go through the enrolment routes."""
    cls = find_by_id(store.state["classes"], class_id)
    if cls is None:
        return jsonify({"error": "Class not found"}), 404

    data = request.get_json(silent=True) or {}
    editable = {"name", "grade", "subject", "schedule", "room", "description", "academic_year"}
    updated = {**cls, **{k: v for k, v in data.items() if k in editable}}
    errors = validate_class(updated)
    if errors:
        return jsonify({"error": errors[0], "errors": errors}), 400

    store.dispatch(actions.UPDATE_CLASS, updated)
    return jsonify(updated)


@class_bp.route('/api/classes/<class_id>', methods=['DELETE'])
def delete_class(class_id):
    store.dispatch(actions.DELETE_CLASS, class_id)
    return jsonify({"status": "deleted"})


@class_bp.route('/api/classes/<class_id>/students', methods=['POST'])
def enroll_students(class_id):
    """Add students to a class roster. Body: {"student_ids": [...]}."""
    if find_by_id(store.state["classes"], class_id) is None:
        return jsonify({"error": "Class not found"}), 404

    data = request.get_json(silent=True) or {}
    student_ids = data.get('student_ids') or []
    for student_id in student_ids:
        store.dispatch(actions.ENROLL_STUDENT, {"class_id": class_id, "student_id": student_id})

    cls = find_by_id(store.state["classes"], class_id)
    return jsonify({"status": "enrolled", "student_ids": cls["student_ids"]})


@class_bp.route('/api/classes/<class_id>/students/<student_id>', methods=['DELETE'])
def unenroll_student(class_id, student_id):
    if find_by_id(store.state["classes"], class_id) is None:
        return jsonify({"error": "Class not found"}), 404

    store.dispatch(actions.UNENROLL_STUDENT, {"class_id": class_id, "student_id": student_id})
    cls = find_by_id(store.state["classes"], class_id)
    return jsonify({"status": "removed", "student_ids": cls["student_ids"]})
