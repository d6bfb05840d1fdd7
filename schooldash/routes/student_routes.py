"""
Student API routes for SchoolDash.
Handles the student roster: search, create, update, delete and bulk CSV import.
"""
import logging

from flask import Blueprint, Response, request, jsonify
from werkzeug.utils import secure_filename

from schooldash import store as actions
from schooldash.config import ALLOWED_IMPORT_EXTENSIONS
from schooldash.records import new_student, validate_student
from schooldash.services.bulk_import import import_template, parse_student_csv
from schooldash.services.grading_service import recompute_student
from schooldash.services.queries import filter_students, find_by_id

logger = logging.getLogger(__name__)

student_bp = Blueprint('students', __name__)

# Set by register_routes during initialization
store = None


def init_student_routes(store_ref):
    """Initialize student routes with the shared store."""
    global store
    store = store_ref


def allowed_file(filename, allowed_extensions):
    """Check if file extension is allowed."""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in allowed_extensions


@student_bp.route('/api/students')
def list_students():
    students = filter_students(
        store.state["students"],
        search=request.args.get('search', ''),
        grade=request.args.get('grade', ''),
    )
    return jsonify({"students": students, "count": len(students)})


@student_bp.route('/api/students', methods=['POST'])
def create_student():
    data = request.get_json(silent=True) or {}
    errors = validate_student(data)
    if errors:
        return jsonify({"error": errors[0], "errors": errors}), 400

    student = new_student(data, catalog=store.state["subjects"])
    store.dispatch(actions.ADD_STUDENT, student)
    return jsonify(student), 201


@student_bp.route('/api/students/<student_id>')
def get_student(student_id):
    student = find_by_id(store.state["students"], student_id)
    if student is None:
        return jsonify({"error": "Student not found"}), 404
    return jsonify(student)


@student_bp.route('/api/students/<student_id>', methods=['PUT'])
def update_student(student_id):
    """Merge the submitted fields into the stored student.

    Class membership goes through the enrolment routes and grades are
    recomputed, so those keys are not editable here.
    """
    student = find_by_id(store.state["students"], student_id)
    if student is None:
        return jsonify({"error": "Student not found"}), 404

    data = request.get_json(silent=True) or {}
    locked = {"id", "class_ids", "overall_grade", "performance_data"}
    updated = {**student, **{k: v for k, v in data.items() if k in student and k not in locked}}
    errors = validate_student(updated)
    if errors:
        return jsonify({"error": errors[0], "errors": errors}), 400

    state = store.state
    updated = recompute_student(updated, state["grade_entries"], state["assessments"])
    store.dispatch(actions.UPDATE_STUDENT, updated)
    return jsonify(updated)


@student_bp.route('/api/students/<student_id>', methods=['DELETE'])
def delete_student(student_id):
    store.dispatch(actions.DELETE_STUDENT, student_id)
    return jsonify({"status": "deleted"})


@student_bp.route('/api/students/import', methods=['POST'])
def import_students():
    """
    Bulk import students from a CSV upload (multipart 'file') or a JSON
    body {"csv": "..."}. Pass dry_run=true to preview without importing.
    """
    if 'file' in request.files:
        file = request.files['file']
        if file.filename == '':
            return jsonify({"error": "No file selected"}), 400
        if not allowed_file(secure_filename(file.filename), ALLOWED_IMPORT_EXTENSIONS):
            return jsonify({"error": "Invalid file type. Use CSV"}), 400
        try:
            text = file.read().decode('utf-8')
        except UnicodeDecodeError:
            return jsonify({"error": "Error processing file. Please check the format and try again."}), 400
        dry_run = request.form.get('dry_run', 'false').lower() == 'true'
    else:
        data = request.get_json(silent=True) or {}
        text = data.get('csv')
        if not text:
            return jsonify({"error": "No file provided"}), 400
        dry_run = bool(data.get('dry_run'))

    parsed = parse_student_csv(text, catalog=store.state["subjects"])
    students = parsed["students"]
    if students and not dry_run:
        store.dispatch(actions.BULK_ADD_STUDENTS, students)
        logger.info("Imported %d students", len(students))

    return jsonify({
        "status": "preview" if dry_run else "imported",
        "imported": 0 if dry_run else len(students),
        "students": students,
        "errors": parsed["errors"],
    })


@student_bp.route('/api/students/import-template')
def download_import_template():
    return Response(
        import_template(),
        mimetype='text/csv',
        headers={"Content-Disposition": "attachment; filename=student_import_template.csv"},
    )
