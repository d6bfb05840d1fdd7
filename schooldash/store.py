"""
Application State Store
=======================
Single in-memory source of truth for every domain collection plus the
transient UI state (current view, theme).

State only changes through ``reduce(state, action)``: a pure transition that
returns a new state dict with the targeted collection replaced. Actions are
``{"type": ..., "payload": ...}`` dicts drawn from the closed set of
``ACTION_*`` constants below. Actions never fail: an id that matches nothing
leaves the collection as it was, and an unknown action type leaves the whole
state as it was.

``Store`` wraps the reducer with a lock so dispatches are applied one at a
time, and runs subscribed effects after each dispatch.
"""
import copy
import logging
import threading

from schooldash.lookups import DEFAULT_SUBJECTS

logger = logging.getLogger(__name__)

# ══════════════════════════════════════════════════════════════
# ACTION TYPES
# ══════════════════════════════════════════════════════════════

SET_TEACHER = "SET_TEACHER"
ADD_STUDENT = "ADD_STUDENT"
UPDATE_STUDENT = "UPDATE_STUDENT"
DELETE_STUDENT = "DELETE_STUDENT"
BULK_ADD_STUDENTS = "BULK_ADD_STUDENTS"
ADD_CLASS = "ADD_CLASS"
UPDATE_CLASS = "UPDATE_CLASS"
DELETE_CLASS = "DELETE_CLASS"
ENROLL_STUDENT = "ENROLL_STUDENT"
UNENROLL_STUDENT = "UNENROLL_STUDENT"
ADD_ASSESSMENT = "ADD_ASSESSMENT"
UPDATE_ASSESSMENT = "UPDATE_ASSESSMENT"
DELETE_ASSESSMENT = "DELETE_ASSESSMENT"
ADD_GRADE_ENTRY = "ADD_GRADE_ENTRY"
UPDATE_GRADE_ENTRY = "UPDATE_GRADE_ENTRY"
DELETE_GRADE_ENTRY = "DELETE_GRADE_ENTRY"
SET_VIEW = "SET_VIEW"
TOGGLE_DARK_MODE = "TOGGLE_DARK_MODE"
UPDATE_AI_ANALYTICS = "UPDATE_AI_ANALYTICS"
LOAD_INITIAL_DATA = "LOAD_INITIAL_DATA"

# Actions that change the data the analytics engine reads
DATA_ACTIONS = frozenset({
    ADD_STUDENT, UPDATE_STUDENT, DELETE_STUDENT, BULK_ADD_STUDENTS,
    ENROLL_STUDENT, UNENROLL_STUDENT,
    ADD_ASSESSMENT, UPDATE_ASSESSMENT, DELETE_ASSESSMENT,
    ADD_GRADE_ENTRY, UPDATE_GRADE_ENTRY, DELETE_GRADE_ENTRY,
})


def empty_analytics():
    return {
        "insights": [],
        "trends": [],
        "learning_gaps": [],
        "recommendations": [],
        "alerts": [],
        "subject_breakdowns": [],
        "last_updated": None,
    }


def initial_state():
    return {
        "current_teacher": None,
        "students": [],
        "classes": [],
        "subjects": copy.deepcopy(DEFAULT_SUBJECTS),
        "assessments": [],
        "grade_entries": [],
        "analytics": empty_analytics(),
        "current_view": "dashboard",
        "dark_mode": False,
    }


# ══════════════════════════════════════════════════════════════
# COLLECTION HELPERS
# ══════════════════════════════════════════════════════════════

def _is_record(payload):
    return isinstance(payload, dict) and "id" in payload


def _append(items, record):
    if not _is_record(record):
        logger.warning("Ignoring malformed record: %r", record)
        return items
    return items + [record]


def _replace(items, record):
    if not _is_record(record):
        logger.warning("Ignoring malformed record: %r", record)
        return items
    return [record if item["id"] == record["id"] else item for item in items]


def _remove(items, record_id):
    return [item for item in items if item["id"] != record_id]


def _with_member(ids, member_id):
    return ids if member_id in ids else ids + [member_id]


def _without_member(ids, member_id):
    return [i for i in ids if i != member_id]


# ══════════════════════════════════════════════════════════════
# HANDLERS
# ══════════════════════════════════════════════════════════════

def _set_teacher(state, payload):
    return {**state, "current_teacher": payload}


def _add_student(state, payload):
    return {**state, "students": _append(state["students"], payload)}


def _update_student(state, payload):
    return {**state, "students": _replace(state["students"], payload)}


def _delete_student(state, student_id):
    classes = [
        {**c, "student_ids": _without_member(c["student_ids"], student_id)}
        if student_id in c["student_ids"] else c
        for c in state["classes"]
    ]
    return {**state, "students": _remove(state["students"], student_id), "classes": classes}


def _bulk_add_students(state, payload):
    if not isinstance(payload, list):
        return state
    return {**state, "students": state["students"] + [s for s in payload if _is_record(s)]}


def _add_class(state, payload):
    return {**state, "classes": _append(state["classes"], payload)}


def _update_class(state, payload):
    return {**state, "classes": _replace(state["classes"], payload)}


def _delete_class(state, class_id):
    students = [
        {**s, "class_ids": _without_member(s["class_ids"], class_id)}
        if class_id in s["class_ids"] else s
        for s in state["students"]
    ]
    return {**state, "classes": _remove(state["classes"], class_id), "students": students}


def _set_membership(state, payload, member):
    """Apply an enrol/unenrol to both the class roster and the student's class list."""
    if not isinstance(payload, dict):
        return state
    class_id = payload.get("class_id")
    student_id = payload.get("student_id")
    known_class = any(c["id"] == class_id for c in state["classes"])
    known_student = any(s["id"] == student_id for s in state["students"])
    if not (known_class and known_student):
        return state
    update = _with_member if member else _without_member
    classes = [
        {**c, "student_ids": update(c["student_ids"], student_id)} if c["id"] == class_id else c
        for c in state["classes"]
    ]
    students = [
        {**s, "class_ids": update(s["class_ids"], class_id)} if s["id"] == student_id else s
        for s in state["students"]
    ]
    return {**state, "classes": classes, "students": students}


def _enroll_student(state, payload):
    return _set_membership(state, payload, member=True)


def _unenroll_student(state, payload):
    return _set_membership(state, payload, member=False)


def _add_assessment(state, payload):
    return {**state, "assessments": _append(state["assessments"], payload)}


def _update_assessment(state, payload):
    return {**state, "assessments": _replace(state["assessments"], payload)}


def _delete_assessment(state, assessment_id):
    return {
        **state,
        "assessments": _remove(state["assessments"], assessment_id),
        "grade_entries": [g for g in state["grade_entries"] if g["assessment_id"] != assessment_id],
    }


def _add_grade_entry(state, payload):
    return {**state, "grade_entries": _append(state["grade_entries"], payload)}


def _update_grade_entry(state, payload):
    return {**state, "grade_entries": _replace(state["grade_entries"], payload)}


def _delete_grade_entry(state, entry_id):
    return {**state, "grade_entries": _remove(state["grade_entries"], entry_id)}


def _set_view(state, payload):
    return {**state, "current_view": payload}


def _toggle_dark_mode(state, payload):
    return {**state, "dark_mode": not state["dark_mode"]}


def _update_analytics(state, payload):
    if not isinstance(payload, dict):
        return state
    return {**state, "analytics": payload}


def _load_initial_data(state, payload):
    """Seed the store from a demo dataset (see ``schooldash.demo_data``)."""
    if not isinstance(payload, dict):
        return state
    return {
        **state,
        "current_teacher": payload.get("teacher", state["current_teacher"]),
        "students": list(payload.get("students", [])),
        "classes": list(payload.get("classes", [])),
        "assessments": list(payload.get("assessments", [])),
        "grade_entries": list(payload.get("grade_entries", [])),
        "analytics": payload.get("analytics") or empty_analytics(),
    }


HANDLERS = {
    SET_TEACHER: _set_teacher,
    ADD_STUDENT: _add_student,
    UPDATE_STUDENT: _update_student,
    DELETE_STUDENT: _delete_student,
    BULK_ADD_STUDENTS: _bulk_add_students,
    ADD_CLASS: _add_class,
    UPDATE_CLASS: _update_class,
    DELETE_CLASS: _delete_class,
    ENROLL_STUDENT: _enroll_student,
    UNENROLL_STUDENT: _unenroll_student,
    ADD_ASSESSMENT: _add_assessment,
    UPDATE_ASSESSMENT: _update_assessment,
    DELETE_ASSESSMENT: _delete_assessment,
    ADD_GRADE_ENTRY: _add_grade_entry,
    UPDATE_GRADE_ENTRY: _update_grade_entry,
    DELETE_GRADE_ENTRY: _delete_grade_entry,
    SET_VIEW: _set_view,
    TOGGLE_DARK_MODE: _toggle_dark_mode,
    UPDATE_AI_ANALYTICS: _update_analytics,
    LOAD_INITIAL_DATA: _load_initial_data,
}

ACTION_TYPES = frozenset(HANDLERS)


def action(action_type, payload=None):
    """Build an action dict; unknown types are left for ``reduce`` to ignore."""
    return {"type": action_type, "payload": payload}


def reduce(state: dict, action: dict) -> dict:
    """Apply one action to a state and return the resulting state."""
    handler = HANDLERS.get(action.get("type"))
    if handler is None:
        logger.warning("Ignoring unknown action type: %s", action.get("type"))
        return state
    return handler(state, copy.deepcopy(action.get("payload")))


# ══════════════════════════════════════════════════════════════
# STORE
# ══════════════════════════════════════════════════════════════

class Store:
    """Serialises dispatches over ``reduce`` and notifies subscribers."""

    def __init__(self, state=None):
        self._state = state if state is not None else initial_state()
        self._lock = threading.Lock()
        self._listeners = []

    @property
    def state(self):
        return self._state

    def dispatch(self, action_type, payload=None):
        dispatched = action(action_type, payload)
        with self._lock:
            self._state = reduce(self._state, dispatched)
            state = self._state
        logger.debug("Dispatched %s", action_type)
        for listener in list(self._listeners):
            listener(dispatched, state)
        return state

    def subscribe(self, listener):
        """Register ``listener(action, state)``; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
