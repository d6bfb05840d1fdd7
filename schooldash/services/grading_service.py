"""
Grading Workflow
================
Grade sheets for an assessment's roster, saving (upserting) grade entries,
and recomputing each touched student's overall grade and per-subject
performance snapshot.
"""
import logging
import math
from collections import defaultdict
from datetime import datetime

from schooldash import store as actions
from schooldash.config import config
from schooldash.records import grade_percentage, new_grade_entry, round_half_up, safe_number
from schooldash.services.analytics_engine import average_score, sort_chronologically

logger = logging.getLogger(__name__)


def _find(items, item_id):
    return next((item for item in items if item["id"] == item_id), None)


def roster_for(state, assessment):
    """Students on the roster of the assessment's class, in store order."""
    owner = _find(state["classes"], assessment.get("class_id"))
    if owner is None:
        return []
    roster = set(owner.get("student_ids", []))
    return [s for s in state["students"] if s["id"] in roster]


# ══════════════════════════════════════════════════════════════
# PERFORMANCE RECOMPUTATION
# ══════════════════════════════════════════════════════════════

def _subject_trend(entries):
    """'up', 'down' or 'stable' comparing halves split at ceil(n/2), with a 5 point band."""
    ordered = sort_chronologically(entries)
    mid = math.ceil(len(ordered) / 2)
    first, second = ordered[:mid], ordered[mid:]
    if not first or not second:
        return "stable"
    first_avg, second_avg = average_score(first), average_score(second)
    if second_avg > first_avg + 5:
        return "up"
    if second_avg < first_avg - 5:
        return "down"
    return "stable"


def recompute_student(student: dict, grade_entries: list, assessments: list) -> dict:
    """Return a copy of the student with overall_grade and performance_data refreshed."""
    subject_of = {a["id"]: a["subject"] for a in assessments}
    own = [g for g in grade_entries if g["student_id"] == student["id"]]

    by_subject = defaultdict(list)
    for g in own:
        subject = subject_of.get(g["assessment_id"])
        if subject:
            by_subject[subject].append(g)

    performance = []
    for subject in student.get("subjects", []):
        entries = by_subject.get(subject, [])
        performance.append({
            "subject": subject,
            "grade": round_half_up(average_score(entries)) if entries else 0,
            "trend": _subject_trend(entries) if entries else "stable",
        })

    return {
        **student,
        "overall_grade": round_half_up(average_score(own)) if own else 0,
        "performance_data": performance,
    }


# ══════════════════════════════════════════════════════════════
# GRADE SHEET / SAVE
# ══════════════════════════════════════════════════════════════

def grade_sheet(state, assessment_id):
    """Rows for the grade-entry screen, pre-filled from existing entries.

    Returns None when the assessment does not exist.
    """
    assessment = _find(state["assessments"], assessment_id)
    if assessment is None:
        return None

    existing = {g["student_id"]: g for g in state["grade_entries"] if g["assessment_id"] == assessment_id}
    rows = []
    for student in roster_for(state, assessment):
        entry = existing.get(student["id"])
        score = entry["score"] if entry else 0
        rows.append({
            "student_id": student["id"],
            "student_name": student["name"],
            "score": score,
            "feedback": entry.get("feedback", "") if entry else "",
            "percentage": grade_percentage(score, assessment["total_marks"]),
            "graded": entry is not None,
        })
    return {
        "assessment": assessment,
        "rows": rows,
        "saved_count": len(existing),
    }


def _is_graded(row, score):
    """A row counts as graded when flagged explicitly, otherwise when its score is above 0."""
    if "graded" in row:
        return bool(row["graded"])
    return score > 0


def save_grades(store, assessment_id, grades: dict, now=None, graded_by=None) -> int:
    """
    Upsert one grade entry per graded student of an assessment.

    Args:
        store: the application Store
        assessment_id: assessment being graded
        grades: {student_id: {"score": .., "feedback": .., "graded": optional bool}}
        now: grading time (used for graded_at and lateness)
        graded_by: teacher id; defaults to the current teacher

    Returns:
        Number of entries saved. Rows left at 0 without an explicit
        ``graded`` flag are treated as not yet graded and skipped.
    """
    now = now or datetime.now()
    state = store.state
    assessment = _find(state["assessments"], assessment_id)
    if assessment is None:
        return 0

    if graded_by is None:
        teacher = state.get("current_teacher") or {}
        graded_by = teacher.get("id") or config.default_teacher_id

    existing = {g["student_id"]: g for g in state["grade_entries"] if g["assessment_id"] == assessment_id}
    touched = []
    for student_id, row in (grades or {}).items():
        row = row or {}
        score = max(0, min(safe_number(row.get("score")), assessment["total_marks"]))
        if not _is_graded(row, score):
            continue

        previous = existing.get(student_id)
        entry = new_grade_entry(
            assessment, student_id, score,
            feedback=row.get("feedback", ""),
            graded_by=graded_by,
            now=now,
            entry_id=previous["id"] if previous else None,
            late_penalty=config.late_penalty,
        )
        if previous:
            store.dispatch(actions.UPDATE_GRADE_ENTRY, entry)
        else:
            store.dispatch(actions.ADD_GRADE_ENTRY, entry)
        touched.append(student_id)

    refresh_students(store, touched)
    logger.info("Saved %d grades for assessment %s", len(touched), assessment_id)
    return len(touched)


def refresh_students(store, student_ids):
    """Recompute and store the performance snapshot of each listed student."""
    for student_id in student_ids:
        state = store.state
        student = _find(state["students"], student_id)
        if student is None:
            continue
        store.dispatch(
            actions.UPDATE_STUDENT,
            recompute_student(student, state["grade_entries"], state["assessments"]),
        )


def assessment_completion(state, assessment_id):
    """Grading progress of one assessment over its class roster."""
    assessment = _find(state["assessments"], assessment_id)
    if assessment is None:
        return None
    roster = {s["id"] for s in roster_for(state, assessment)}
    entries = [g for g in state["grade_entries"] if g["assessment_id"] == assessment_id]
    graded = [g for g in entries if g["student_id"] in roster]
    return {
        "assessment_id": assessment_id,
        "roster_size": len(roster),
        "graded_count": len(graded),
        "completion": round_half_up(len(graded) / len(roster) * 100) if roster else 0,
        "average_percentage": round_half_up(average_score(entries)) if entries else 0,
    }
