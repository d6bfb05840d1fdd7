"""
Dashboard Queries
=================
Read-only views over the store state used by the dashboard screens:
name lookups, search/filter for each management screen, class details,
assessment history, results, reports and the dashboard summary.
Zero side effects; unknown ids resolve to "Unknown ..." placeholders.
"""
import math
from collections import defaultdict
from datetime import datetime

from schooldash.records import letter_grade, parse_timestamp, round_half_up
from schooldash.services.analytics_engine import average_score, grade_distribution, sort_chronologically
from schooldash.services.grading_service import assessment_completion


# ═══════════════════════════════════════════════════════
# LOOKUPS
# ═══════════════════════════════════════════════════════

def find_by_id(items, item_id):
    return next((item for item in items if item["id"] == item_id), None)


def student_name(state, student_id):
    student = find_by_id(state["students"], student_id)
    return student["name"] if student else "Unknown Student"


def class_name(state, class_id):
    cls = find_by_id(state["classes"], class_id)
    return cls["name"] if cls else "Unknown Class"


def assessment_title(state, assessment_id):
    assessment = find_by_id(state["assessments"], assessment_id)
    return assessment["title"] if assessment else "Unknown Assessment"


def _matches(search, *fields):
    term = (search or "").strip().lower()
    return not term or any(term in (f or "").lower() for f in fields)


# ═══════════════════════════════════════════════════════
# MANAGEMENT SCREENS
# ═══════════════════════════════════════════════════════

def filter_students(students, search="", grade=""):
    return [
        s for s in students
        if _matches(search, s["name"]) and (not grade or s["grade"] == grade)
    ]


def filter_classes(classes, search="", grade="", subject=""):
    return [
        c for c in classes
        if _matches(search, c["name"], c["subject"])
        and (not grade or c["grade"] == grade)
        and (not subject or c["subject"] == subject)
    ]


def filter_assessments(assessments, search="", class_id="", assessment_type=""):
    return [
        a for a in assessments
        if _matches(search, a["title"], a["subject"])
        and (not class_id or a["class_id"] == class_id)
        and (not assessment_type or a["type"] == assessment_type)
    ]


def format_schedule(schedule, with_duration=False):
    if with_duration:
        return ", ".join(f"{s['day']} {s['time']} ({s['duration']}min)" for s in schedule)
    return ", ".join(f"{s['day']} {s['time']}" for s in schedule)


def class_stats(state, class_id):
    """Roster size, assessment count and mean overall grade of a class."""
    cls = find_by_id(state["classes"], class_id)
    roster = set(cls["student_ids"]) if cls else set()
    members = [s for s in state["students"] if s["id"] in roster]
    return {
        "student_count": len(members),
        "assessment_count": sum(1 for a in state["assessments"] if a["class_id"] == class_id),
        "average_grade": round_half_up(sum(s["overall_grade"] for s in members) / len(members)) if members else 0,
    }


def class_details(state, class_id, now=None):
    """Everything the class details screen shows; None for an unknown class."""
    now = now or datetime.now()
    cls = find_by_id(state["classes"], class_id)
    if cls is None:
        return None

    class_assessments = [a for a in state["assessments"] if a["class_id"] == class_id]
    assessment_ids = {a["id"] for a in class_assessments}
    completed = sum(
        1 for a in class_assessments
        if parse_timestamp(a["due_date"]) and parse_timestamp(a["due_date"]) < now
    )

    roster = []
    for student in state["students"]:
        if student["id"] not in cls["student_ids"]:
            continue
        entries = [
            g for g in state["grade_entries"]
            if g["student_id"] == student["id"] and g["assessment_id"] in assessment_ids
        ]
        avg = round_half_up(average_score(entries)) if entries else 0
        roster.append({
            "student_id": student["id"],
            "name": student["name"],
            "total_grades": len(entries),
            "average_score": avg,
            "trend": "up" if avg >= 80 else "stable" if avg >= 60 else "down",
        })

    return {
        "class": cls,
        "stats": {**class_stats(state, class_id), "completed_assessments": completed},
        "schedule": format_schedule(cls["schedule"], with_duration=True),
        "students": roster,
        "assessments": [
            {**a, "completion": assessment_completion(state, a["id"])} for a in class_assessments
        ],
    }


# ═══════════════════════════════════════════════════════
# HISTORY / RESULTS / REPORTS
# ═══════════════════════════════════════════════════════

def _history_trend(records):
    mid = math.ceil(len(records) / 2)
    first, second = records[:mid], records[mid:]
    if not first or not second:
        return "stable"
    first_avg = sum(r["percentage"] for r in first) / len(first)
    second_avg = sum(r["percentage"] for r in second) / len(second)
    if second_avg > first_avg + 5:
        return "up"
    if second_avg < first_avg - 5:
        return "down"
    return "stable"


def _weighted_average(records):
    total_weight = sum(r["weight"] for r in records)
    if total_weight <= 0:
        return None
    return round(sum(r["percentage"] * r["weight"] for r in records) / total_weight, 1)


def assessment_history(state, search="", student_id="", subject="", class_id=""):
    """Per-student, per-subject graded history with averages and trends."""
    assessments = {a["id"]: a for a in state["assessments"]}
    by_student = defaultdict(list)
    for g in state["grade_entries"]:
        by_student[g["student_id"]].append(g)

    selected_class = find_by_id(state["classes"], class_id) if class_id else None
    history = []
    for student in state["students"]:
        subjects = defaultdict(list)
        for g in sort_chronologically(by_student.get(student["id"], [])):
            assessment = assessments.get(g["assessment_id"])
            if assessment is None:
                continue
            subjects[assessment["subject"]].append({
                "assessment_id": assessment["id"],
                "title": assessment["title"],
                "type": assessment["type"],
                "score": g["score"],
                "max_score": g["max_score"],
                "percentage": g["percentage"],
                "date": g["graded_at"],
                "feedback": g.get("feedback", ""),
                "weight": assessment["weight"],
            })

        subject_history = [
            {
                "subject": name,
                "assessments": records,
                "average_score": round_half_up(sum(r["percentage"] for r in records) / len(records)),
                "weighted_average": _weighted_average(records),
                "trend": _history_trend(records),
                "total_assessments": len(records),
            }
            for name, records in subjects.items()
        ]

        if not _matches(search, student["name"]):
            continue
        if student_id and student["id"] != student_id:
            continue
        if subject and not any(s["subject"] == subject for s in subject_history):
            continue
        if class_id and (selected_class is None or student["id"] not in selected_class["student_ids"]):
            continue

        history.append({
            "student_id": student["id"],
            "student_name": student["name"],
            "grade": student["grade"],
            "subject_history": subject_history,
        })
    return history


def result_status(percentage):
    if percentage >= 90:
        return "excellent"
    if percentage >= 80:
        return "good"
    if percentage >= 70:
        return "satisfactory"
    return "needs-improvement"


def results(state, search="", subject=""):
    """Graded entries joined to student and assessment names, newest first."""
    rows = []
    for g in reversed(sort_chronologically(state["grade_entries"])):
        assessment = find_by_id(state["assessments"], g["assessment_id"])
        row_subject = assessment["subject"] if assessment else ""
        row = {
            "id": g["id"],
            "student": student_name(state, g["student_id"]),
            "assessment": assessment_title(state, g["assessment_id"]),
            "subject": row_subject,
            "score": g["score"],
            "total_marks": g["max_score"],
            "percentage": g["percentage"],
            "letter_grade": letter_grade(g["percentage"]),
            "submitted_at": g["graded_at"],
            "is_late": g.get("is_late", False),
            "status": result_status(g["percentage"]),
        }
        if not _matches(search, row["student"], row["assessment"]):
            continue
        if subject and row_subject != subject:
            continue
        rows.append(row)
    return rows


def subject_report(state, subject=""):
    """Per-subject averages, enrolment and letter distribution."""
    subject_of = {a["id"]: a["subject"] for a in state["assessments"]}
    scores = defaultdict(list)
    for g in state["grade_entries"]:
        name = subject_of.get(g["assessment_id"])
        if name:
            scores[name].append(g["percentage"])

    names = [s["name"] for s in state["subjects"]]
    names += [n for n in scores if n not in names]
    report = []
    for name in names:
        if subject and name != subject:
            continue
        values = scores.get(name, [])
        report.append({
            "subject": name,
            "average": round_half_up(sum(values) / len(values)) if values else 0,
            "students": sum(1 for s in state["students"] if name in s["subjects"]),
            "graded_count": len(values),
            "grade_distribution": grade_distribution(values),
        })

    student_rows = []
    for student in state["students"]:
        row = {"student": student["name"], "overall": student["overall_grade"]}
        for perf in student.get("performance_data", []):
            row[perf["subject"]] = perf["grade"]
        student_rows.append(row)

    return {"subjects": report, "students": student_rows}


def dashboard_summary(state, recent_limit=5):
    entries = state["grade_entries"]
    recent = list(reversed(sort_chronologically(entries)))[:recent_limit]
    return {
        "total_students": len(state["students"]),
        "total_classes": len(state["classes"]),
        "total_assessments": len(state["assessments"]),
        "grades_recorded": len(entries),
        "average_grade": round_half_up(average_score(entries)) if entries else 0,
        "recent_activity": [
            {
                "student": student_name(state, g["student_id"]),
                "assessment": assessment_title(state, g["assessment_id"]),
                "percentage": g["percentage"],
                "graded_at": g["graded_at"],
            }
            for g in recent
        ],
    }
