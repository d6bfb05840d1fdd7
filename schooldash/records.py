"""
Domain Records
==============
Builders and form validation for the plain-dict records held in the store:
students, classes, assessments and grade entries.

Validators never raise; they return a list of human-readable error strings
(empty when the payload is acceptable). Builders assume a validated payload
and fill in ids, timestamps and defaults.
"""
import logging
import math
import re
import uuid
from datetime import datetime

from schooldash.lookups import (
    ASSESSMENT_TYPES, DEFAULT_STUDENT_SUBJECTS, DEFAULT_SUBJECTS, LETTER_BANDS, SCHEDULE_DAYS,
)

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════
# SMALL HELPERS
# ══════════════════════════════════════════════════════════════

def new_id(prefix=""):
    """Short random id, optionally prefixed ('cls-1a2b3c4d')."""
    short = str(uuid.uuid4())[:8]
    return f"{prefix}-{short}" if prefix else short


def parse_timestamp(value):
    """Parse an ISO date or datetime string into a naive local datetime.

    Returns None for empty or unparseable values.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value).strip().replace('Z', '+00:00'))
        except ValueError:
            return None
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def round_half_up(value):
    """Round to the nearest integer, halves away from zero for positives (85.5 -> 86)."""
    return int(math.floor(value + 0.5))


def safe_number(val):
    """Safely convert a score value to float (handles str, int, None)."""
    try:
        return float(val) if val not in (None, "") else 0.0
    except (ValueError, TypeError):
        return 0.0


def split_list(value):
    """Split a ';' or ',' separated cell into trimmed, non-empty items."""
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    return [part.strip() for part in re.split(r'[;,]', str(value)) if part.strip()]


def grade_percentage(score, max_score):
    """Percentage of max_score, rounded to a whole number."""
    if not max_score or max_score <= 0:
        return 0
    return round_half_up(score / max_score * 100)


def clamp_score(score, total_marks):
    return max(0, min(safe_number(score), total_marks))


def letter_grade(percentage):
    for letter, floor in LETTER_BANDS:
        if percentage >= floor:
            return letter
    return "F"


def canonical_subject(name, catalog=None):
    """Map a free-text subject onto the catalog spelling.

    Matching ignores case and surrounding whitespace. Names not in the
    catalog are returned trimmed but otherwise unchanged.
    """
    if not name:
        return ""
    cleaned = " ".join(str(name).split())
    for subject in catalog or DEFAULT_SUBJECTS:
        if subject["name"].lower() == cleaned.lower():
            return subject["name"]
    logger.warning("Subject '%s' is not in the subject catalog", cleaned)
    return cleaned


# ══════════════════════════════════════════════════════════════
# STUDENTS
# ══════════════════════════════════════════════════════════════

def validate_student(data: dict) -> list:
    errors = []
    if not str(data.get("name") or "").strip():
        errors.append("Student name is required")
    if not str(data.get("grade") or "").strip():
        errors.append("Grade is required")
    try:
        age = int(data.get("age"))
        if age <= 0:
            errors.append("Age must be a positive number")
    except (TypeError, ValueError):
        errors.append("Age must be a positive number")
    return errors


def _contact(data, default_relationship):
    data = data or {}
    return {
        "name": data.get("name", ""),
        "email": data.get("email", ""),
        "phone": data.get("phone", ""),
        "relationship": data.get("relationship") or default_relationship,
    }


def new_student(data: dict, now=None, catalog=None) -> dict:
    """Build a complete student record from a validated form payload.

    ``class_ids`` always starts empty; membership only changes through enrolment.
    """
    now = now or datetime.now()
    subjects = [canonical_subject(s, catalog) for s in split_list(data.get("subjects"))]
    if "subjects" not in data:
        subjects = list(DEFAULT_STUDENT_SUBJECTS)

    contacts = data.get("parent_contacts") or {}
    primary = _contact(contacts.get("primary"), "Parent")
    secondary = _contact(contacts["secondary"], "Parent") if contacts.get("secondary") else None

    emergency = data.get("emergency_contact") or {}
    medical = data.get("medical_info") or {}

    return {
        "id": data.get("id") or new_id(),
        "name": str(data["name"]).strip(),
        "grade": str(data["grade"]).strip(),
        "age": int(data["age"]),
        "subjects": subjects,
        "overall_grade": 0,
        "performance_data": [
            {"subject": subject, "grade": 0, "trend": "stable"} for subject in subjects
        ],
        "parent_contacts": {"primary": primary, "secondary": secondary},
        "emergency_contact": {
            "name": emergency.get("name") or primary["name"],
            "phone": emergency.get("phone") or primary["phone"],
            "relationship": emergency.get("relationship") or "Emergency Contact",
        },
        "address": data.get("address") or None,
        "medical_info": {
            "allergies": split_list(medical.get("allergies")),
            "medications": split_list(medical.get("medications")),
            "conditions": split_list(medical.get("conditions")),
        },
        "enrollment_date": data.get("enrollment_date") or now.date().isoformat(),
        "class_ids": [],
    }


# ══════════════════════════════════════════════════════════════
# CLASSES
# ══════════════════════════════════════════════════════════════

def validate_class(data: dict) -> list:
    errors = []
    if not str(data.get("name") or "").strip():
        errors.append("Class name is required")
    if not str(data.get("subject") or "").strip():
        errors.append("Subject is required")
    if not str(data.get("room") or "").strip():
        errors.append("Room is required")
    if not data.get("schedule"):
        errors.append("At least one schedule entry is required")
    schedule = data.get("schedule") or []
    if not isinstance(schedule, list):
        errors.append("Schedule must be a list of entries")
        return errors
    for slot in schedule:
        if not isinstance(slot, dict):
            errors.append(f"Invalid schedule entry: {slot}")
        elif slot.get("day", "Monday") not in SCHEDULE_DAYS:
            errors.append(f"Invalid schedule day: {slot.get('day')}")
    return errors


def new_class(data: dict, teacher_id, now=None, academic_year="2024-2025", catalog=None) -> dict:
    """Build a class with an empty roster; students join through enrolment."""
    now = now or datetime.now()
    schedule = []
    for slot in data.get("schedule") or []:
        if not isinstance(slot, dict):
            continue
        schedule.append({
            "day": slot.get("day", "Monday"),
            "time": slot.get("time", "09:00"),
            "duration": int(safe_number(slot.get("duration")) or 60),
        })
    return {
        "id": data.get("id") or new_id("cls"),
        "name": str(data["name"]).strip(),
        "grade": data.get("grade") or "Grade 4",
        "subject": canonical_subject(data["subject"], catalog),
        "teacher_id": teacher_id,
        "student_ids": [],
        "schedule": schedule,
        "room": str(data["room"]).strip(),
        "description": data.get("description", ""),
        "created_at": now.isoformat(),
        "academic_year": data.get("academic_year") or academic_year,
    }


# ══════════════════════════════════════════════════════════════
# ASSESSMENTS
# ══════════════════════════════════════════════════════════════

def validate_assessment(data: dict) -> list:
    errors = []
    if not data.get("class_id"):
        errors.append("Class is required")
    if not str(data.get("title") or "").strip():
        errors.append("Title is required")
    if not data.get("due_date"):
        errors.append("Due date is required")
    elif parse_timestamp(data.get("due_date")) is None:
        errors.append("Due date is not a valid date")
    if data.get("type", "quiz") not in ASSESSMENT_TYPES:
        errors.append(f"Type must be one of: {', '.join(ASSESSMENT_TYPES)}")
    if safe_number(data.get("total_marks", 100)) <= 0:
        errors.append("Total marks must be greater than zero")
    weight = safe_number(data.get("weight", 10))
    if weight < 0 or weight > 100:
        errors.append("Weight must be between 0 and 100")
    return errors


def new_assessment(data: dict, created_by, now=None, classes=None, catalog=None) -> dict:
    """Build an assessment; a missing subject is inherited from its class."""
    now = now or datetime.now()
    subject = data.get("subject")
    if not subject:
        owner = next((c for c in classes or [] if c["id"] == data["class_id"]), None)
        subject = owner["subject"] if owner else ""
    return {
        "id": data.get("id") or new_id("asm"),
        "title": str(data["title"]).strip(),
        "subject": canonical_subject(subject, catalog) if subject else "",
        "class_id": data["class_id"],
        "type": data.get("type", "quiz"),
        "total_marks": safe_number(data.get("total_marks", 100)),
        "weight": safe_number(data.get("weight", 10)),
        "due_date": data["due_date"],
        "instructions": data.get("instructions", ""),
        "created_at": now.isoformat(),
        "created_by": created_by,
    }


# ══════════════════════════════════════════════════════════════
# GRADE ENTRIES
# ══════════════════════════════════════════════════════════════

def new_grade_entry(assessment: dict, student_id, score, feedback="", graded_by="1",
                    now=None, entry_id=None, late_penalty=5) -> dict:
    """Build a grade entry; the score is clamped to the assessment's total marks."""
    now = now or datetime.now()
    total = assessment["total_marks"]
    score = clamp_score(score, total)
    due = parse_timestamp(assessment.get("due_date"))
    is_late = bool(due and now > due)
    return {
        "id": entry_id or f"{int(now.timestamp() * 1000)}-{assessment['id']}-{student_id}",
        "assessment_id": assessment["id"],
        "student_id": student_id,
        "score": score,
        "max_score": total,
        "percentage": grade_percentage(score, total),
        "feedback": feedback or "",
        "graded_by": graded_by,
        "graded_at": now.isoformat(),
        "is_late": is_late,
        "late_penalty": late_penalty if is_late else 0,
    }
