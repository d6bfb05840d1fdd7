"""
Demo Dataset
============
Seed records loaded into the store on startup (LOAD_INITIAL_DATA).

All dates are laid out relative to ``now`` so the recency-based analytics
rules (30-day insights, 7-day alerts, missing work) have something to find
whenever the demo is started.
"""
from datetime import datetime, timedelta

from schooldash.records import new_grade_entry
from schooldash.services.analytics_engine import generate_analytics
from schooldash.services.grading_service import recompute_student

DEMO_TEACHER = {
    "id": "1",
    "name": "Ms. Sarah Wilson",
    "email": "sarah.wilson@greenfield.edu",
    "school": "Greenfield Primary School",
    "subjects": ["Mathematics", "English", "Science"],
}

# (id, name, age, subjects, primary contact, class ids)
DEMO_STUDENTS = [
    ("1", "Emma Thompson", 9, ["Mathematics", "English", "Science"],
     ("Rachel Thompson", "rachel.thompson@email.com", "+1-555-0101", "Mother"), ["c1", "c2", "c3"]),
    ("2", "Liam Johnson", 10, ["Mathematics", "English", "History"],
     ("Mark Johnson", "mark.johnson@email.com", "+1-555-0102", "Father"), ["c1", "c2"]),
    ("3", "Sofia Chen", 9, ["Mathematics", "Science", "Geography"],
     ("Wei Chen", "wei.chen@email.com", "+1-555-0103", "Father"), ["c1", "c3"]),
    ("4", "Noah Patel", 10, ["Mathematics", "English"],
     ("Priya Patel", "priya.patel@email.com", "+1-555-0104", "Mother"), ["c1", "c2"]),
    ("5", "Ava Martinez", 9, ["Mathematics", "English", "Science"],
     ("Lucia Martinez", "lucia.martinez@email.com", "+1-555-0105", "Mother"), ["c1", "c2", "c3"]),
]

# (id, name, subject, room, schedule)
DEMO_CLASSES = [
    ("c1", "Grade 4 Mathematics", "Mathematics", "Room 101",
     [("Monday", "09:00", 60), ("Wednesday", "09:00", 60), ("Friday", "09:00", 45)]),
    ("c2", "Grade 4 English", "English", "Room 102",
     [("Tuesday", "10:00", 60), ("Thursday", "10:00", 60)]),
    ("c3", "Grade 4 Science", "Science", "Lab 1",
     [("Wednesday", "13:00", 90)]),
]

# (id, title, class id, type, total marks, weight, due days ago)
DEMO_ASSESSMENTS = [
    ("a1", "Multiplication Quiz", "c1", "quiz", 20, 10, 40),
    ("a2", "Fractions Test", "c1", "test", 100, 25, 25),
    ("a3", "Geometry Quiz", "c1", "quiz", 20, 10, 10),
    ("a4", "Measurement Project", "c1", "project", 50, 20, 3),
    ("a5", "Narrative Essay", "c2", "assignment", 100, 20, 35),
    ("a6", "Vocabulary Quiz", "c2", "quiz", 20, 10, 20),
    ("a7", "Reading Comprehension Test", "c2", "test", 100, 25, 5),
    ("a8", "Plant Life Lab Report", "c3", "assignment", 50, 15, 30),
    ("a9", "Ecosystems Quiz", "c3", "quiz", 20, 10, 12),
    ("a10", "States of Matter Test", "c3", "exam", 100, 30, 2),
]

# assessment id -> {student id: percentage}
DEMO_PERCENTAGES = {
    "a1": {"1": 90, "2": 65, "3": 95, "4": 85, "5": 80},
    "a2": {"1": 92, "2": 70, "3": 93, "4": 88, "5": 78},
    "a3": {"1": 95, "2": 80, "3": 100, "4": 60, "5": 75},
    "a4": {"1": 96, "2": 86, "3": 94, "4": 50},
    "a5": {"1": 82, "2": 55, "4": 80, "5": 72},
    "a6": {"1": 85, "2": 60, "4": 85, "5": 70},
    "a7": {"1": 80, "2": 58, "4": 52, "5": 74},
    "a8": {"1": 88, "3": 92, "5": 68},
    "a9": {"1": 80, "3": 95, "5": 65},
    "a10": {"1": 70, "3": 97, "5": 62},
}

FEEDBACK = {
    90: "Excellent work, keep it up!",
    80: "Good effort with a few small mistakes.",
    70: "Solid attempt; review the marked questions.",
    60: "Some understanding shown; let's go over this together.",
    0: "Please see me for extra help on this topic.",
}


def _feedback_for(percentage):
    for floor in sorted(FEEDBACK, reverse=True):
        if percentage >= floor:
            return FEEDBACK[floor]
    return ""


def _student(record, now):
    sid, name, age, subjects, (contact, email, phone, relationship), class_ids = record
    return {
        "id": sid,
        "name": name,
        "grade": "Grade 4",
        "age": age,
        "subjects": list(subjects),
        "overall_grade": 0,
        "performance_data": [{"subject": s, "grade": 0, "trend": "stable"} for s in subjects],
        "parent_contacts": {
            "primary": {"name": contact, "email": email, "phone": phone, "relationship": relationship},
            "secondary": None,
        },
        "emergency_contact": {"name": contact, "phone": phone, "relationship": relationship},
        "address": None,
        "medical_info": {"allergies": [], "medications": [], "conditions": []},
        "enrollment_date": (now - timedelta(days=120)).date().isoformat(),
        "class_ids": list(class_ids),
    }


def build_demo_data(now=None):
    """Return the LOAD_INITIAL_DATA payload built around ``now``."""
    now = now or datetime.now()
    students = [_student(record, now) for record in DEMO_STUDENTS]

    classes = []
    for cid, name, subject, room, schedule in DEMO_CLASSES:
        classes.append({
            "id": cid,
            "name": name,
            "grade": "Grade 4",
            "subject": subject,
            "teacher_id": DEMO_TEACHER["id"],
            "student_ids": [s["id"] for s in students if cid in s["class_ids"]],
            "schedule": [{"day": d, "time": t, "duration": m} for d, t, m in schedule],
            "room": room,
            "description": "",
            "created_at": (now - timedelta(days=120)).isoformat(),
            "academic_year": "2024-2025",
        })

    subject_of = {c["id"]: c["subject"] for c in classes}
    assessments = []
    for aid, title, cid, kind, total, weight, days_ago in DEMO_ASSESSMENTS:
        assessments.append({
            "id": aid,
            "title": title,
            "subject": subject_of[cid],
            "class_id": cid,
            "type": kind,
            "total_marks": total,
            "weight": weight,
            "due_date": (now - timedelta(days=days_ago)).replace(microsecond=0).isoformat(),
            "instructions": "",
            "created_at": (now - timedelta(days=days_ago + 14)).isoformat(),
            "created_by": DEMO_TEACHER["id"],
        })

    grade_entries = []
    for assessment in assessments:
        due = datetime.fromisoformat(assessment["due_date"])
        for sid, pct in DEMO_PERCENTAGES.get(assessment["id"], {}).items():
            grade_entries.append(new_grade_entry(
                assessment, sid, assessment["total_marks"] * pct / 100,
                feedback=_feedback_for(pct),
                graded_by=DEMO_TEACHER["id"],
                now=due - timedelta(hours=1),
                entry_id=f"g-{assessment['id']}-{sid}",
            ))

    students = [recompute_student(s, grade_entries, assessments) for s in students]

    return {
        "teacher": dict(DEMO_TEACHER),
        "students": students,
        "classes": classes,
        "assessments": assessments,
        "grade_entries": grade_entries,
        "analytics": generate_analytics(students, grade_entries, assessments, classes=classes, now=now),
    }
