"""
Analytics Engine
================
Derives the analytics snapshot (insights, trends, learning gaps,
recommendations, alerts, subject breakdowns) from the students, grade
entries and assessments held in the store.

Every rule is plain arithmetic over the in-memory records: averages,
first-half/second-half deltas and threshold checks. Zero AI API calls.
The computation is a pure function of its inputs and ``now``; rules that
lack data are skipped rather than emitting partial records.
"""
import logging
import random
import statistics
from collections import defaultdict
from datetime import datetime

from schooldash.lookups import (
    DEFAULT_TOPICS, DEFAULT_WEAKNESSES, GAP_DAYS_TO_CLOSE, SUBJECT_TOPICS,
    SUBJECT_WEAKNESSES,
)
from schooldash.records import parse_timestamp, round_half_up

logger = logging.getLogger(__name__)

# Rule thresholds (percentage points unless noted)
INSIGHT_RECENT_DAYS = 30
DECLINE_MARGIN = 10
STRENGTH_THRESHOLD = 90
STRUGGLING_THRESHOLD = 70
ALERT_RECENT_DAYS = 7
GRADE_DROP_MARGIN = 15
MISSING_WINDOW_DAYS = 7
LOW_SCORE_THRESHOLD = 60
MIN_TREND_POINTS = 3
MIN_SUBJECT_GRADES = 2

DECLINE_ACTIONS = [
    'Schedule one-on-one meeting with student',
    'Review recent assignments for patterns',
    'Consider additional support resources',
    'Contact parents for discussion',
]
STRENGTH_ACTIONS = [
    'Consider advanced materials or enrichment activities',
    'Use as peer mentor for struggling students',
    'Maintain current support level',
]
INTERVENTION_STEPS = [
    'Identify common learning gaps',
    'Create small group sessions',
    'Develop targeted materials',
    'Schedule regular progress checks',
    'Involve parents in the process',
]
INTERVENTION_RESOURCES = [
    'Additional teaching materials',
    'Small group space',
    'Progress tracking tools',
    'Parent communication templates',
]
ENRICHMENT_STEPS = [
    'Design advanced curriculum modules',
    'Create project-based learning opportunities',
    'Establish peer mentoring program',
    'Provide leadership opportunities',
]
ENRICHMENT_RESOURCES = [
    'Advanced curriculum materials',
    'Project resources',
    'Mentoring guidelines',
    'Leadership training materials',
]


# ═══════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════

def average_score(entries):
    """Mean percentage of a list of grade entries (0 when empty)."""
    if not entries:
        return 0
    return sum(g["percentage"] for g in entries) / len(entries)


def recent_entries(entries, days, now):
    """Entries graded within the last ``days`` days of ``now``."""
    recent = []
    for g in entries:
        graded_at = parse_timestamp(g.get("graded_at"))
        if graded_at and (now - graded_at).total_seconds() <= days * 86400:
            recent.append(g)
    return recent


def sort_chronologically(entries):
    return sorted(entries, key=lambda g: parse_timestamp(g.get("graded_at")) or datetime.min)


def half_split_delta(entries):
    """Second-half average minus first-half average of chronologically sorted entries.

    The first half holds floor(n/2) entries, so an odd middle point counts
    toward the second half.
    """
    if len(entries) < 2:
        return 0
    ordered = sort_chronologically(entries)
    mid = len(ordered) // 2
    return average_score(ordered[mid:]) - average_score(ordered[:mid])


def trend_score(entries):
    return max(-100, min(100, half_split_delta(entries)))


def trend_direction(score):
    """Classify a trend score: improving, declining, stable or volatile."""
    if abs(score) < 5:
        return "stable"
    if score > 10:
        return "improving"
    if score < -10:
        return "declining"
    return "volatile"


def predict_next_score(entries):
    if len(entries) < MIN_TREND_POINTS:
        return average_score(entries)
    return max(0, min(100, average_score(entries) + half_split_delta(entries)))


def trend_confidence(entries):
    """100 minus the population standard deviation of the scores, floored at 50."""
    if len(entries) < MIN_TREND_POINTS:
        return 50
    spread = statistics.pstdev([g["percentage"] for g in entries])
    return round_half_up(max(50, 100 - spread))


def gap_severity(low_count, total_count):
    share = low_count / total_count * 100
    if share >= 75:
        return "critical"
    if share >= 50:
        return "major"
    if share >= 25:
        return "moderate"
    return "minor"


def pick_topic(student_id, subject):
    """Arbitrary topic from the subject's static list, stable per (student, subject)."""
    topics = SUBJECT_TOPICS.get(subject, DEFAULT_TOPICS)
    return random.Random(f"{student_id}:{subject}").choice(topics)


def suggested_resources(subject, severity):
    resources = [
        f'{subject} practice worksheets',
        'Online tutorial videos',
        'One-on-one tutoring sessions',
        'Peer study groups',
    ]
    if severity in ("critical", "major"):
        resources += ['Specialized intervention program', 'Parent-teacher conference']
    return resources


def improvement_suggestions(avg):
    if avg < 60:
        return [
            'Implement intensive remediation program',
            'Provide additional one-on-one support',
            'Break down complex topics into smaller units',
        ]
    if avg < 80:
        return [
            'Increase practice opportunities',
            'Provide more detailed feedback',
            'Use visual aids and hands-on activities',
        ]
    return [
        'Maintain current teaching strategies',
        'Consider enrichment activities',
        'Encourage peer tutoring',
    ]


def grade_distribution(scores):
    """A/B/C/D/F counts; every score lands in exactly one bucket."""
    dist = {"A": 0, "B": 0, "C": 0, "D": 0, "F": 0}
    for s in scores:
        if s >= 90:
            dist["A"] += 1
        elif s >= 80:
            dist["B"] += 1
        elif s >= 70:
            dist["C"] += 1
        elif s >= 60:
            dist["D"] += 1
        else:
            dist["F"] += 1
    return dist


class _GradeIndex:
    """Grade entries grouped by student and by (student, subject)."""

    def __init__(self, grade_entries, assessments):
        self.assessments = {a["id"]: a for a in assessments}
        self.by_student = defaultdict(list)
        self.by_subject = defaultdict(list)
        self.by_student_subject = defaultdict(list)
        for g in grade_entries:
            self.by_student[g["student_id"]].append(g)
            assessment = self.assessments.get(g["assessment_id"])
            if assessment is None:
                continue
            self.by_subject[assessment["subject"]].append(g)
            self.by_student_subject[(g["student_id"], assessment["subject"])].append(g)

    def assessment_type(self, entry):
        assessment = self.assessments.get(entry["assessment_id"])
        return assessment["type"] if assessment else "unknown"


# ═══════════════════════════════════════════════════════
# RULES
# ═══════════════════════════════════════════════════════

def _insights(students, index, now, stamp):
    insights = []
    created = now.isoformat()
    for student in students:
        sid = student["id"]
        entries = index.by_student.get(sid, [])
        if not entries:
            continue

        overall = average_score(entries)
        recent = recent_entries(entries, INSIGHT_RECENT_DAYS, now)
        if recent:
            recent_avg = average_score(recent)
            if recent_avg < overall - DECLINE_MARGIN:
                insights.append({
                    "id": f"insight-{sid}-decline-{stamp}",
                    "student_id": sid,
                    "type": "weakness",
                    "category": "academic",
                    "title": "Recent Performance Decline",
                    "description": f"{student['name']} has shown a {round_half_up(overall - recent_avg)}% decline in recent performance.",
                    "priority": "high",
                    "confidence": 85,
                    "suggested_actions": list(DECLINE_ACTIONS),
                    "created_at": created,
                    "is_read": False,
                })

        if overall >= STRENGTH_THRESHOLD:
            insights.append({
                "id": f"insight-{sid}-strength-{stamp}",
                "student_id": sid,
                "type": "strength",
                "category": "academic",
                "title": "Excellent Performance",
                "description": f"{student['name']} is consistently performing at a high level with an average of {round_half_up(overall)}%.",
                "priority": "low",
                "confidence": 95,
                "suggested_actions": list(STRENGTH_ACTIONS),
                "created_at": created,
                "is_read": False,
            })

        for subject in student.get("subjects", []):
            subject_entries = index.by_student_subject.get((sid, subject), [])
            if len(subject_entries) < MIN_SUBJECT_GRADES:
                continue
            subject_avg = average_score(subject_entries)
            if subject_avg < STRUGGLING_THRESHOLD:
                insights.append({
                    "id": f"insight-{sid}-{subject}-struggling-{stamp}",
                    "student_id": sid,
                    "type": "weakness",
                    "category": "academic",
                    "title": f"Struggling in {subject}",
                    "description": f"{student['name']} is struggling in {subject} with an average of {round_half_up(subject_avg)}%.",
                    "priority": "high",
                    "confidence": 90,
                    "suggested_actions": [
                        f'Provide additional {subject} support materials',
                        'Schedule extra help sessions',
                        'Consider peer tutoring',
                        'Break down complex concepts into smaller parts',
                    ],
                    "created_at": created,
                    "is_read": False,
                })
    return insights


def _trends(students, index):
    trends = []
    for student in students:
        for subject in student.get("subjects", []):
            entries = sort_chronologically(index.by_student_subject.get((student["id"], subject), []))
            if len(entries) < MIN_TREND_POINTS:
                continue
            score = trend_score(entries)
            trends.append({
                "student_id": student["id"],
                "subject": subject,
                "period": "month",
                "trend": trend_direction(score),
                "trend_score": round(score, 2),
                "data_points": [
                    {"date": g["graded_at"], "score": g["percentage"], "assessment_type": index.assessment_type(g)}
                    for g in entries
                ],
                "predicted_score": round(predict_next_score(entries), 1),
                "confidence": trend_confidence(entries),
            })
    return trends


def _learning_gaps(students, index, now, stamp):
    gaps = []
    for student in students:
        sid = student["id"]
        for subject in student.get("subjects", []):
            entries = index.by_student_subject.get((sid, subject), [])
            if not entries:
                continue
            low = [g for g in entries if g["percentage"] < LOW_SCORE_THRESHOLD]
            if not low:
                continue
            severity = gap_severity(len(low), len(entries))
            gaps.append({
                "id": f"gap-{sid}-{subject}-{stamp}",
                "student_id": sid,
                "subject": subject,
                "topic": pick_topic(sid, subject),
                "severity": severity,
                "description": f"{student['name']} is struggling with fundamental concepts in {subject}.",
                "suggested_resources": suggested_resources(subject, severity),
                "estimated_time_to_close": GAP_DAYS_TO_CLOSE[severity],
                "created_at": now.isoformat(),
                "status": "open",
            })
    return gaps


def _recommendations(students, index, now, stamp):
    averages = {
        s["id"]: average_score(index.by_student[s["id"]])
        for s in students if index.by_student.get(s["id"])
    }
    struggling = [sid for sid, avg in averages.items() if avg < STRUGGLING_THRESHOLD]
    excelling = [sid for sid, avg in averages.items() if avg >= STRENGTH_THRESHOLD]

    recommendations = []
    if struggling:
        recommendations.append({
            "id": f"rec-intervention-{stamp}",
            "type": "intervention",
            "title": "Implement Group Intervention Program",
            "description": f"{len(struggling)} students are performing below 70%. Consider implementing a targeted intervention program.",
            "target_students": struggling,
            "priority": "high",
            "estimated_impact": 75,
            "implementation_steps": list(INTERVENTION_STEPS),
            "required_resources": list(INTERVENTION_RESOURCES),
            "created_at": now.isoformat(),
            "status": "pending",
        })
    if excelling:
        recommendations.append({
            "id": f"rec-enrichment-{stamp}",
            "type": "teaching_strategy",
            "title": "Create Enrichment Program",
            "description": f"{len(excelling)} students are excelling. Consider creating an enrichment program to challenge them further.",
            "target_students": excelling,
            "priority": "medium",
            "estimated_impact": 60,
            "implementation_steps": list(ENRICHMENT_STEPS),
            "required_resources": list(ENRICHMENT_RESOURCES),
            "created_at": now.isoformat(),
            "status": "pending",
        })
    return recommendations


def _recently_due(assessments, now):
    """(assessment, days since due) for assessments due within the missing-work window."""
    due = []
    for a in assessments:
        due_date = parse_timestamp(a.get("due_date"))
        if due_date is None:
            continue
        days = (now - due_date).total_seconds() / 86400
        if 0 <= days <= MISSING_WINDOW_DAYS:
            due.append((a, days))
    return due


def _alerts(students, classes, assessments, index, now, stamp):
    alerts = []
    created = now.isoformat()
    rosters = {c["id"]: set(c.get("student_ids", [])) for c in classes}
    recently_due = _recently_due(assessments, now)

    for student in students:
        sid = student["id"]
        entries = index.by_student.get(sid, [])

        recent = recent_entries(entries, ALERT_RECENT_DAYS, now)
        if entries and recent:
            overall = average_score(entries)
            recent_avg = average_score(recent)
            if recent_avg < overall - GRADE_DROP_MARGIN:
                drop = round_half_up(overall - recent_avg)
                alerts.append({
                    "id": f"alert-{sid}-drop-{stamp}",
                    "type": "grade_drop",
                    "student_id": sid,
                    "title": "Significant Grade Drop Detected",
                    "message": f"{student['name']} has experienced a {drop}% drop in recent performance.",
                    "severity": "critical",
                    "created_at": created,
                    "is_read": False,
                    "action_required": True,
                    "related_data": {
                        "recent_average": round(recent_avg, 1),
                        "overall_average": round(overall, 1),
                        "drop_percentage": drop,
                    },
                })

        graded = {g["assessment_id"] for g in entries}
        student_classes = set(student.get("class_ids", []))
        for assessment, days in recently_due:
            class_id = assessment.get("class_id")
            enrolled = class_id in student_classes or sid in rosters.get(class_id, set())
            if not enrolled or assessment["id"] in graded:
                continue
            alerts.append({
                "id": f"alert-{sid}-missing-{assessment['id']}",
                "type": "missing_assignment",
                "student_id": sid,
                "title": "Missing Assignment",
                "message": f"{student['name']} has not submitted {assessment['title']} which was due {assessment['due_date']}.",
                "severity": "warning",
                "created_at": created,
                "is_read": False,
                "action_required": True,
                "related_data": {
                    "assessment_id": assessment["id"],
                    "due_date": assessment["due_date"],
                    "days_late": int(days),
                },
            })
    return alerts


def _subject_breakdowns(students, index):
    subjects = []
    for student in students:
        for subject in student.get("subjects", []):
            if subject not in subjects:
                subjects.append(subject)

    breakdowns = []
    for subject in subjects:
        entries = index.by_subject.get(subject, [])
        if not entries:
            continue
        scores = [g["percentage"] for g in entries]
        avg = sum(scores) / len(scores)

        top, struggling = [], []
        for student in students:
            own = index.by_student_subject.get((student["id"], subject), [])
            if not own:
                continue
            student_avg = average_score(own)
            if student_avg >= STRENGTH_THRESHOLD:
                top.append(student["name"])
            elif student_avg < STRUGGLING_THRESHOLD:
                struggling.append(student["name"])

        breakdowns.append({
            "subject": subject,
            "average_score": round_half_up(avg),
            "student_count": sum(1 for s in students if subject in s.get("subjects", [])),
            "graded_count": len(scores),
            "grade_distribution": grade_distribution(scores),
            "top_performers": top,
            "struggling_students": struggling,
            "common_weaknesses": list(SUBJECT_WEAKNESSES.get(subject, DEFAULT_WEAKNESSES)),
            "improvement_suggestions": improvement_suggestions(avg),
        })
    return breakdowns


# ═══════════════════════════════════════════════════════
# ENTRY POINTS
# ═══════════════════════════════════════════════════════

def generate_analytics(students, grade_entries, assessments, classes=None, now=None):
    """Compute a complete analytics snapshot.

    Args:
        students: student records
        grade_entries: grade entry records
        assessments: assessment records (entries are tied to subjects through these)
        classes: class records, used for roster membership in missing-work alerts
        now: reference time for recency windows, ids and timestamps

    Returns:
        dict with insights, trends, learning_gaps, recommendations, alerts,
        subject_breakdowns and last_updated
    """
    now = now or datetime.now()
    stamp = int(now.timestamp() * 1000)
    index = _GradeIndex(grade_entries, assessments)

    snapshot = {
        "insights": _insights(students, index, now, stamp),
        "trends": _trends(students, index),
        "learning_gaps": _learning_gaps(students, index, now, stamp),
        "recommendations": _recommendations(students, index, now, stamp),
        "alerts": _alerts(students, classes or [], assessments, index, now, stamp),
        "subject_breakdowns": _subject_breakdowns(students, index),
        "last_updated": now.isoformat(),
    }
    logger.info(
        "Analytics generated: %d insights, %d trends, %d gaps, %d recommendations, %d alerts",
        len(snapshot["insights"]), len(snapshot["trends"]), len(snapshot["learning_gaps"]),
        len(snapshot["recommendations"]), len(snapshot["alerts"]),
    )
    return snapshot


def analytics_for_state(state, now=None):
    """Run the engine over the collections of a store state."""
    return generate_analytics(
        state["students"], state["grade_entries"], state["assessments"],
        classes=state["classes"], now=now,
    )


def overview_stats(snapshot):
    """Headline counts shown on the analytics overview."""
    return {
        "total_insights": len(snapshot["insights"]),
        "high_priority_insights": sum(1 for i in snapshot["insights"] if i["priority"] == "high"),
        "unread_alerts": sum(1 for a in snapshot["alerts"] if not a["is_read"]),
        "open_gaps": sum(1 for g in snapshot["learning_gaps"] if g["status"] == "open"),
        "pending_recommendations": sum(1 for r in snapshot["recommendations"] if r["status"] == "pending"),
        "last_updated": snapshot.get("last_updated"),
    }
