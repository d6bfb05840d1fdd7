"""
Shared Lookup Tables
====================
Single source of truth for the static tables used by the analytics rules,
the subject catalog, and the letter-grade bands.

Topic and weakness tables are placeholders: they are keyed by subject name
only and do not look at assessment content.
"""

DEFAULT_SUBJECTS = [
    {"id": "1", "name": "Mathematics", "color": "bg-blue-500", "icon": "📊"},
    {"id": "2", "name": "English", "color": "bg-green-500", "icon": "📚"},
    {"id": "3", "name": "Science", "color": "bg-purple-500", "icon": "🔬"},
    {"id": "4", "name": "History", "color": "bg-orange-500", "icon": "🏛️"},
    {"id": "5", "name": "Geography", "color": "bg-teal-500", "icon": "🌍"},
]

DEFAULT_STUDENT_SUBJECTS = ["Mathematics", "English"]

ASSESSMENT_TYPES = ("quiz", "test", "assignment", "project", "exam")

SCHEDULE_DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

# Lower bound (inclusive) of each letter band, highest first
LETTER_BANDS = (("A", 90), ("B", 80), ("C", 70), ("D", 60))

SUBJECT_TOPICS = {
    "Mathematics": ["Algebra", "Geometry", "Arithmetic", "Problem Solving"],
    "English": ["Reading Comprehension", "Writing", "Grammar", "Vocabulary"],
    "Science": ["Biology", "Chemistry", "Physics", "Scientific Method"],
    "History": ["Historical Events", "Timeline", "Analysis", "Research"],
    "Geography": ["Maps", "Climate", "Countries", "Physical Features"],
}
DEFAULT_TOPICS = ["General Concepts"]

SUBJECT_WEAKNESSES = {
    "Mathematics": ["Problem-solving strategies", "Basic arithmetic", "Word problems"],
    "English": ["Reading comprehension", "Essay structure", "Grammar rules"],
    "Science": ["Scientific method", "Data analysis", "Concept application"],
    "History": ["Historical analysis", "Timeline understanding", "Source evaluation"],
    "Geography": ["Map reading", "Climate patterns", "Country identification"],
}
DEFAULT_WEAKNESSES = ["General concepts"]

# Days a learning gap of each severity is expected to stay open
GAP_DAYS_TO_CLOSE = {
    "minor": 7,
    "moderate": 14,
    "major": 30,
    "critical": 60,
}
