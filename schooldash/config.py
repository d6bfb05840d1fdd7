"""
Configuration management for the SchoolDash backend.
"""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_bool(name, default):
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Server configuration
HOST = os.getenv("SCHOOLDASH_HOST", "0.0.0.0")
PORT = int(os.getenv("SCHOOLDASH_PORT", "3000"))
DEBUG = _env_bool("SCHOOLDASH_DEBUG", True)
LOG_LEVEL = os.getenv("SCHOOLDASH_LOG_LEVEL", "INFO").upper()

# School year / ownership defaults
ACADEMIC_YEAR = os.getenv("SCHOOLDASH_ACADEMIC_YEAR", "2024-2025")
DEFAULT_TEACHER_ID = "1"

# Grading configuration
LATE_PENALTY = int(os.getenv("SCHOOLDASH_LATE_PENALTY", "5"))

# Analytics configuration
ANALYSIS_DELAY_SECONDS = float(os.getenv("SCHOOLDASH_ANALYSIS_DELAY", "0"))
AUTO_REFRESH_ANALYTICS = _env_bool("SCHOOLDASH_AUTO_REFRESH", True)

# Startup
LOAD_DEMO_DATA = _env_bool("SCHOOLDASH_LOAD_DEMO", True)

# Bulk import
MAX_IMPORT_BYTES = 5 * 1024 * 1024
ALLOWED_IMPORT_EXTENSIONS = {'csv', 'txt'}

VIEWS = ['dashboard', 'students', 'classes', 'assessments', 'results', 'reports', 'analytics']


class Config:
    """Application configuration class."""

    def __init__(self):
        self.host = HOST
        self.port = PORT
        self.debug = DEBUG
        self.log_level = LOG_LEVEL
        self.academic_year = ACADEMIC_YEAR
        self.default_teacher_id = DEFAULT_TEACHER_ID
        self.late_penalty = LATE_PENALTY
        self.analysis_delay = ANALYSIS_DELAY_SECONDS
        self.auto_refresh_analytics = AUTO_REFRESH_ANALYTICS
        self.load_demo_data = LOAD_DEMO_DATA

    def to_dict(self):
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "log_level": self.log_level,
            "academic_year": self.academic_year,
            "default_teacher_id": self.default_teacher_id,
            "late_penalty": self.late_penalty,
            "analysis_delay": self.analysis_delay,
            "auto_refresh_analytics": self.auto_refresh_analytics,
            "load_demo_data": self.load_demo_data,
        }

    def update(self, data: dict):
        for key, value in data.items():
            if hasattr(self, key):
                setattr(self, key, value)


# Global config instance
config = Config()
