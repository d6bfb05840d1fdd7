"""
SchoolDash Backend Package
==========================

Flask-based backend for the SchoolDash classroom administration dashboard.

Structure:
- routes/: API route blueprints, one per dashboard screen
- services/: Business logic (analytics, grading, bulk import, queries)
- store.py: Reducer-style in-memory state container
- records.py: Domain record builders and form validation
- lookups.py: Static lookup tables used by the analytics rules
- demo_data.py: Seed data loaded on startup
- config.py: Configuration management
"""

from .config import config, Config

__version__ = "1.0.0"

__all__ = ['config', 'Config']
