"""
SchoolDash Services
===================

Business logic services for the SchoolDash application.

Services:
- analytics_engine: rule-based insights, trends, gaps, recommendations, alerts
- grading_service: grade sheets, grade saving and performance recomputation
- bulk_import: roster CSV parsing and the import template
- queries: read-only views for the dashboard screens
"""

# Services are imported directly when needed to avoid circular imports
# Example: from schooldash.services.analytics_engine import generate_analytics

__all__ = [
    'analytics_engine',
    'grading_service',
    'bulk_import',
    'queries',
]
