"""
SchoolDash API Routes
=====================

All API route blueprints for the SchoolDash application, one per
dashboard screen.

Usage:
    from schooldash.routes import register_routes
    register_routes(app, store)
"""
from .dashboard_routes import dashboard_bp, init_dashboard_routes
from .student_routes import student_bp, init_student_routes
from .class_routes import class_bp, init_class_routes
from .assessment_routes import assessment_bp, init_assessment_routes
from .analytics_routes import analytics_bp, init_analytics_routes


def register_routes(app, store):
    """Register all route blueprints with the Flask app."""

    # Give every blueprint its reference to the shared store
    init_dashboard_routes(store)
    init_student_routes(store)
    init_class_routes(store)
    init_assessment_routes(store)
    init_analytics_routes(store)

    app.register_blueprint(dashboard_bp)
    app.register_blueprint(student_bp)
    app.register_blueprint(class_bp)
    app.register_blueprint(assessment_bp)
    app.register_blueprint(analytics_bp)


__all__ = [
    'register_routes',
    'dashboard_bp',
    'student_bp',
    'class_bp',
    'assessment_bp',
    'analytics_bp',
]
