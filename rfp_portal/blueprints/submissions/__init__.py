"""
Submissions blueprint package.

Exposes the Blueprint object imported in create_app(); routes live in routes.py.
"""

from .routes import submissions_bp  # noqa: F401
