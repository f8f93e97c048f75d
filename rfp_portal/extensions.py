"""
rfp_portal/extensions.py

Flask extension singletons for the RFP portal.

Created unbound here and attached to the app in create_app(), so models,
services and blueprints can import them without importing the app.
- db:            Flask-SQLAlchemy (drafts, submissions, audit log)
- migrate:       Flask-Migrate (`flask db ...` schema migrations)
- login_manager: Flask-Login session identity for vendors and admins
- csrf:          Flask-WTF CSRF protection (the JSON API blueprints are exempt)
"""

from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from flask_wtf import CSRFProtect

db = SQLAlchemy()
migrate = Migrate()

login_manager = LoginManager()
login_manager.session_protection = "strong"

csrf = CSRFProtect()
