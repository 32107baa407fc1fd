"""
SQLAlchemy models package.

The shared ``db`` handle lives here so that every model module, service and
test imports it the same way:

    from role_portal.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
