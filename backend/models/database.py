"""
Shared SQLAlchemy instance.

Initialized against the Flask app in app.create_app() via db.init_app().
"""
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
