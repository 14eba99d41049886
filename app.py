"""Provides application for development purposes."""
from accounts.factory import create_web_app
from accounts.services import database

app = create_web_app()
with app.app_context():
    database.create_all()
