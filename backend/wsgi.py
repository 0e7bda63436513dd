# backend/wsgi.py
# WSGI entry point for `flask --app wsgi` and production servers.
from shopkeep import create_app

app = create_app()
