# backend/wsgi.py
from maiduka import create_app

app = create_app()
