# backend/wsgi.py
from cardroom import create_app

app = create_app()
