# backend/wsgi.py
from assetman import create_app

app = create_app()
