# wsgi.py (at repo root)
from brewnear import create_app

app = create_app()
