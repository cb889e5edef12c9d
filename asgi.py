"""
asgi.py -- ASGI entry point for UserAuth.

The only place settings are loaded from the environment for a server
process. Everything below receives them through create_app().

Run with:  uvicorn asgi:app --reload
"""

from api.main import create_app
from core.config import get_settings

app = create_app(get_settings())
