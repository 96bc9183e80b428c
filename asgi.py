"""
asgi.py -- ASGI entry point for Upholstr.

Run with:  uvicorn asgi:app --reload

api/main.py builds the app; this module only re-exports it so process
managers have one stable import path.
"""

from api.main import app

__all__ = ["app"]
