"""API routers, mounted under /api/v1 by main.py."""
