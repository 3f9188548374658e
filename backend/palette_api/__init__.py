"""
Main application package for the Palette Advisor API.

This package contains the FastAPI application (in main.py), Pydantic
schemas for the analysis contract (in schemas.py), environment-driven
settings (in config.py), and the analyzer itself, stub or inference-backed
(in ai_core.py).

The FastAPI application instance 'app' is exported from this package
for use by ASGI servers like Uvicorn.
"""


from .main import app


__all__ = ["app"]
