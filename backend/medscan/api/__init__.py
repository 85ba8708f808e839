"""
HTTP API

FastAPI router and schemas for the medicine pipeline.
"""

from .router import router

__all__ = ["router"]
