"""
Stickerlab API package.

Provides the FastAPI application for credits, purchases and sticker generation.
"""

from .app import app, create_app

__all__ = ["app", "create_app"]
