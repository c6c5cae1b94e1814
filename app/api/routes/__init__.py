"""API routes package."""

from app.api.routes import (
    ai_materials,
    chat,
    community,
    generate,
    handwritten_notes,
    materials,
    my_materials,
    search,
    videos,
)

__all__ = [
    "ai_materials",
    "chat",
    "community",
    "generate",
    "handwritten_notes",
    "materials",
    "my_materials",
    "search",
    "videos",
]
