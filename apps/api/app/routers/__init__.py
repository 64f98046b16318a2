from app.routers import families, health, persons

__all__ = [
    "health",
    "persons",
    "families",
]
