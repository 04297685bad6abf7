"""
Routers de la API
"""
from .visits import router as visits_router

__all__ = [
    "visits_router"
]
