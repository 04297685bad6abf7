"""
Utilidades del microservicio
"""
from .auth import get_current_user, decode_token

__all__ = [
    "get_current_user",
    "decode_token"
]
