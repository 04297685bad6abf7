"""
Clientes para comunicación con otros microservicios
"""
from .property_client import property_client, PropertyClient
from .user_client import user_client, UserClient
from .notification_client import notification_client, NotificationClient

__all__ = [
    "property_client",
    "PropertyClient",
    "user_client",
    "UserClient",
    "notification_client",
    "NotificationClient",
]
