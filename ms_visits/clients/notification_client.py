"""
Cliente HTTP para el canal de notificaciones
Publica un evento por cada transición exitosa de una visita (fire-and-forget)
"""
import httpx
from typing import Optional, Dict, Any
import logging

from ..config import settings

logger = logging.getLogger(__name__)


class NotificationClient:
    """Cliente para publicar eventos de visitas en MS-NOTIFICATIONS"""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = (base_url or settings.MS_NOTIFICATIONS_URL).rstrip('/')
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS

    async def publish(self, event: Dict[str, Any]) -> bool:
        """
        Publicar un evento de transición

        Args:
            event: {visit_id, old_status, new_status, actor_id, action, occurred_at}

        Returns:
            True si el canal aceptó el evento. Nunca lanza excepción:
            una notificación fallida no invalida la transición ya guardada
        """
        url = f"{self.base_url}/api/v1/notifications/visit-events"

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, json=event)

            if response.status_code in (200, 201, 202):
                return True

            logger.warning(
                f"El canal de notificaciones rechazó el evento de la visita {event.get('visit_id')}: "
                f"{response.status_code} - {response.text}"
            )
            return False

        except httpx.TimeoutException:
            logger.warning(f"Timeout al notificar la visita {event.get('visit_id')}")
            return False
        except Exception as e:
            logger.error(f"Error inesperado al notificar la visita {event.get('visit_id')}: {str(e)}")
            return False


# Instancia global del cliente
notification_client = NotificationClient()
