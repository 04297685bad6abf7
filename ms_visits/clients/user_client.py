"""
Cliente HTTP para comunicarse con MS-AUTH-PY
Directorio de usuarios y roles
"""
import httpx
from typing import Optional
import logging

from ..config import settings
from ..services.errors import InternalError

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


class UserClient:
    """Cliente para consultar roles de usuarios en MS-AUTH-PY"""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = (base_url or settings.MS_AUTH_URL).rstrip('/')
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS

    async def is_admin(self, user_id: str) -> bool:
        """
        Verifica si el usuario tiene rol de administrador

        Args:
            user_id: ID del usuario

        Returns:
            True si el rol del usuario es admin; False si no lo es o no existe

        Raises:
            InternalError: Si el directorio no responde
        """
        url = f"{self.base_url}/api/v1/auth/users/{user_id}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url)
        except httpx.RequestError as e:
            logger.error(f"No se pudo consultar el rol del usuario {user_id}: {str(e)}")
            raise InternalError("No se pudo conectar con el directorio de usuarios") from e

        if response.status_code == 404:
            return False

        if response.status_code != 200:
            logger.error(
                f"Error al consultar el usuario {user_id}: "
                f"{response.status_code} - {response.text}"
            )
            raise InternalError("Error al comunicarse con el directorio de usuarios")

        data = response.json()
        role = str(data.get("role") or data.get("role_id") or "").lower()
        return role == ADMIN_ROLE


# Instancia global del cliente
user_client = UserClient()
