"""
Cliente HTTP para comunicarse con el microservicio de Propiedades
Resuelve el propietario de una propiedad publicada
"""
import httpx
from typing import Optional, Dict, Any
import logging

from ..config import settings
from ..services.errors import NotFoundError, InternalError

logger = logging.getLogger(__name__)


class PropertyClient:
    """Cliente para el directorio de propiedades"""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = (base_url or settings.MS_PROPERTY_URL).rstrip('/')
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS

    async def get_property(self, property_id: str) -> Dict[str, Any]:
        """
        Obtener una propiedad por ID

        Args:
            property_id: ID de la propiedad

        Returns:
            Dict con la información de la propiedad

        Raises:
            NotFoundError: Si la propiedad no existe
            InternalError: Si el servicio no responde o responde con error
        """
        url = f"{self.base_url}/api/v1/properties/{property_id}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url)
        except httpx.TimeoutException as e:
            logger.error(f"Timeout al consultar la propiedad {property_id} en {url}")
            raise InternalError("El directorio de propiedades no respondió a tiempo") from e
        except httpx.RequestError as e:
            logger.error(f"Error de conexión al consultar la propiedad {property_id}: {str(e)}")
            raise InternalError("No se pudo conectar con el directorio de propiedades") from e

        if response.status_code == 404:
            raise NotFoundError(f"La propiedad con ID {property_id} no existe")

        if response.status_code != 200:
            logger.error(
                f"Error al obtener la propiedad {property_id}: "
                f"{response.status_code} - {response.text}"
            )
            raise InternalError("Error al comunicarse con el directorio de propiedades")

        return response.json()

    async def get_owner_id(self, property_id: str) -> str:
        """Obtener el ID del usuario propietario de la propiedad"""
        data = await self.get_property(property_id)
        owner_id = data.get("user_id") or data.get("owner_id")

        if not owner_id:
            logger.error(f"La propiedad {property_id} no informa propietario: {data}")
            raise InternalError("El directorio de propiedades no informó el propietario")

        return str(owner_id)


# Instancia global del cliente
property_client = PropertyClient()
