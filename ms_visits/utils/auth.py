"""
Utilidades de autenticación JWT
Valida tokens generados por MS-AUTH-PY
"""
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from ..config import settings

# HTTP Bearer scheme para el header Authorization
http_bearer = HTTPBearer(auto_error=False)


def decode_token(token: str) -> dict:
    """
    Decodifica y valida un token JWT

    El claim `sub` es el ID del usuario; es la identidad del actor en todas
    las operaciones sobre visitas.

    Args:
        token: Token JWT a decodificar

    Returns:
        dict: user_id, role y email extraídos del token

    Raises:
        HTTPException: Si el token es inválido o no trae `sub`
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="No se pudieron validar las credenciales",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise credentials_exception

    user_id = payload.get("sub")
    if user_id is None or str(user_id).strip() == "":
        raise credentials_exception

    return {
        "user_id": str(user_id),
        "role": str(payload.get("role") or "").lower(),
        "email": payload.get("email")
    }


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(http_bearer)) -> dict:
    """
    Obtiene el usuario actual desde el token JWT

    Raises:
        HTTPException: Si el token es inválido o no está presente
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token de autenticación requerido",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return decode_token(credentials.credentials)
