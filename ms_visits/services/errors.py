"""
Errores del dominio de visitas
Cada error lleva su código y el status HTTP con el que se expone
"""
from fastapi import status


class VisitError(Exception):
    """Error base del núcleo de agendamiento"""
    code = "internal"
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(VisitError):
    """La visita o la propiedad referenciada no existe"""
    code = "not_found"
    http_status = status.HTTP_404_NOT_FOUND


class ValidationError(VisitError):
    """Datos de entrada inválidos (visitante = propietario, fecha faltante, payload no permitido)"""
    code = "validation_error"
    http_status = status.HTTP_400_BAD_REQUEST


class ForbiddenError(VisitError):
    """El actor no es visitante, propietario ni administrador"""
    code = "forbidden"
    http_status = status.HTTP_403_FORBIDDEN


class InvalidTransitionError(VisitError):
    """La acción no está permitida desde el estado actual para el rol del actor"""
    code = "invalid_transition"
    http_status = status.HTTP_409_CONFLICT


class SlotConflictError(VisitError):
    """La hora solicitada choca con otra visita activa de la misma propiedad"""
    code = "slot_conflict"
    http_status = status.HTTP_409_CONFLICT


class ConcurrencyConflictError(VisitError):
    """La actualización condicional perdió la carrera dos veces seguidas"""
    code = "conflict"
    http_status = status.HTTP_409_CONFLICT


class InternalError(VisitError):
    """Falla de almacenamiento o de un colaborador externo"""
    code = "internal"
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
