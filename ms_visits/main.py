"""
MS-VISITS-PY - Microservicio de Agendamiento de Visitas a Propiedades
FastAPI Application
"""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .config import settings
from .models import SessionLocal, init_db
from .schemas import HealthResponse
from .services.errors import VisitError, InternalError

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

# Crear aplicación FastAPI
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
    Microservicio de agendamiento de visitas presenciales a propiedades.

    ## Funcionalidades

    * **Solicitudes**: El visitante propone fecha y hora para visitar una propiedad
    * **Confirmación y reagendamiento**: El propietario confirma, propone otra hora o rechaza
    * **Seguimiento**: Cancelaciones, visitas completadas e inasistencias
    * **Administración**: Agenda directa, cierre forzado, listados y conteos por estado
    * **Disponibilidad**: Horas ocupadas de una propiedad por fecha
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# Configurar CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(VisitError)
async def visit_error_handler(request: Request, exc: VisitError):
    """Traduce los errores de dominio a respuestas HTTP {detail, code}"""
    if isinstance(exc, InternalError):
        logger.error(f"Error interno en {request.method} {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=exc.http_status,
        content={"detail": exc.detail, "code": exc.code}
    )


# Importar y configurar routers después de crear la app para evitar imports circulares
from .routers import visits_router

app.include_router(
    visits_router,
    prefix=settings.API_PREFIX,
    tags=["visits"]
)


@app.get("/", include_in_schema=False)
async def root():
    """Redireccionar a la documentación"""
    return RedirectResponse(url="/docs")


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health():
    """Health check con verificación de base de datos"""
    database = "connected"
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check sin base de datos: {str(e)}")
        database = "disconnected"
    finally:
        db.close()

    return HealthResponse(
        status="healthy" if database == "connected" else "unhealthy",
        service=settings.APP_NAME,
        version=settings.APP_VERSION,
        database=database
    )


# Event handlers
@app.on_event("startup")
async def startup_event():
    """Evento de inicio de la aplicación"""
    init_db()
    logger.info(f"[STARTUP] {settings.APP_NAME} v{settings.APP_VERSION} iniciado")
    logger.info(f"[INFO] Documentación disponible en: http://{settings.SERVICE_HOST}:{settings.SERVICE_PORT}/docs")
    logger.info(f"[INFO] Endpoints de visitas en: {settings.API_PREFIX}/visits")
    logger.info(
        f"[INFO] Integraciones: MS-PROPERTY ({settings.MS_PROPERTY_URL}), "
        f"MS-AUTH ({settings.MS_AUTH_URL}), MS-NOTIFICATIONS ({settings.MS_NOTIFICATIONS_URL})"
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Evento de cierre de la aplicación"""
    logger.info(f"[SHUTDOWN] {settings.APP_NAME} detenido")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ms_visits.main:app",
        host=settings.SERVICE_HOST,
        port=settings.SERVICE_PORT,
        reload=settings.DEBUG
    )
