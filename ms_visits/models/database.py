"""
Conexión a la base de datos
Engine, sesiones y dependencia get_db para FastAPI
"""
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from ..config import settings

logger = logging.getLogger(__name__)

# SQLite (tests y desarrollo local) necesita compartir conexiones entre hilos
connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=connect_args,
    echo=False,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """Sesión de base de datos por request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Crear las tablas si no existen"""
    Base.metadata.create_all(bind=engine)
    logger.info("Tablas de visitas verificadas")
