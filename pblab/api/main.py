"""
Aplicación FastAPI de PBLab - Evaluación individual en aprendizaje basado en proyectos

Configuración por entorno:
- PBLAB_DATABASE_URL / PBLAB_DATABASE_ECHO: ver database.config
- PBLAB_LOG_LEVEL: nivel de logging (default INFO)
- PBLAB_EXTRA_OBJECTIVE_TEAM_PHRASES / PBLAB_EXTRA_ARTIFACT_TEAM_PHRASES:
  frases de equipo adicionales, separadas por comas

Uso:
    uvicorn pblab.api.main:app --reload
"""
from contextlib import asynccontextmanager
import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ..database.config import init_database
from .exceptions import PBLabAPIException
from .routers import assessments, evidence, metrics, objectives, profiles, validation

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("PBLAB_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    if app.state.init_database:
        init_database()
    logger.info("PBLab API started")
    yield
    logger.info("PBLab API stopped")


def create_app(init_db: bool = True) -> FastAPI:
    """
    Construye la aplicación.

    Args:
        init_db: Si es False no se inicializa la base de datos al arrancar
            (los tests sobreescriben get_db)
    """
    configure_logging()

    app = FastAPI(
        title="PBLab Individual Assessment API",
        description="Objetivos, evidencias y evaluaciones estrictamente individuales",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.init_database = init_db

    @app.exception_handler(PBLabAPIException)
    async def pblab_exception_handler(request: Request, exc: PBLabAPIException):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error_code": exc.error_code,
                "detail": exc.detail,
                "extra": exc.extra,
            },
            headers=exc.headers,
        )

    @app.exception_handler(ValidationError)
    async def malformed_record_handler(request: Request, exc: ValidationError):
        # Candidate records whose fields cannot be parsed at all
        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "error_code": "MALFORMED_RECORD",
                "detail": "Record could not be parsed",
                "extra": {"errors": [e["msg"] for e in exc.errors()]},
            },
        )

    @app.get("/health", tags=["Monitoring"])
    async def health():
        return {"status": "ok"}

    app.include_router(profiles.router, prefix=API_PREFIX)
    app.include_router(objectives.router, prefix=API_PREFIX)
    app.include_router(evidence.router, prefix=API_PREFIX)
    app.include_router(assessments.router, prefix=API_PREFIX)
    app.include_router(validation.router, prefix=API_PREFIX)
    app.include_router(metrics.router)

    return app


app = create_app()
