"""
Endpoint de Prometheus Metrics.

Endpoint:
- GET /metrics - Métricas en formato Prometheus
"""

import logging
from fastapi import APIRouter, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Monitoring"])


@router.get(
    "/metrics",
    summary="Prometheus Metrics",
    description="""
    Expone métricas del sistema en formato Prometheus.

    **Métricas disponibles**:
    - `pblab_validations_total` - Verificaciones de integridad por check y resultado
    - `pblab_access_decisions_total` - Decisiones de acceso por operación y decisión
    """,
    response_class=Response,
    responses={
        200: {
            "description": "Métricas en formato Prometheus",
            "content": {
                "text/plain": {
                    "example": """# HELP pblab_validations_total Integrity checks run, by check and outcome
# TYPE pblab_validations_total counter
pblab_validations_total{check="objective",outcome="accepted"} 12.0
pblab_validations_total{check="assessment_integrity",outcome="rejected"} 3.0
"""
                }
            }
        }
    }
)
async def get_metrics() -> Response:
    """
    Expone métricas de Prometheus para scraping.

    Returns:
        Response con métricas en formato text/plain
    """
    metrics_output = generate_latest()
    logger.debug("Exported Prometheus metrics", extra={"size_bytes": len(metrics_output)})
    return Response(content=metrics_output, media_type=CONTENT_TYPE_LATEST)
