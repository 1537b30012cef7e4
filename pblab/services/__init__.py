"""
Servicios de aplicación

- IndividualAssessmentService: validación + política de acceso + persistencia
"""
from .integrity_service import IndividualAssessmentService

__all__ = ["IndividualAssessmentService"]
