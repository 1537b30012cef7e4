"""
Excepciones personalizadas para la API REST

El core devuelve las violaciones como datos (ValidationResult); la capa de
servicio las convierte en estas excepciones cuando una operación se rechaza.
"""
from typing import Any, Dict, Optional

from fastapi import HTTPException, status

from ..core.validation import ValidationResult


class PBLabAPIException(HTTPException):
    """Excepción base para la API de PBLab"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        headers: Optional[Dict[str, str]] = None,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code
        self.extra = extra or {}


class RecordNotFoundError(PBLabAPIException):
    """Registro no encontrado"""

    def __init__(self, record_kind: str, record_id: Optional[str]):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{record_kind.capitalize()} '{record_id}' not found",
            error_code="RECORD_NOT_FOUND",
            extra={"record_kind": record_kind, "record_id": record_id}
        )


class IntegrityViolationError(PBLabAPIException):
    """Registro rechazado por el IntegrityValidator"""

    def __init__(self, result: ValidationResult, message: str = "Individual assessment integrity violated"):
        super().__init__(
            status_code=422,  # Unprocessable Content
            detail=message,
            error_code="INTEGRITY_VIOLATION",
            extra={"errors": list(result.errors), "warnings": list(result.warnings)}
        )
        self.result = result


class AccessDeniedError(PBLabAPIException):
    """Operación denegada por la política de acceso"""

    def __init__(self, reason: str, operation: str):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Access denied: {reason}",
            error_code="ACCESS_DENIED",
            extra={"reason": reason, "operation": operation}
        )


class InvalidTransitionError(PBLabAPIException):
    """Transición de estado no permitida"""

    def __init__(self, current: str, target: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot move learning objective from '{current}' to '{target}'",
            error_code="INVALID_TRANSITION",
            extra={"current": current, "target": target}
        )


class DatabaseOperationError(PBLabAPIException):
    """Error en operación de base de datos"""

    def __init__(self, operation: str, details: Optional[str] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Database operation failed: {operation}",
            error_code="DATABASE_ERROR",
            extra={"operation": operation, "details": details}
        )


class AuthenticationError(PBLabAPIException):
    """Error de autenticación"""

    def __init__(self, detail: str = "Missing or invalid identity"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="AUTHENTICATION_FAILED",
        )
