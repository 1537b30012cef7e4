"""
Prometheus metrics para validación y control de acceso

Los componentes del core son puros; los contadores se incrementan desde la
capa de servicio, que es la que conoce el resultado final de cada operación.
"""
from prometheus_client import Counter

validations_total = Counter(
    "pblab_validations_total",
    "Integrity checks run, by check and outcome",
    ["check", "outcome"],
)

access_decisions_total = Counter(
    "pblab_access_decisions_total",
    "Access policy decisions, by operation and decision",
    ["operation", "decision"],
)


def record_validation(check: str, is_valid: bool) -> None:
    validations_total.labels(check=check, outcome="accepted" if is_valid else "rejected").inc()


def record_access_decision(operation: str, allowed: bool) -> None:
    access_decisions_total.labels(operation=operation, decision="allow" if allowed else "deny").inc()
