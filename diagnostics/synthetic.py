import random

from core.types import DiagnosticIntent, DiagnosticResult, HealthStatus

# Canned results used in mock mode and whenever the live query fails.
FRA_BLOCK_RESULT = DiagnosticResult(
    sr=0,
    fra_blocks=42,
    api_failures=0,
    last_error_code="RISK_BLOCK_VELOCITY",
    status=HealthStatus.CRITICAL,
)

INTEGRATION_RESULT = DiagnosticResult(
    sr=15,
    fra_blocks=0,
    api_failures=85,
    last_error_code="INVALID_SIGNATURE",
    status=HealthStatus.WARNING,
)

HEALTHY_STATS_RESULT = DiagnosticResult(
    sr=98,
    fra_blocks=0,
    api_failures=1,
    last_error_code=None,
    status=HealthStatus.HEALTHY,
)

DEGRADED_STATS_RESULT = DiagnosticResult(
    sr=45,
    fra_blocks=2,
    api_failures=50,
    last_error_code="GATEWAY_TIMEOUT",
    status=HealthStatus.WARNING,
)


def synthetic_result(intent: DiagnosticIntent, rng: random.Random) -> DiagnosticResult:
    """Deterministic per intent, except transaction stats which flip a fair coin."""
    if intent == DiagnosticIntent.FRA_BLOCKS:
        return FRA_BLOCK_RESULT
    if intent == DiagnosticIntent.INTEGRATION_HEALTH:
        return INTEGRATION_RESULT
    is_healthy = rng.random() > 0.5
    return HEALTHY_STATS_RESULT if is_healthy else DEGRADED_STATS_RESULT
