from typing import Any

from core.types import DiagnosticIntent, DiagnosticResult, HealthStatus

# Per-intent FQL filters; the backend treats the body as opaque.
INTENT_FILTERS: dict[DiagnosticIntent, list[dict[str, Any]]] = {
    DiagnosticIntent.TRANSACTION_STATS: [
        {"field": "eventType", "operator": "in", "values": ["PAYMENT_INIT", "PAYMENT_COMPLETE"]},
    ],
    DiagnosticIntent.FRA_BLOCKS: [
        {"field": "eventType", "operator": "equals", "value": "RISK_BLOCK"},
    ],
    DiagnosticIntent.INTEGRATION_HEALTH: [
        {"field": "eventType", "operator": "equals", "value": "API_CALL"},
    ],
}

FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "sr": ("sr", "success_rate", "successRate"),
    "fra_blocks": ("fra_blocks", "fraBlocks"),
    "api_failures": ("api_failures", "apiFailures"),
    "last_error_code": ("last_error_code", "lastErrorCode"),
    "status": ("status",),
}


def build_fql_query(merchant_id: str, intent: DiagnosticIntent, lookback_minutes: int) -> dict[str, Any]:
    return {
        "opcode": "group",
        "intent": intent.value,
        "table": "payments",
        "filters": [
            {"field": "merchantId", "operator": "equals", "value": merchant_id},
            {"field": "time", "operator": "last", "duration": f"{lookback_minutes}m"},
            *INTENT_FILTERS[intent],
        ],
    }


def _pick(payload: dict[str, Any], name: str) -> Any:
    for key in FIELD_ALIASES[name]:
        if payload.get(key) is not None:
            return payload[key]
    return None


def _as_int(value: Any, low: int = 0, high: int | None = None) -> int:
    if value is None:
        return low
    try:
        number = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        return low
    number = max(low, number)
    if high is not None:
        number = min(high, number)
    return number


def map_response(payload: Any) -> DiagnosticResult:
    """Map an analytics response onto DiagnosticResult, defaulting field by field.

    Accepts the result at the top level or inside a ``data``/``result``
    envelope, and tolerates camelCase keys. Missing success rate and
    counters become 0, a missing error code stays None, and a missing or
    unrecognised status becomes WARNING.
    """
    if not isinstance(payload, dict):
        payload = {}
    for envelope in ("data", "result"):
        if isinstance(payload.get(envelope), dict):
            payload = payload[envelope]
            break

    error_code = _pick(payload, "last_error_code")
    raw_status = _pick(payload, "status")
    try:
        status = HealthStatus(str(raw_status).upper()) if raw_status is not None else HealthStatus.WARNING
    except ValueError:
        status = HealthStatus.WARNING

    return DiagnosticResult(
        sr=_as_int(_pick(payload, "sr"), high=100),
        fra_blocks=_as_int(_pick(payload, "fra_blocks")),
        api_failures=_as_int(_pick(payload, "api_failures")),
        last_error_code=str(error_code) if error_code is not None else None,
        status=status,
    )
