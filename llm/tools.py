import copy

from core.types import DiagnosticIntent

CHECK_MOSES_LOGS = "check_moses_logs"
DEFAULT_MERCHANT_ID = "current_merchant"

DIAGNOSTIC_TOOLS: list[dict] = [
    {
        "type": "function",
        "function": {
            "name": CHECK_MOSES_LOGS,
            "description": (
                "Queries the Moses/Foxtrot logging system to check merchant transaction logs, "
                "success rates (SR), and block statuses."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "queryType": {
                        "type": "string",
                        "enum": [intent.value for intent in DiagnosticIntent],
                        "description": "The type of log analysis to perform based on the user complaint.",
                    },
                    "merchantId": {
                        "type": "string",
                        "description": (
                            f'The merchant identifier (if available, otherwise use "{DEFAULT_MERCHANT_ID}").'
                        ),
                    },
                },
                "required": ["queryType"],
            },
        },
    },
]


def get_tools() -> list[dict]:
    """Return the tool definitions handed to the engine at session start.

    A fresh copy each call, so one session cannot alter another's schema.
    """
    return copy.deepcopy(DIAGNOSTIC_TOOLS)
