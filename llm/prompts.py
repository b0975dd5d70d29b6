from llm.tools import CHECK_MOSES_LOGS

SYSTEM_PROMPT = f"""You are 'PhonePe MerchantBot', a specialized Level 1 Support AI for a Payment Gateway.
Your goal is to diagnose merchant issues by querying the 'Moses' logging tool (via the {CHECK_MOSES_LOGS} tool).

Process:
1. Listen to the merchant's complaint.
2. IF the complaint involves failed transactions, blocks, or integration errors, YOU MUST use the '{CHECK_MOSES_LOGS}' tool to investigate before answering.
3. Interpret the JSON result from Moses and explain it simply to the merchant.
4. If the logs show a critical error (like FRA_BLOCK or INVALID_SIGNATURE), explain the specific reason.
5. Be concise, professional, and empathetic.

Important:
- Call the tool at most once per reply.
- If SR (Success Rate) is 0, it's critical.
- If fra_blocks > 0, tell them they triggered a Risk Rule.
- If last_error_code is 'INVALID_SIGNATURE', tell them to check their secret keys."""

SUMMARY_PROMPT = """Analyze the following chat transcript between a Merchant and the Diagnostic Bot.
Generate a concise "Private Note" for a Level 1 Support Agent (Freshdesk).

Format:
ISSUE: [1 sentence]
DIAGNOSIS: [What did the Moses logs say?]
ACTION: [What should the agent do?]

Transcript:
{transcript}"""


def build_system_prompt(merchant_context: str = "") -> str:
    """Build the session system instruction, optionally naming the merchant."""
    parts = [SYSTEM_PROMPT]

    if merchant_context:
        parts.append(f"\n\n## Merchant\n{merchant_context}")

    return "\n".join(parts)


def build_summary_prompt(transcript: list[dict[str, str]]) -> str:
    history_text = "\n".join(f"{m['role']}: {m['text']}" for m in transcript)
    return SUMMARY_PROMPT.format(transcript=history_text)
