import logging
import re

from core.types import TriageNote
from llm.client import LLMClient
from llm.prompts import build_summary_prompt

logger = logging.getLogger(__name__)

SECTIONS = ("ISSUE", "DIAGNOSIS", "ACTION")

# Tolerates markdown emphasis around the label, e.g. "**ISSUE:**"
_SECTION_RE = re.compile(
    r"^[\s*_#>-]*(ISSUE|DIAGNOSIS|ACTION)[\s*_]*:[\s*_]*(.*)$",
    re.IGNORECASE | re.MULTILINE,
)


class TriageNoteError(ValueError):
    """The engine's summary did not contain all three sections."""


def parse_triage_note(text: str) -> TriageNote:
    sections: dict[str, list[str]] = {}
    current: str | None = None
    for line in text.splitlines():
        match = _SECTION_RE.match(line)
        if match:
            current = match.group(1).upper()
            sections[current] = [match.group(2).strip()]
        elif current and line.strip():
            sections[current].append(line.strip())

    values = {name: " ".join(part for part in sections.get(name, []) if part).strip() for name in SECTIONS}
    missing = [name for name in SECTIONS if not values[name]]
    if missing:
        raise TriageNoteError(f"summary is missing {', '.join(missing)}")

    return TriageNote(
        issue=values["ISSUE"],
        diagnosis=values["DIAGNOSIS"],
        action=values["ACTION"],
        raw=text,
    )


class SummaryGenerator:
    """Turns a finished conversation into a private note for a human agent.

    Unlike the chat path, failures here are raised to the caller: a ticket
    must not be created with a broken note.
    """

    def __init__(self, llm_client: LLMClient):
        self.llm = llm_client

    async def summarize(self, transcript: list[dict[str, str]]) -> TriageNote:
        if not transcript:
            raise ValueError("cannot summarize an empty transcript")

        prompt = build_summary_prompt(transcript)
        text = await self.llm.chat_simple([{"role": "user", "content": prompt}])
        note = parse_triage_note(text)
        logger.info("Generated triage note: %s", note.issue)
        return note
