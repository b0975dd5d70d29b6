from unittest.mock import AsyncMock

import pytest

from core.summary import SummaryGenerator, TriageNoteError, parse_triage_note

TRANSCRIPT = [
    {"role": "user", "text": "payments failing"},
    {"role": "model", "text": "checked logs, FRA block found"},
]

NOTE_TEXT = """ISSUE: Merchant reports that payments are failing.
DIAGNOSIS: Moses logs show 42 FRA blocks (RISK_BLOCK_VELOCITY), SR 0%.
ACTION: Review the velocity risk rule with the Risk team and whitelist if appropriate."""


@pytest.mark.asyncio
async def test_summarize_produces_three_sections(mock_llm):
    mock_llm.chat_simple = AsyncMock(return_value=NOTE_TEXT)
    note = await SummaryGenerator(mock_llm).summarize(TRANSCRIPT)

    assert note.issue
    assert note.diagnosis
    assert note.action
    assert note.raw == NOTE_TEXT
    for label in ("ISSUE:", "DIAGNOSIS:", "ACTION:"):
        assert label in note.to_text()


@pytest.mark.asyncio
async def test_summarize_sends_transcript_without_tools(mock_llm):
    mock_llm.chat_simple = AsyncMock(return_value=NOTE_TEXT)
    await SummaryGenerator(mock_llm).summarize(TRANSCRIPT)

    mock_llm.chat_simple.assert_awaited_once()
    mock_llm.chat.assert_not_called()
    messages = mock_llm.chat_simple.call_args.args[0]
    assert len(messages) == 1
    assert "user: payments failing\nmodel: checked logs, FRA block found" in messages[0]["content"]


@pytest.mark.asyncio
async def test_summarize_propagates_engine_errors(mock_llm):
    mock_llm.chat_simple = AsyncMock(side_effect=RuntimeError("quota exceeded"))
    with pytest.raises(RuntimeError, match="quota exceeded"):
        await SummaryGenerator(mock_llm).summarize(TRANSCRIPT)


@pytest.mark.asyncio
async def test_summarize_rejects_malformed_note(mock_llm):
    mock_llm.chat_simple = AsyncMock(return_value="The merchant is unhappy.")
    with pytest.raises(TriageNoteError):
        await SummaryGenerator(mock_llm).summarize(TRANSCRIPT)


@pytest.mark.asyncio
async def test_summarize_rejects_empty_transcript(mock_llm):
    with pytest.raises(ValueError):
        await SummaryGenerator(mock_llm).summarize([])
    mock_llm.chat_simple.assert_not_called()


def test_parse_markdown_labels():
    note = parse_triage_note(
        "**ISSUE:** Payments failing\n**DIAGNOSIS:** INVALID_SIGNATURE on 85 calls\n**ACTION:** Rotate keys"
    )
    assert note.issue == "Payments failing"
    assert note.diagnosis == "INVALID_SIGNATURE on 85 calls"
    assert note.action == "Rotate keys"


def test_parse_multiline_section():
    note = parse_triage_note("ISSUE: Failing payments\nDIAGNOSIS: SR 45%\nGateway timeouts seen\nACTION: Escalate to L2")
    assert note.diagnosis == "SR 45% Gateway timeouts seen"


def test_parse_missing_section_names_it():
    with pytest.raises(TriageNoteError, match="ACTION"):
        parse_triage_note("ISSUE: x\nDIAGNOSIS: y\nACTION:")
