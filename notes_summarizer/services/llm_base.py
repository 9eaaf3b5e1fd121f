"""
Notes Summarizer - Summarizer Interface
=========================================

What:  Abstract base class for LLM-backed summarizers, plus the prompt and the
       reply parser every implementation shares.
How:   Concrete implementations send `build_prompt(text)` to their provider and
       hand the raw reply to `parse_summary_reply()`.
Who:   SummaryService depends on the Summarizer interface only; tests inject a
       fake subclass.

Reply contract:
    The prompt asks for a line "Summary", a paragraph, a line "Key Points",
    then numbered lines (1., 1.1, 1.2.1 ...). The parser relies only on the
    literal "Key Points" marker; numbering is kept as written and is never
    validated or renumbered.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List

from notes_summarizer.exceptions import InvalidAIResponseError

SUMMARY_MARKER = "Summary"
KEY_POINTS_MARKER = "Key Points"

SUMMARY_PROMPT = """
You are a professional note summarizer. Convert any text into clear, concise, and highly professional study notes. Follow these rules exactly:

1. Produce a Summary paragraph:
   - Start directly with the word "Summary" on its own line.
   - Write the main ideas clearly and professionally.
   - Keep sentences concise and easy to understand.
   - Do not include extra symbols, markdown characters, or unnecessary headings.
   - Do not use bold, italics, asterisks, bullets, or hashes anywhere.

2. Produce Key Points in a numbered, hierarchical format:
   - Start directly with the word "Key Points" on its own line.
   - Use numbers for main points (1., 2., 3., ...).
   - For sub-points, use nested numbering (1.1, 1.2, 1.2.1, 1.2.2, ...) to indicate hierarchy.
   - Indent each level of sub-points by two spaces per level.
   - Each point must be short, meaningful, and directly from the text.
   - Do not use bold, italics, asterisks, bullets, or hashes anywhere.

3. Do not add any introductory text like "Here are the summaries" or "Based on your text".

Text to summarize:
{text}
"""


def build_prompt(text: str) -> str:
    # str.replace rather than str.format: user text may contain braces.
    return SUMMARY_PROMPT.replace("{text}", text)


@dataclass
class SummaryResult:
    summary: str
    key_points: List[str] = field(default_factory=list)


def _strip_leading_colon(section: str) -> str:
    section = section.strip()
    if section.startswith(":"):
        section = section[1:]
    return section.strip()


def parse_summary_reply(raw: str) -> SummaryResult:
    """
    Split a model reply into summary and key points.

    - Everything before the first "Key Points" marker, with the first
      "Summary" marker removed, is the summary.
    - Everything after it is split into lines; each line is trimmed and
      blank lines are dropped. Order is preserved.
    - A colon directly after either marker ("Summary:") is tolerated.

    Raises:
        InvalidAIResponseError if the summary section is empty.
    """
    raw = raw or ""
    summary_part, _, key_points_part = raw.partition(KEY_POINTS_MARKER)

    summary = _strip_leading_colon(summary_part.replace(SUMMARY_MARKER, "", 1))
    if not summary:
        raise InvalidAIResponseError(
            context={"reply_length": len(raw), "has_key_points_marker": bool(key_points_part)}
        )

    key_points = [
        line.strip()
        for line in _strip_leading_colon(key_points_part).splitlines()
        if line.strip()
    ]
    return SummaryResult(summary=summary, key_points=key_points)


class Summarizer(ABC):
    """
    Abstract interface for text summarization providers.

    Contract:
        - summarize() makes exactly one provider call; no retries, no chunking
        - provider failures surface as SummarizerError with a classified cause
        - an unusable reply surfaces as InvalidAIResponseError
    """

    @abstractmethod
    async def summarize(self, text: str) -> SummaryResult:
        """
        Summarize text into a short paragraph and ordered key points.

        Raises:
            SummarizerError: provider call failed (see `cause`)
            InvalidAIResponseError: provider replied without a summary
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Lightweight reachability check that does not consume generation quota."""
        ...
