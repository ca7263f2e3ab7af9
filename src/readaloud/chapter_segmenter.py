"""Heuristic chapter segmentation for plain-text books."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Final

from .interfaces import Chapter
from .utils import normalize_newlines

_LOGGER = logging.getLogger(__name__)

MAIN_TEXT_TITLE: Final = "正文"
PROLOGUE_TITLE: Final = "序章/前言"

_CJK_NUMERALS: Final = "零〇一二三四五六七八九十百千万两"

# Heading lines: 第N章/节/回, "N.", "Chapter N", "IV." at a line start.
# The whole line is captured so the title keeps its trailing name.
_HEADING_RE: Final = re.compile(
    r"^[ \t\u3000]*"
    r"(?:第[0-9０-９" + _CJK_NUMERALS + r"]+[章节回]"
    r"|[0-9]+\.(?![0-9])"
    r"|Chapter[ \t]+[0-9]+"
    r"|[IVX]+\.)"
    r"[^\n]*",
    re.MULTILINE,
)


@dataclass(frozen=True)
class HeuristicChapterSegmenter:
    """Split raw text into titled chapters using heading-line heuristics.

    Chapters are ordered by their position in the text; chapter numbers in
    the headings are never parsed or validated. Text with no recognizable
    heading, or headings with nothing between them, comes back as a single
    chapter, so segmentation never fails.
    """

    main_text_title: str = MAIN_TEXT_TITLE
    prologue_title: str = PROLOGUE_TITLE

    def segment(self, text: str) -> list[Chapter]:
        normalized = normalize_newlines(text or "")
        matches = list(_HEADING_RE.finditer(normalized))
        if not matches:
            _LOGGER.debug("No chapter headings found; using a single chapter.")
            return [self._whole_text(normalized)]

        chapters: list[Chapter] = []
        prologue = normalized[: matches[0].start()].strip()
        if prologue:
            chapters.append(Chapter(index=0, title=self.prologue_title, content=prologue))

        for idx, match in enumerate(matches):
            end = matches[idx + 1].start() if idx + 1 < len(matches) else len(normalized)
            content = normalized[match.end() : end].strip()
            if not content:
                _LOGGER.debug("Dropping empty chapter %r", match.group(0).strip())
                continue
            chapters.append(Chapter(index=len(chapters), title=match.group(0).strip(), content=content))

        if not chapters:
            _LOGGER.debug("Headings matched but every chapter was empty; using a single chapter.")
            return [self._whole_text(normalized)]

        _LOGGER.debug("Segmented text into %d chapter(s) from %d heading(s)", len(chapters), len(matches))
        return chapters

    def _whole_text(self, normalized: str) -> Chapter:
        return Chapter(index=0, title=self.main_text_title, content=normalized.strip())


def segment_chapters(text: str) -> list[Chapter]:
    return HeuristicChapterSegmenter().segment(text)
