"""
Diff parser — extracts SEARCH/REPLACE change blocks from free-form model
output.

Block grammar (each marker on its own line)::

    <<<<<<< SEARCH
    :line:42
    -------
    code expected verbatim in the buffer
    =======
    code that replaces it
    >>>>>>> REPLACE

The ``:line:`` header (also ``:строка:`` and ``:line:EOF``) is optional and
purely informational.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from .stats import BlockStats, compute_block_stats

logger = logging.getLogger(__name__)

DEFAULT_CODE_LANGUAGES = ("bsl", "1c")

# Patterns
_FENCE_PATTERN = re.compile(r"```.*?```", re.DOTALL)
_BLOCK_PATTERN = re.compile(
    r"^<{7} SEARCH[ \t]*\n"
    r"((?:(?!^<{7} SEARCH).)*?)"
    r"^={7}[ \t]*\n"
    r"(.*?)"
    r"^>{7} REPLACE[ \t]*$",
    re.MULTILINE | re.DOTALL,
)
_BEGIN_PATTERN = re.compile(r"^<{7} SEARCH", re.MULTILINE)
_ARTIFACT_PATTERN = re.compile(r"<{7} SEARCH.*?>{7} REPLACE", re.DOTALL)
_LINE_HEADER_PATTERN = re.compile(
    r"\A:(строка|line):(\d+|EOF)[ \t]*(?:\n[ \t]*)?-+[ \t]*(?:\n|\Z)",
    re.IGNORECASE,
)


class BlockStatus(str, Enum):
    """Review decision for a single change block."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class ResponseType(str, Enum):
    DIFF = "diff"
    FULL = "full"
    UNKNOWN = "unknown"


@dataclass
class ChangeBlock:
    """One SEARCH/REPLACE edit proposal."""
    search_text: str
    replace_text: str
    index: int = 0               # 0-indexed position among blocks of one text
    line_hint: Optional[int] = None  # 1-indexed, informational only
    at_eof: bool = False
    status: BlockStatus = BlockStatus.PENDING
    stats: BlockStats = field(default_factory=BlockStats)

    @property
    def is_rejected(self) -> bool:
        return self.status == BlockStatus.REJECTED


@dataclass
class ParseResult:
    """Blocks recognised in one text plus parse-time diagnostics."""
    blocks: list[ChangeBlock] = field(default_factory=list)
    parse_errors: list[str] = field(default_factory=list)

    @property
    def parse_successful(self) -> bool:
        return len(self.blocks) > 0


def normalize_line_endings(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def strip_fenced_samples(text: str) -> str:
    """Remove ```-fenced samples so illustrative snippets are never parsed."""
    return _FENCE_PATTERN.sub("", text)


class DiffParser:
    """Parse SEARCH/REPLACE blocks from model responses."""

    def parse(self, text: str) -> ParseResult:
        """Parse every complete block in *text*.

        Incomplete or malformed markers (typical of a response that is
        still streaming) are ignored. Parsing is a pure function of the
        input, so reparsing an extended prefix is safe.
        """
        result = ParseResult()
        if not text:
            return result

        clean = strip_fenced_samples(normalize_line_endings(text))
        position = 0

        for match in _BLOCK_PATTERN.finditer(clean):
            position += 1
            raw_search, raw_replace = match.group(1), match.group(2)

            line_hint, at_eof, raw_search = self._extract_line_header(raw_search)
            search = self._trim_block_text(raw_search)
            replace = self._trim_block_text(raw_replace)

            if not search.strip():
                message = f"Block #{position}: empty SEARCH section, ignored"
                result.parse_errors.append(message)
                logger.warning(
                    "[DiffBlocks] Empty SEARCH section in block #%d, "
                    "ignoring to avoid duplicated code", position,
                )
                continue

            result.blocks.append(ChangeBlock(
                search_text=search,
                replace_text=replace,
                index=len(result.blocks),
                line_hint=line_hint,
                at_eof=at_eof,
                stats=compute_block_stats(search, replace),
            ))

        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_line_header(text: str) -> tuple[Optional[int], bool, str]:
        """Strip an optional ``:line:N`` header. Returns (hint, at_eof, rest)."""
        match = _LINE_HEADER_PATTERN.match(text)
        if not match:
            return None, False, text

        rest = text[match.end():]
        value = match.group(2)
        if value.upper() == "EOF":
            return None, True, rest

        hint = int(value)
        if hint < 1:
            logger.debug("[DiffBlocks] Ignoring invalid line hint %d", hint)
            return None, False, rest
        return hint, False, rest

    @staticmethod
    def _trim_block_text(text: str) -> str:
        """Drop one leading and one trailing blank line, keep indentation."""
        lines = text.split("\n")
        # The newline that terminates the last line before a marker
        if len(lines) > 1 and lines[-1] == "":
            lines.pop()
        if lines and not lines[0].strip():
            lines.pop(0)
        if lines and not lines[-1].strip():
            lines.pop()
        return "\n".join(lines)


def parse_diff_blocks(text: str) -> list[ChangeBlock]:
    """Return the change blocks of *text* with indices 0..N-1."""
    return DiffParser().parse(text).blocks


def has_diff_blocks(text: str) -> bool:
    """True if a SEARCH marker survives fence stripping."""
    if not text:
        return False
    clean = strip_fenced_samples(normalize_line_endings(text))
    return _BEGIN_PATTERN.search(clean) is not None


def clean_diff_artifacts(text: str) -> str:
    """Remove all diff blocks, leaving the explanatory prose."""
    return _ARTIFACT_PATTERN.sub("", text).strip()


def code_fence_pattern(languages: Iterable[str]) -> re.Pattern:
    names = "|".join(re.escape(lang) for lang in languages)
    return re.compile(rf"```(?:{names})(.*?)```", re.IGNORECASE | re.DOTALL)


def strip_code_blocks(text: str, languages: Iterable[str] = DEFAULT_CODE_LANGUAGES) -> str:
    """Remove diff blocks and fenced code samples, keep only the text."""
    stripped = _ARTIFACT_PATTERN.sub("", text)
    stripped = code_fence_pattern(languages).sub("", stripped)
    return stripped.strip()


def extract_code_from_response(text: str, language: str = "bsl") -> Optional[str]:
    """Return the first fenced *language* sample, the text itself if it holds
    diff blocks, or None."""
    pattern = re.compile(
        rf"```{re.escape(language)}\s*\n(.*?)\n```", re.IGNORECASE | re.DOTALL
    )
    match = pattern.search(text)
    if match and match.group(1):
        return match.group(1).strip()

    if has_diff_blocks(text):
        return text
    return None


def detect_response_type(
    text: str, languages: Iterable[str] = DEFAULT_CODE_LANGUAGES,
) -> ResponseType:
    """Classify a response as a set of diff blocks, a full module, or neither."""
    if has_diff_blocks(text):
        return ResponseType.DIFF
    if code_fence_pattern(languages).search(text):
        return ResponseType.FULL
    return ResponseType.UNKNOWN
