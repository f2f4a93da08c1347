"""
Integrity checks for AI-improved content.

Sanitises completion responses (provider error passthrough, preambles,
lost frontmatter), enforces the length-ratio policy and reports advisory
integrity findings.
"""

import logging
import re
from typing import Optional

from quillsmith.processing.chunker import HEADER_PATTERN, extract_frontmatter
from quillsmith.processing.models import IntegrityViolation, LengthCheck
from quillsmith.services.llm.classifier import error_from_text, is_provider_error_text
from quillsmith.utils.exceptions import EmptyOutputError, SuspiciouslyShortOutputError
from quillsmith.utils.logging import get_logger

module_logger = get_logger(__name__)

MIN_LENGTH_RATIO = 0.70
WARN_LENGTH_RATIO = 0.85
MAX_LENGTH_RATIO = 1.20

PREAMBLE_PATTERNS = [
    re.compile(r"^I'll help.*?\n\n", re.IGNORECASE),
    re.compile(r"^Here's the improved.*?\n\n", re.IGNORECASE),
    re.compile(r"^Let me.*?\n\n", re.IGNORECASE),
    re.compile(r"^I've improved.*?\n\n", re.IGNORECASE),
    re.compile(r"^Below is.*?\n\n", re.IGNORECASE),
    re.compile(r"^The improved.*?\n\n", re.IGNORECASE),
]


def strip_preamble(text: str) -> tuple[str, Optional[str]]:
    """Remove the first matching preamble. Returns the text and the pattern used."""
    for pattern in PREAMBLE_PATTERNS:
        if pattern.match(text):
            return pattern.sub("", text, count=1), pattern.pattern
    return text, None


def restore_frontmatter(original: str, improved: str) -> str:
    """Re-prepend the original frontmatter if the response dropped it."""
    frontmatter = extract_frontmatter(original)
    # Responses arrive stripped, so a frontmatter-only reply lacks its final newline
    if frontmatter is None or extract_frontmatter(improved + "\n") is not None:
        return improved
    return frontmatter + "\n" + improved.lstrip("\n")


def sanitize_response(
    original: str,
    response: str,
    logger: Optional[logging.Logger] = None,
) -> str:
    """
    Clean a completion response into document text.

    Raises:
        EmptyOutputError: If nothing usable was returned
        AIProviderError: If the response is a provider error report
    """
    logger = logger or module_logger

    text = (response or "").strip()
    if not text:
        logger.error("AI returned empty content")
        raise EmptyOutputError()

    if is_provider_error_text(text):
        error = error_from_text(text)
        logger.error(f"Provider returned an error instead of content: {error.code}")
        raise error

    text, pattern = strip_preamble(text)
    if pattern:
        logger.info(f"Removed preamble matching {pattern}")

    restored = restore_frontmatter(original, text)
    if restored != text:
        logger.warning("Response dropped the frontmatter, restored it from the original")
    return restored


def validate_length_ratio(
    original_length: int,
    final_length: int,
    logger: Optional[logging.Logger] = None,
) -> LengthCheck:
    """
    Apply the length policy to improved text.

    Raises:
        SuspiciouslyShortOutputError: If the result is under 70% of the original
    """
    logger = logger or module_logger
    ratio = final_length / original_length if original_length else 1.0
    check = LengthCheck(
        original_length=original_length, final_length=final_length, ratio=ratio
    )

    if final_length == 0:
        raise EmptyOutputError()
    if ratio < MIN_LENGTH_RATIO:
        logger.error(
            f"Improved content too short: {final_length} vs {original_length} chars "
            f"({ratio:.0%})"
        )
        raise SuspiciouslyShortOutputError(original_length, final_length, ratio)
    if ratio < WARN_LENGTH_RATIO:
        check.warning = (
            f"Improved content is {ratio:.0%} of the original length "
            f"({final_length} vs {original_length} chars)"
        )
        logger.warning(check.warning)
    elif ratio > MAX_LENGTH_RATIO:
        check.note = (
            f"Improved content grew to {ratio:.0%} of the original length "
            f"({final_length} vs {original_length} chars)"
        )
        logger.info(check.note)
    return check


class IntegrityChecker:
    """
    Advisory scan for artifacts that should never ship in a document.

    Findings are reported, not enforced.
    """

    VIOLATION_PATTERNS = {
        "truncation": [
            (r"\[Content truncated due to length limit[^\]]*\]", "Output token limit truncation marker"),
            (r"\[Content continues\.\.\.\]", "Continuation marker suggesting incomplete output"),
            (r"\[Continue with remaining sections[^\]]*\]", "Truncation with a promise to continue"),
            (r"\[Remaining content[^\]]*\]", "Reference to missing remaining content"),
            (r"\[The rest of the content[^\]]*\]", "Reference to content that is not present"),
            (r"\[Content shortened for brevity[^\]]*\]", "Content shortened instead of improved"),
        ],
        "commentary": [
            (r"^(Here's|Here is) (the|an?) improved", "AI commentary about the improvement"),
            (r"^I('ve| have) (improved|enhanced|updated)", "First-person AI commentary"),
            (r"^(Below is|The following is) the improved", "AI introduction to the content"),
            (r"^Based on the analysis", "AI explaining its reasoning"),
            (r"^(Let me|I'll) (improve|enhance|update)", "AI announcing what it will do"),
        ],
        "meta": [
            (r"\*\*AI Note:\*\*", "AI note left in the content"),
        ],
        "placeholder": [
            (r"\[TODO[^\]]*\]", "TODO placeholder"),
            (r"\[PLACEHOLDER[^\]]*\]", "Explicit placeholder"),
            (r"\[INSERT[^\]]*\]", "Insert instruction placeholder"),
            (r"\[Your[^\]]*here\]", "User input placeholder"),
            (r"\[FIXME[^\]]*\]", "FIXME marker"),
        ],
    }

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or module_logger
        self._compiled = {
            kind: [(re.compile(p, re.IGNORECASE | re.MULTILINE), msg) for p, msg in patterns]
            for kind, patterns in self.VIOLATION_PATTERNS.items()
        }

    def check(self, text: str) -> list[IntegrityViolation]:
        violations: list[IntegrityViolation] = []

        for kind, patterns in self._compiled.items():
            for pattern, message in patterns:
                for match in pattern.finditer(text):
                    line_number = text.count("\n", 0, match.start()) + 1
                    violations.append(
                        IntegrityViolation(kind=kind, message=f"{message} (line {line_number})")
                    )

        if text.count("```") % 2:
            violations.append(
                IntegrityViolation(
                    kind="structure",
                    message="Unclosed code block (odd number of ``` markers)",
                )
            )

        if text.startswith("---") and text.find("---", 3) == -1:
            violations.append(
                IntegrityViolation(kind="structure", message="Frontmatter opened but never closed")
            )

        lines = text.split("\n")
        for i, line in enumerate(lines):
            if not HEADER_PATTERN.match(line):
                continue
            following = [l for l in lines[i + 1:i + 3] if l.strip()]
            if not following or HEADER_PATTERN.match(following[0]):
                violations.append(
                    IntegrityViolation(
                        kind="structure",
                        message=f'Header "{line.strip()}" has no content',
                        severity="info",
                    )
                )

        return violations

    def new_violations(self, original: str, improved: str) -> list[IntegrityViolation]:
        """Findings in ``improved`` whose kind and marker text were absent from ``original``."""
        existing = {(v.kind, v.message.split(" (line ")[0]) for v in self.check(original)}
        found = [
            v for v in self.check(improved)
            if (v.kind, v.message.split(" (line ")[0]) not in existing
        ]
        for violation in found:
            self.logger.warning(f"Integrity finding [{violation.kind}]: {violation.message}")
        return found
