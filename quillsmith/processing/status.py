"""
Document status transitions.

The thresholds are product heuristics and are kept here as named constants.
"""

from quillsmith.storage.models import ContentStatus, QualityDimensions

MEETS_TARGETS_THRESHOLD = 8.5
NEEDS_IMPROVEMENT_THRESHOLD = 7.0


def determine_status(scores: QualityDimensions) -> ContentStatus:
    """Map a score vector to the document's next status."""
    average = scores.average()
    if average >= MEETS_TARGETS_THRESHOLD:
        return ContentStatus.MEETS_TARGETS
    if average >= NEEDS_IMPROVEMENT_THRESHOLD:
        return ContentStatus.NEEDS_IMPROVEMENT
    return ContentStatus.NEEDS_REVIEW
