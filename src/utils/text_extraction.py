"""
Heuristic extraction from free-text candidate data.

Experience descriptions in JobAdder are usually plain text with a
"Responsibilities:" / "Achievements:" heading followed by bullet lines.
Resumes are scanned against a fixed skill vocabulary.
"""
from typing import Iterable, Optional

from src.config import SKILL_VOCABULARY

BULLET_PREFIXES = ("•", "-", "*")

RESPONSIBILITY_MARKERS = ("responsibilities", "duties")
ACHIEVEMENT_MARKERS = ("achievements", "accomplishments")


def _is_marker(line: str, markers: Iterable[str]) -> bool:
    lowered = line.lower()
    return any(marker in lowered for marker in markers)


def _bullet_text(line: str) -> Optional[str]:
    for prefix in BULLET_PREFIXES:
        if line.startswith(prefix):
            text = line[len(prefix):].strip()
            return text or None
    return None


def _extract_section(
    description: Optional[str],
    open_markers: tuple[str, ...],
    close_markers: tuple[str, ...],
) -> list[str]:
    if not description:
        return []

    items: list[str] = []
    in_section = False
    for raw_line in description.splitlines():
        line = raw_line.strip()
        bullet = _bullet_text(line)

        # Headings are non-bullet lines; a bullet mentioning "duties" is content
        if bullet is None and _is_marker(line, open_markers):
            in_section = True
            continue

        if in_section and (not line or (bullet is None and _is_marker(line, close_markers))):
            in_section = False
            continue

        if in_section and bullet:
            items.append(bullet)

    return items


def extract_responsibilities(description: Optional[str]) -> list[str]:
    """
    Collect bullet lines following a "Responsibilities" or "Duties" marker.

    The section ends at a blank line or an "Achievements"/"Accomplishments"
    marker.

    Example:
        >>> extract_responsibilities("Responsibilities:\\n• Design APIs\\n• Review code")
        ['Design APIs', 'Review code']
    """
    return _extract_section(description, RESPONSIBILITY_MARKERS, ACHIEVEMENT_MARKERS)


def extract_achievements(description: Optional[str]) -> list[str]:
    """Collect bullet lines following an "Achievements" or "Accomplishments" marker."""
    return _extract_section(description, ACHIEVEMENT_MARKERS, RESPONSIBILITY_MARKERS)


def extract_skills(text: Optional[str], vocabulary: Optional[list[str]] = None) -> list[str]:
    """Vocabulary skills found in text (case-insensitive substring match), in vocabulary order."""
    if not text:
        return []
    lowered = text.lower()
    return [skill for skill in (vocabulary or SKILL_VOCABULARY) if skill.lower() in lowered]


def merge_unique(*groups: Optional[Iterable[str]]) -> list[str]:
    """Concatenate groups, dropping blanks and case-insensitive duplicates, keeping first-seen order."""
    seen: set[str] = set()
    merged: list[str] = []
    for group in groups:
        for item in group or []:
            key = item.strip().lower() if item else ""
            if not key or key in seen:
                continue
            seen.add(key)
            merged.append(item.strip())
    return merged
