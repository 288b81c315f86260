"""
Rich text and slug helpers for synced records.
"""
import re
from typing import Optional

from src.models.records import RichText, RichTextBlock, RichTextLeaf, RichTextRoot


def convert_to_rich_text(text: Optional[str]) -> RichText:
    """
    Convert free text into a block document.

    Paragraphs are separated by blank lines; each non-empty paragraph
    becomes one `paragraph` block. Empty or missing text yields a root
    with no children.

    Args:
        text: Plain text, possibly None

    Returns:
        RichText: Block document
    """
    if not text:
        return RichText()

    paragraphs = re.split(r'\n\s*\n', text.replace('\r\n', '\n'))
    blocks = [
        RichTextBlock(children=[RichTextLeaf(text=paragraph.strip())])
        for paragraph in paragraphs
        if paragraph.strip()
    ]
    return RichText(root=RichTextRoot(children=blocks))


def rich_text_to_plain(document: Optional[RichText]) -> str:
    """Flatten a block document back to blank-line separated text."""
    if document is None:
        return ""
    return "\n\n".join(
        "".join(leaf.text for leaf in block.children)
        for block in document.root.children
    )


def slugify(value: Optional[str], fallback: str = "job") -> str:
    """Lowercase, hyphen separated, ascii-alphanumeric slug."""
    slug = re.sub(r'[^a-z0-9-]', '', (value or "").lower().strip().replace(' ', '-'))
    slug = re.sub(r'-+', '-', slug).strip('-')
    return slug or fallback
