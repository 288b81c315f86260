"""
Utility modules for shared functionality.
"""
from .rich_text import convert_to_rich_text, rich_text_to_plain, slugify
from .text_extraction import (
    extract_responsibilities,
    extract_achievements,
    extract_skills,
    merge_unique,
)
from .delivery_cache import WebhookDeliveryCache

__all__ = [
    "convert_to_rich_text",
    "rich_text_to_plain",
    "slugify",
    "extract_responsibilities",
    "extract_achievements",
    "extract_skills",
    "merge_unique",
    "WebhookDeliveryCache",
]
