"""Text cleanup for submitted résumés and job descriptions.

Unlike search normalization this keeps case, markup-like text such as
``List<String>`` and paragraph breaks: the stored text is what the scoring
prompt embeds.
"""
from __future__ import annotations

import re
import unicodedata


def normalize_punctuation(text: str) -> str:
    """Normalize common punctuation variations."""
    # Replace smart quotes
    text = text.replace('“', '"').replace('”', '"')
    text = text.replace('‘', "'").replace('’', "'")

    # Normalize dashes
    text = text.replace('–', '-').replace('—', '-')

    return text


def normalize_whitespace(text: str) -> str:
    """Collapse spaces within lines and runs of blank lines; trim."""
    text = text.replace('\r\n', '\n').replace('\r', '\n')
    lines = [re.sub(r'[ \t\f\v]+', ' ', line).strip() for line in text.split('\n')]
    text = '\n'.join(lines)
    text = re.sub(r'\n{3,}', '\n\n', text)
    return text.strip()


def clean_text(text: str | None) -> str:
    """Cleanup applied to résumé and job description text before storage.

    Only punctuation and whitespace change; angle brackets and anything
    between them are kept as written.

    Returns:
        Cleaned text ("" for empty input)
    """
    if not text or not text.strip():
        return ""

    text = unicodedata.normalize('NFC', text)
    text = normalize_punctuation(text)
    return normalize_whitespace(text)
