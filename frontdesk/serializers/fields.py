import html

import bleach


def plain_text(value) -> str:
    """Drop every tag but keep ``&``, ``<`` and ``>`` typed as text."""
    return html.unescape(bleach.clean((value or '').strip(), tags=set(), strip=True)).strip()
