"""
Documents - Public API
========================
Deterministic report rendering for closure summaries.
"""

from core.documents.renderer import render_pdf

__all__ = [
    "render_pdf",
]
