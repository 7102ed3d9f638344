"""
Documents - Renderer Public API
=================================
"""

from core.documents.renderer.pdf_renderer import render_pdf

__all__ = [
    "render_pdf",
]
