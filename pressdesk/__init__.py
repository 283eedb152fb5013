"""
pressdesk - bilingual (English/Chinese) PR report studio.

Entries (notes + photos) go in, Gemini synthesizes a bilingual report,
the report is edited, published and served from a local gallery.
"""

__version__ = "0.3.0"
