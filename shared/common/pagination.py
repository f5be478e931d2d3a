# shared/common/pagination.py
"""
Page Envelope for API Listings

Listings are paged by the domain services; views wrap a page with
``build_page_envelope`` so every listing has the same shape.
"""

from collections import OrderedDict
from typing import Any


def build_page_envelope(count: int, page: int, page_size: int, results: Any) -> OrderedDict:
    """Wrap one page of ``results`` out of ``count`` items."""
    total_pages = (count + page_size - 1) // page_size if page_size else 0
    return OrderedDict([
        ('success', True),
        ('count', count),
        ('total_pages', total_pages),
        ('current_page', page),
        ('page_size', page_size),
        ('results', results),
    ])
