"""Pagination classes shared by the list endpoints."""

from __future__ import annotations

from rest_framework.pagination import PageNumberPagination


class StandardResultsSetPagination(PageNumberPagination):
    """Page-number pagination with a client-tunable ``page_size`` (capped)."""

    page_size = 20
    page_size_query_param = "page_size"
    max_page_size = 100
