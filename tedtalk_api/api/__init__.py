"""
TED Talk API - API Module

Shared API utilities: the response envelope used by read endpoints.
"""

from .response import ApiResponse, ResponseMeta, api_response

__all__ = [
    "ApiResponse",
    "ResponseMeta",
    "api_response",
]
