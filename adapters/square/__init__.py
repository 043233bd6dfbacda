"""
Square adapter

Card capture and payment feed over the Square Payments API.
"""

from adapters.square.rest_client import SquareApiError, SquareRestClient

__all__ = [
    "SquareRestClient",
    "SquareApiError",
]
