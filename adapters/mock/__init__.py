"""
Mock adapters

In-memory implementations for tests.
They follow the same Protocols as the real adapters.
"""

from adapters.mock.notifier import MockNotifier
from adapters.mock.payment_gateway import (
    MockGatewayState,
    MockPaymentGateway,
    MockTransactionFeed,
)

__all__ = [
    "MockPaymentGateway",
    "MockGatewayState",
    "MockTransactionFeed",
    "MockNotifier",
]
