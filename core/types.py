"""
Type definitions

Enums shared across the engine, adapters and web layer.
Every Enum inherits from str so it serialises as a plain string.
"""

from enum import Enum


class PaymentMethod(str, Enum):
    """How a payment was made"""

    CASH = "cash"
    CHECK = "check"
    CARD = "card"


class PaymentStatus(str, Enum):
    """Payment status"""

    COMPLETED = "completed"
    PARTIALLY_REFUNDED = "partially_refunded"
    REFUNDED = "refunded"
    VOIDED = "voided"


class ReconciliationState(str, Enum):
    """Processor transaction reconciliation state

    unlinked -> linked -> reconciled
    """

    UNLINKED = "unlinked"
    LINKED = "linked"
    RECONCILED = "reconciled"


class ProcessorStatus(str, Enum):
    """Status reported by the card processor"""

    APPROVED = "APPROVED"
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"
    FAILED = "FAILED"


class Role(str, Enum):
    """Caller role inside a unit (already authenticated upstream)"""

    ADMIN = "admin"
    TREASURER = "treasurer"
    LEADER = "leader"
    PARENT = "parent"
    SCOUT = "scout"


class FundraiserType(str, Enum):
    """Fundraiser kind, selects the income account a funds credit comes from"""

    POPCORN = "popcorn"
    CAMP_CARDS = "camp_cards"
    GENERAL = "general"


class SquareEnvironment(str, Enum):
    """Square environment"""

    SANDBOX = "sandbox"
    PRODUCTION = "production"
