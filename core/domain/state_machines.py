"""
State Machines

State transitions for processor transaction reconciliation and payments.
"""

import logging
from enum import Enum

from core.types import PaymentStatus, ReconciliationState

logger = logging.getLogger(__name__)


class StateMachineError(Exception):
    """Transition not allowed"""
    pass


class StateMachine:
    """State machine base class

    Args:
        initial_state: starting state
        transitions: allowed transitions {from_state: [to_states]}
        name: machine name (for logs)
    """

    def __init__(
        self,
        initial_state: str | Enum,
        transitions: dict[str, list[str]],
        name: str = "StateMachine",
    ):
        self._state = initial_state.value if isinstance(initial_state, Enum) else initial_state
        self._transitions = transitions
        self._name = name
        self._history: list[tuple[str, str]] = []

    @property
    def state(self) -> str:
        """Current state"""
        return self._state

    def can_transition(self, to_state: str | Enum) -> bool:
        """Whether a transition to to_state is allowed"""
        target = to_state.value if isinstance(to_state, Enum) else to_state
        allowed = self._transitions.get(self._state, [])
        return target in allowed

    def transition(self, to_state: str | Enum) -> str:
        """Move to a new state

        Args:
            to_state: target state

        Returns:
            the new state

        Raises:
            StateMachineError: transition not allowed
        """
        target = to_state.value if isinstance(to_state, Enum) else to_state

        if not self.can_transition(target):
            allowed = self._transitions.get(self._state, [])
            raise StateMachineError(
                f"{self._name}: Cannot transition from {self._state} to {target}. "
                f"Allowed: {allowed}"
            )

        old_state = self._state
        self._state = target
        self._history.append((old_state, target))

        logger.debug(f"{self._name}: {old_state} → {target}")

        return target

    @property
    def history(self) -> list[tuple[str, str]]:
        """Transition history"""
        return self._history.copy()


class ReconciliationStateMachine(StateMachine):
    """Processor transaction reconciliation

    Transitions:
    - UNLINKED → LINKED: scout account assigned (by a person or an email match)
    - LINKED → UNLINKED: assignment withdrawn before reconciling
    - LINKED → RECONCILED: Payment + JournalEntry created

    RECONCILED is terminal.
    """

    TRANSITIONS: dict[str, list[str]] = {
        ReconciliationState.UNLINKED.value: [ReconciliationState.LINKED.value],
        ReconciliationState.LINKED.value: [
            ReconciliationState.UNLINKED.value,
            ReconciliationState.RECONCILED.value,
        ],
        ReconciliationState.RECONCILED.value: [],
    }

    def __init__(
        self,
        initial_state: str | ReconciliationState = ReconciliationState.UNLINKED,
        name: str = "Reconciliation",
    ):
        super().__init__(initial_state, self.TRANSITIONS, name)

    @property
    def is_reconciled(self) -> bool:
        return self._state == ReconciliationState.RECONCILED.value


class PaymentStatusMachine(StateMachine):
    """Payment lifecycle

    Transitions:
    - COMPLETED → PARTIALLY_REFUNDED / REFUNDED: refund recorded
    - PARTIALLY_REFUNDED → PARTIALLY_REFUNDED / REFUNDED: further refunds
    - COMPLETED → VOIDED: manual payment reversed

    REFUNDED and VOIDED are terminal. A payment with any refund on file
    can no longer be voided.
    """

    TRANSITIONS: dict[str, list[str]] = {
        PaymentStatus.COMPLETED.value: [
            PaymentStatus.PARTIALLY_REFUNDED.value,
            PaymentStatus.REFUNDED.value,
            PaymentStatus.VOIDED.value,
        ],
        PaymentStatus.PARTIALLY_REFUNDED.value: [
            PaymentStatus.PARTIALLY_REFUNDED.value,
            PaymentStatus.REFUNDED.value,
        ],
        PaymentStatus.REFUNDED.value: [],
        PaymentStatus.VOIDED.value: [],
    }

    def __init__(
        self,
        initial_state: str | PaymentStatus = PaymentStatus.COMPLETED,
        name: str = "Payment",
    ):
        super().__init__(initial_state, self.TRANSITIONS, name)

    @property
    def is_terminal(self) -> bool:
        return not self.TRANSITIONS[self._state]
