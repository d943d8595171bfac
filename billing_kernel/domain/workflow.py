"""
Canonical workflow types (``billing_kernel.domain.workflow``).

Responsibility
--------------
Value objects for the document state machines. Quotes, invoices and cost
records each declare one ``Workflow``; every status change in the engines
goes through ``Workflow.require()`` so an action that is not in the table is
rejected with ``InvalidTransitionError`` and never applied.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects. ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions.
"""

from __future__ import annotations

from dataclasses import dataclass

from billing_kernel.exceptions import InvalidTransitionError


@dataclass(frozen=True)
class Guard:
    """A condition that must hold before a transition fires.

    Descriptive only; the owning engine evaluates it.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow."""
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle."""
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"{self.name}: initial state {self.initial_state} not in states"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"{self.name}: transition {t.action} "
                    f"{t.from_state}->{t.to_state} references unknown state"
                )
            if t.from_state in self.terminal_states:
                raise ValueError(
                    f"{self.name}: terminal state {t.from_state} has outgoing "
                    f"transition {t.action}"
                )

    def is_terminal(self, state: str) -> bool:
        return state in self.terminal_states

    def actions_from(self, state: str) -> frozenset[str]:
        return frozenset(t.action for t in self.transitions if t.from_state == state)

    def find(
        self, state: str, action: str, to_state: str | None = None
    ) -> Transition | None:
        for t in self.transitions:
            if t.from_state != state or t.action != action:
                continue
            if to_state is None or t.to_state == to_state:
                return t
        return None

    def can(self, state: str, action: str, to_state: str | None = None) -> bool:
        return self.find(state, action, to_state) is not None

    def require(
        self,
        state: str,
        action: str,
        *,
        document_id: object,
        to_state: str | None = None,
    ) -> Transition:
        """Return the matching transition or raise InvalidTransitionError."""
        transition = self.find(state, action, to_state)
        if transition is None:
            raise InvalidTransitionError(
                document_type=self.name,
                document_id=str(document_id),
                from_status=state,
                action=action,
            )
        return transition
