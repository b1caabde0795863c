"""
Order lifecycle workflow.

State machine for delivery orders.  Transitions are driven only by explicit
status updates; nothing moves an order automatically.
"""

from dataclasses import dataclass
from enum import Enum

from logistics_kernel.logging_config import get_logger

logger = get_logger("domain.order_workflow")


class OrderStatus(str, Enum):
    """Delivery order lifecycle status."""

    PENDING = "PENDING"
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class Guard:
    """A condition for a transition."""
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition."""
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None
    restores_stock: bool = False


@dataclass(frozen=True)
class Workflow:
    """A state machine definition."""
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def find(self, from_state: str, to_state: str) -> Transition | None:
        for transition in self.transitions:
            if transition.from_state == from_state and transition.to_state == to_state:
                return transition
        return None

    def allowed_targets(self, from_state: str) -> tuple[str, ...]:
        return tuple(
            t.to_state for t in self.transitions if t.from_state == from_state
        )


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

AGENT_ASSIGNED = Guard(
    name="agent_assigned",
    description="An agent is assigned to the order",
)


# -----------------------------------------------------------------------------
# Delivery Order Workflow
# -----------------------------------------------------------------------------

_P = OrderStatus.PENDING.value
_A = OrderStatus.ASSIGNED.value
_IP = OrderStatus.IN_PROGRESS.value
_C = OrderStatus.COMPLETED.value
_X = OrderStatus.CANCELLED.value

ORDER_WORKFLOW = Workflow(
    name="delivery_order",
    description="Delivery order lifecycle",
    initial_state=_P,
    states=(_P, _A, _IP, _C, _X),
    transitions=(
        Transition(_P, _A, action="assign", guard=AGENT_ASSIGNED),
        Transition(_P, _IP, action="start"),
        Transition(_P, _C, action="complete"),
        Transition(_P, _X, action="cancel", restores_stock=True),
        Transition(_A, _P, action="unassign"),
        Transition(_A, _IP, action="start"),
        Transition(_A, _C, action="complete"),
        Transition(_A, _X, action="cancel", restores_stock=True),
        Transition(_IP, _C, action="complete"),
        Transition(_IP, _X, action="cancel", restores_stock=True),
    ),
    terminal_states=(_C, _X),
)

logger.info(
    "order_workflow_registered",
    extra={
        "workflow_name": ORDER_WORKFLOW.name,
        "state_count": len(ORDER_WORKFLOW.states),
        "transition_count": len(ORDER_WORKFLOW.transitions),
        "initial_state": ORDER_WORKFLOW.initial_state,
    },
)


def can_transition(from_status: str, to_status: str) -> bool:
    """True if ORDER_WORKFLOW allows ``from_status -> to_status``."""
    return ORDER_WORKFLOW.find(from_status, to_status) is not None


def is_terminal(status: str) -> bool:
    return status in ORDER_WORKFLOW.terminal_states
