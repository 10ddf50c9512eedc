"""Flash deal lifecycle state machine.

    scheduled --activate--> active --pause--> paused
        |                     |                 |
      (edit)                  +------end--------+--> ended (terminal)

Guards raise before any side effect. Side effects (projection writes, audit
fields) are performed by FlashDealService once a guard has passed.
"""

from enum import Enum

from flashdeal.models.enums import DealStatus
from flashdeal.services.errors import (
    AlreadyEnded,
    EditNotAllowed,
    InvalidPauseSource,
    InvalidTransition,
)


class DealAction(str, Enum):
    EDIT = "edit"
    ACTIVATE = "activate"
    PAUSE = "pause"
    END = "end"


# action -> (allowed source states, resulting state)
TRANSITIONS: dict[DealAction, tuple[frozenset[DealStatus], DealStatus]] = {
    DealAction.EDIT: (frozenset({DealStatus.SCHEDULED}), DealStatus.SCHEDULED),
    DealAction.ACTIVATE: (frozenset({DealStatus.SCHEDULED}), DealStatus.ACTIVE),
    DealAction.PAUSE: (frozenset({DealStatus.ACTIVE}), DealStatus.PAUSED),
    DealAction.END: (frozenset({DealStatus.ACTIVE, DealStatus.PAUSED}), DealStatus.ENDED),
}

# Statuses whose products should carry a live projection.
PROJECTED_STATUSES = frozenset({DealStatus.SCHEDULED, DealStatus.ACTIVE})


def ensure_transition(current: DealStatus | str, action: DealAction) -> DealStatus:
    """Validate an action against the current status and return the target status.

    Args:
        current: Current campaign status
        action: Requested lifecycle action

    Returns:
        Status the campaign moves to

    Raises:
        AlreadyEnded: Ending an ended deal
        EditNotAllowed: Editing a deal that is not scheduled
        InvalidPauseSource: Pausing a deal that is not active
        InvalidTransition: Any other illegal move
    """
    current = DealStatus(current)
    sources, target = TRANSITIONS[action]
    if current in sources:
        return target

    if action is DealAction.END and current is DealStatus.ENDED:
        raise AlreadyEnded()
    if action is DealAction.EDIT:
        raise EditNotAllowed(current.value)
    if action is DealAction.PAUSE:
        raise InvalidPauseSource(current.value)
    raise InvalidTransition(current.value, target.value)


def is_projected(status: DealStatus | str) -> bool:
    return DealStatus(status) in PROJECTED_STATUSES
