"""
Order reconciliation decision engine.

Given one order snapshot and its decoded tags, picks the single action the
webhook takes. Pure: no I/O, the current time is passed in.

Branches are evaluated in strict priority order, first match wins:

  1. TERMINAL          order already tagged Entregue          -> no-op
  2. ARM_NOTIFICATION  paid, no files yet, reminder not armed -> add notification + timer
  3. IDLE              not paid, or no files yet              -> no-op
  4. DISPATCH          paid, at least one file                -> email unsent files, then
       HAS_MISSING_FILES  fewer files than ordered units      -> tags update
       COMPLETE           every unit has its file             -> tags update + fulfillment
  5. UNHANDLED         fallback, unreachable given the above  -> HTTP 500
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from app.models.order import OrderSnapshot
from app.services.attachments import AttachmentResolver
from app.services.tag_codec import (
    DeliveredMarker,
    Marker,
    NotificationMarker,
    SentImageMarker,
    TagState,
    TimerMarker,
    is_transient,
    to_tag_list,
)


# Delay before the reminder fires when a paid order has no file yet
NOTIFICATION_DELAY_MS = 15 * 60 * 1000


class Branch(str, Enum):
    TERMINAL = "terminal"
    ARM_NOTIFICATION = "arm_notification"
    IDLE = "idle"
    DISPATCH = "dispatch"
    UNHANDLED = "unhandled"


class DispatchOutcome(str, Enum):
    HAS_MISSING_FILES = "has_missing_files"
    COMPLETE = "complete"


@dataclass(frozen=True)
class Decision:
    """
    What to mutate on the remote order, without doing it.

    tag_action          target tag list for branches that know it up front
                        (ARM_NOTIFICATION); dispatch branches compute it with
                        resolve_tags() once the sent markers are known.
    fulfillment_action  True when the remote update must also create the
                        fulfillment.
    """

    branch: Branch
    outcome: Optional[DispatchOutcome] = None
    current: tuple[Marker, ...] = ()
    tag_action: Optional[list[str]] = None
    fulfillment_action: bool = False
    reason: str = ""

    @property
    def is_noop(self) -> bool:
        return self.branch in (Branch.TERMINAL, Branch.IDLE)

    def resolve_tags(self, sent: Iterable[SentImageMarker] = ()) -> list[str]:
        """Target tags for a dispatch branch, given this pass's sent markers."""
        if self.tag_action is not None:
            return list(self.tag_action)
        if self.outcome == DispatchOutcome.COMPLETE:
            kept = [m for m in self.current if not is_transient(m)]
            return to_tag_list([*kept, DeliveredMarker()])
        return to_tag_list([*self.current, *sent])


def decide(
    snapshot: OrderSnapshot,
    tags: TagState,
    attachments: AttachmentResolver,
    now_ms: int,
) -> Decision:
    """Classify the order and return the action to take."""
    resolved = attachments.count_resolved()

    if tags.is_delivered:
        return Decision(Branch.TERMINAL, current=tags.markers, reason="order already delivered")

    if snapshot.is_paid and resolved == 0 and not tags.has_notification:
        deadline = now_ms + NOTIFICATION_DELAY_MS
        next_tags = to_tag_list(
            [*tags.markers, NotificationMarker(), TimerMarker(deadline)]
        )
        return Decision(
            Branch.ARM_NOTIFICATION,
            current=tags.markers,
            tag_action=next_tags,
            reason="paid without files, arming reminder",
        )

    if not snapshot.is_paid or resolved == 0:
        reason = "not paid" if not snapshot.is_paid else "no files yet, reminder armed"
        return Decision(Branch.IDLE, current=tags.markers, reason=reason)

    if snapshot.is_paid and resolved > 0:
        if resolved < snapshot.line_item_count:
            return Decision(
                Branch.DISPATCH,
                outcome=DispatchOutcome.HAS_MISSING_FILES,
                current=tags.markers,
                reason=f"{resolved}/{snapshot.line_item_count} files",
            )
        return Decision(
            Branch.DISPATCH,
            outcome=DispatchOutcome.COMPLETE,
            current=tags.markers,
            fulfillment_action=True,
            reason=f"{resolved}/{snapshot.line_item_count} files",
        )

    return Decision(Branch.UNHANDLED, current=tags.markers, reason="no branch matched")
