"""
Remote order update orchestration.

Turns a Decision into exactly one remote mutation (tags only, or tags plus
fulfillment creation) and reports any error to the operator. Nothing here
raises to the webhook: an alerted failure is a handled outcome.
"""

import logging
from enum import Enum
from typing import Iterable, Optional, Protocol

from app.config import Settings
from app.models.order import OrderMutationResult, OrderSnapshot
from app.services.alerts import Mailer, format_payload, send_operator_alert
from app.services.decision import Branch, Decision, DispatchOutcome
from app.services.tag_codec import SentImageMarker, TagState, normalized

logger = logging.getLogger(__name__)


class OrderClient(Protocol):
    async def update_order_tags(self, order_id: str, tags: list[str]) -> OrderMutationResult: ...

    async def get_open_fulfillment_order_id(self, order_id: str) -> Optional[str]: ...

    async def update_tags_and_create_fulfillment(
        self,
        order_id: str,
        tags: list[str],
        fulfillment_order_id: Optional[str],
    ) -> OrderMutationResult: ...


class SyncStatus(str, Enum):
    UNCHANGED = "unchanged"   # target tags equal current tags, nothing sent
    UPDATED = "updated"
    FAILED = "failed"         # remote errors, operator alerted


def _error_report(result: OrderMutationResult) -> str:
    return (
        "GraphQL errors:\n"
        f"{format_payload(result.data)}\n\n"
        "General Errors:\n"
        f"{format_payload(result.errors)}"
    )


async def arm_notification(
    decision: Decision,
    snapshot: OrderSnapshot,
    client: OrderClient,
    mailer: Mailer,
    settings: Settings,
) -> SyncStatus:
    """Persist the notification + timer tags chosen by the decision engine."""
    tags = decision.resolve_tags()
    result = await client.update_order_tags(snapshot.order_id, tags)

    if result.has_errors:
        report = _error_report(result)
        logger.error(report)
        await send_operator_alert(
            mailer, settings, snapshot.order_number,
            "Falhou ao definir notificação",
            report,
        )
        return SyncStatus.FAILED

    logger.info(f"Notification armed for {snapshot.order_number}: {tags}")
    return SyncStatus.UPDATED


async def sync_order(
    decision: Decision,
    snapshot: OrderSnapshot,
    tag_state: TagState,
    sent: Iterable[SentImageMarker],
    client: OrderClient,
    mailer: Mailer,
    settings: Settings,
) -> SyncStatus:
    """
    Apply a DISPATCH decision to the remote order.

    HAS_MISSING_FILES: tags update with this pass's sent markers; skipped
    when the tag set would not change.
    COMPLETE: tags update (transient markers stripped, Entregue added) and
    fulfillment creation in a single request.
    """
    if decision.branch != Branch.DISPATCH:
        raise ValueError(f"sync_order expects a dispatch decision, got {decision.branch}")

    has_missing_files = decision.outcome == DispatchOutcome.HAS_MISSING_FILES
    next_tags = decision.resolve_tags(sent)
    logger.info(f"nextTags: {next_tags}")

    if has_missing_files:
        if normalized(next_tags) == normalized(snapshot.tags):
            logger.info(f"Tags unchanged for {snapshot.order_number}, skipping update")
            return SyncStatus.UNCHANGED
        result = await client.update_order_tags(snapshot.order_id, next_tags)
    else:
        fulfillment_order_id = await client.get_open_fulfillment_order_id(snapshot.order_id)
        if fulfillment_order_id is None:
            logger.warning(f"No open fulfillment order found for {snapshot.order_id}")
        logger.info(f'FulfillmentOrder: "{fulfillment_order_id}" for ID: "{snapshot.order_id}"')
        result = await client.update_tags_and_create_fulfillment(
            snapshot.order_id, next_tags, fulfillment_order_id
        )

    if result.has_errors:
        report = _error_report(result)
        logger.error(report)
        await send_operator_alert(
            mailer, settings, snapshot.order_number,
            "Houve um erro ao actualizar a order "
            f"(hasMissingFiles: {str(has_missing_files).lower()})",
            report,
        )
        return SyncStatus.FAILED

    if has_missing_files:
        logger.info("Shopify tags updated")
        return SyncStatus.UPDATED

    logger.info("Shopify tags and fulfillment updated")
    if tag_state.is_notified:
        # The reminder process already told the customer; a human should check
        await send_operator_alert(
            mailer, settings, snapshot.order_number,
            "A order já está resolvida",
        )
    return SyncStatus.UPDATED
