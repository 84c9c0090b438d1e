"""
Order-update webhook router.

Receives Shopify orders/updated deliveries and reconciles the order:
arms the reminder, emails the generated images, updates tags and creates
the fulfillment once every image has been delivered.

Endpoints:
  POST /orders/updated    Shopify webhook (auth: X-Shopify-Hmac-Sha256)

Responses are plain text: 200 "Ok" for every handled case, including
failures that were reported to the operator by email, so Shopify does not
retry a half-applied sequence. 500 "Error" is reserved for the fallback
branch of the decision engine.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from app.auth import verify_shopify_webhook
from app.config import Settings
from app.deps import get_mailer, get_order_client, get_settings
from app.models.order import OrderSnapshot, OrderWebhookPayload
from app.services.alerts import Mailer
from app.services.attachments import AttachmentResolver
from app.services.decision import Branch, Decision, decide
from app.services.email_dispatch import DispatchResult, dispatch_emails
from app.services.order_sync import OrderClient, SyncStatus, arm_notification, sync_order
from app.services.tag_codec import decode

logger = logging.getLogger(__name__)

router = APIRouter()


@dataclass
class ProcessResult:
    decision: Decision
    status_code: int = 200
    dispatch: Optional[DispatchResult] = None
    sync_status: Optional[SyncStatus] = None


async def process_order_update(
    payload: OrderWebhookPayload,
    settings: Settings,
    client: OrderClient,
    mailer: Mailer,
    now_ms: Optional[int] = None,
) -> ProcessResult:
    """
    Run one delivery through the reconciliation pipeline.

    Steps, strictly sequential:
    1. Build the snapshot and decode the tags.
    2. Resolve attachments against the sent markers.
    3. Decide the branch.
    4. ARM_NOTIFICATION: persist notification + timer tags.
    5. DISPATCH: email unsent images; stop on the first failure.
    6. DISPATCH: one remote update (tags, or tags + fulfillment).
    """
    snapshot = OrderSnapshot.from_payload(payload)
    logger.info(f"Order Update hook for {snapshot.order_number}")

    tag_state = decode(snapshot.tags)
    attachments = AttachmentResolver(snapshot.attachments, tag_state)

    if now_ms is None:
        now_ms = int(time.time() * 1000)
    decision = decide(snapshot, tag_state, attachments, now_ms)
    logger.info(
        f"Order {snapshot.order_number}: branch={decision.branch.value} "
        f"outcome={decision.outcome.value if decision.outcome else '-'} ({decision.reason})"
    )

    if decision.is_noop:
        return ProcessResult(decision)

    if decision.branch == Branch.ARM_NOTIFICATION:
        sync_status = await arm_notification(decision, snapshot, client, mailer, settings)
        return ProcessResult(decision, sync_status=sync_status)

    if decision.branch == Branch.DISPATCH:
        dispatch = await dispatch_emails(snapshot, attachments, mailer, settings)
        if dispatch.aborted:
            # Markers from this pass are discarded; the next delivery retries
            return ProcessResult(decision, dispatch=dispatch)

        sync_status = await sync_order(
            decision, snapshot, tag_state, dispatch.sent, client, mailer, settings
        )
        return ProcessResult(decision, dispatch=dispatch, sync_status=sync_status)

    logger.error(f"Order {snapshot.order_number}: no branch matched, tags={snapshot.tags}")
    return ProcessResult(decision, status_code=500)


@router.post("/orders/updated")
async def order_updated_webhook(
    request: Request,
    _: None = Depends(verify_shopify_webhook),
    settings: Settings = Depends(get_settings),
    client: OrderClient = Depends(get_order_client),
    mailer: Mailer = Depends(get_mailer),
) -> PlainTextResponse:
    """
    Shopify orders/updated webhook receiver.

    The body is parsed from the raw request (also used for the HMAC check).
    A body that does not parse is logged and acknowledged: redelivering it
    would not make it valid.
    """
    body = await request.body()
    try:
        payload = OrderWebhookPayload.model_validate_json(body)
    except ValidationError as e:
        logger.error(f"Could not parse order webhook body: {e}")
        return PlainTextResponse("Ok", status_code=200)

    result = await process_order_update(payload, settings, client, mailer)
    if result.status_code != 200:
        return PlainTextResponse("Error", status_code=result.status_code)
    return PlainTextResponse("Ok", status_code=200)
