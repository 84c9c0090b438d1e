"""
Shopify Admin GraphQL client for the order operations the webhook needs.

Operations:
  update_order_tags(order_id, tags)                   -> OrderMutationResult
  get_open_fulfillment_order_id(order_id)             -> str | None
  update_tags_and_create_fulfillment(order_id, tags,
                                     fulfillment_order_id) -> OrderMutationResult

One attempt per call, no retries: redelivery of the webhook is the retry
mechanism. Transport failures (httpx errors, non-JSON bodies) are returned
as entries in `errors`, the same place GraphQL reports its own top-level
errors, so callers handle a single error path.
"""

import logging
from typing import Any, Optional

import httpx

from app.config import Settings
from app.models.order import OrderMutationResult, UserError

logger = logging.getLogger(__name__)


ORDER_UPDATE_MUTATION = """
mutation OrderUpdate($input: OrderInput!) {
  orderUpdate(input: $input) {
    userErrors {
      field
      message
    }
  }
}
"""

OPEN_FULFILLMENT_ORDER_QUERY = """
query GetOrder($id: ID!) {
  order(id: $id) {
    fulfillmentOrders(first: 1, query: "-status:closed") {
      nodes {
        id
      }
    }
  }
}
"""

BULK_UPDATE_MUTATION = """
mutation BulkUpdate(
  $input: OrderInput!
  $fulfillment: FulfillmentV2Input!
) {
  orderUpdate(input: $input) {
    userErrors {
      field
      message
    }
  }
  fulfillmentCreateV2(fulfillment: $fulfillment) {
    userErrors {
      field
      message
    }
  }
}
"""


class ShopifyOrderClient:
    """Order-management collaborator over the Shopify Admin GraphQL API."""

    def __init__(
        self,
        store_domain: str,
        access_token: str,
        api_version: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.store_domain = store_domain
        self.access_token = access_token
        self.api_version = api_version
        self.timeout = timeout
        self.endpoint = f"https://{store_domain}/admin/api/{api_version}/graphql.json"
        # Injected in tests (httpx.MockTransport)
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "ShopifyOrderClient":
        return cls(
            store_domain=settings.store_domain,
            access_token=settings.access_token,
            api_version=settings.shopify_api_version,
            timeout=settings.http_timeout,
        )

    async def request(
        self,
        query: str,
        variables: Optional[dict[str, Any]] = None,
    ) -> tuple[Optional[dict[str, Any]], list[dict[str, Any]]]:
        """
        Execute one GraphQL request.

        Returns:
            (data, errors): `data` is the GraphQL data object (or None) and
            `errors` lists top-level GraphQL errors plus any transport error.
        """
        headers = {
            "X-Shopify-Access-Token": self.access_token,
            "Content-Type": "application/json",
        }
        payload = {"query": query, "variables": variables or {}}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.endpoint, json=payload, headers=headers)
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Shopify HTTP error {e.response.status_code}: {e}")
            return None, [{
                "message": f"HTTP {e.response.status_code}",
                "body": e.response.text,
            }]
        except httpx.HTTPError as e:
            logger.error(f"Shopify request error: {e}")
            return None, [{"message": f"Request error: {e}"}]
        except ValueError as e:
            logger.error(f"Shopify returned a non-JSON response: {e}")
            return None, [{"message": f"Invalid JSON response: {e}"}]

        errors = body.get("errors") or []
        if isinstance(errors, (str, dict)):
            errors = [errors if isinstance(errors, dict) else {"message": errors}]
        return body.get("data"), list(errors)

    async def update_order_tags(self, order_id: str, tags: list[str]) -> OrderMutationResult:
        data, errors = await self.request(
            ORDER_UPDATE_MUTATION,
            {"input": {"id": order_id, "tags": tags}},
        )
        return OrderMutationResult(
            order_user_errors=_user_errors(data, "orderUpdate"),
            errors=errors,
            data=data,
        )

    async def get_open_fulfillment_order_id(self, order_id: str) -> Optional[str]:
        """
        Return the first non-closed fulfillment order of the order.

        Returns None when there is none, or when the lookup itself failed;
        the failure is logged and surfaces later through the fulfillment
        mutation.
        """
        data, errors = await self.request(OPEN_FULFILLMENT_ORDER_QUERY, {"id": order_id})
        if errors:
            logger.warning(f"Fulfillment order lookup failed for {order_id}: {errors}")

        order = (data or {}).get("order") or {}
        nodes = (order.get("fulfillmentOrders") or {}).get("nodes") or []
        if not nodes:
            return None
        return nodes[0].get("id")

    async def update_tags_and_create_fulfillment(
        self,
        order_id: str,
        tags: list[str],
        fulfillment_order_id: Optional[str],
    ) -> OrderMutationResult:
        data, errors = await self.request(
            BULK_UPDATE_MUTATION,
            {
                "input": {"id": order_id, "tags": tags},
                "fulfillment": {
                    "lineItemsByFulfillmentOrder": [
                        {"fulfillmentOrderId": fulfillment_order_id},
                    ],
                },
            },
        )
        return OrderMutationResult(
            order_user_errors=_user_errors(data, "orderUpdate"),
            fulfillment_user_errors=_user_errors(data, "fulfillmentCreateV2"),
            errors=errors,
            data=data,
        )


def _user_errors(data: Optional[dict[str, Any]], mutation: str) -> list[UserError]:
    payload = (data or {}).get(mutation) or {}
    return [UserError(**e) for e in payload.get("userErrors") or []]
