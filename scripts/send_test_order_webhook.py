#!/usr/bin/env python3
"""
Post a signed orders/updated delivery to a running order webhook.

    python scripts/send_test_order_webhook.py                      # arms the reminder
    python scripts/send_test_order_webhook.py --image URL          # one image, completes
    python scripts/send_test_order_webhook.py --quantity 2 --image URL --tags "notification"

SHOPIFY_WEBHOOK_SECRET (env or .env) signs the body; without it the request
goes out unsigned.
"""

import argparse
import base64
import hashlib
import hmac
import json
import os
import sys

import httpx
from dotenv import load_dotenv

WEBHOOK_PATH = "/api/webhooks/orders/updated"


def order_payload(args: argparse.Namespace) -> dict:
    return {
        "admin_graphql_api_id": args.order_id,
        "contact_email": args.email,
        "name": args.order,
        "line_items": [{"quantity": args.quantity}],
        "note_attributes": [
            {"name": f"image_{i + 1}", "value": url} for i, url in enumerate(args.image)
        ],
        "tags": args.tags,
        "customer_locale": args.locale,
        "financial_status": args.status,
    }


def sign(secret: str, body: bytes) -> str:
    return base64.b64encode(hmac.new(secret.encode(), body, hashlib.sha256).digest()).decode()


def main() -> int:
    load_dotenv()

    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--url", default="http://localhost:8000")
    parser.add_argument("--order", default="#1001")
    parser.add_argument("--order-id", default="gid://shopify/Order/1000000001")
    parser.add_argument("--email", default="customer@example.com")
    parser.add_argument("--quantity", type=int, default=1)
    parser.add_argument("--image", action="append", default=[], metavar="URL",
                        help="uploaded image URL, repeatable")
    parser.add_argument("--tags", default="")
    parser.add_argument("--locale", default="pt-PT")
    parser.add_argument("--status", default="paid", help="financial_status")
    parser.add_argument("--secret", default=os.getenv("SHOPIFY_WEBHOOK_SECRET", ""))
    parser.add_argument("--dry-run", action="store_true", help="print the body and exit")
    args = parser.parse_args()

    payload = order_payload(args)
    if args.dry_run:
        print(json.dumps(payload, indent=2))
        return 0

    body = json.dumps(payload).encode()
    headers = {"Content-Type": "application/json", "X-Shopify-Topic": "orders/updated"}
    if args.secret:
        headers["X-Shopify-Hmac-Sha256"] = sign(args.secret, body)

    endpoint = args.url.rstrip("/") + WEBHOOK_PATH
    try:
        response = httpx.post(endpoint, content=body, headers=headers, timeout=60)
    except httpx.ConnectError:
        print(f"Could not connect to {endpoint}; is uvicorn running?", file=sys.stderr)
        return 1

    print(f"{endpoint} -> HTTP {response.status_code} {response.text}")
    return 0 if response.status_code == 200 else 1


if __name__ == "__main__":
    sys.exit(main())
