"""Send a signed Shopify-style webhook to a running server.

Usage:
    python scripts/send_test_webhook.py --shop demo-store.myshopify.com \
        --secret shpss_xxx --topic orders/create [--api-url http://localhost:8080/api]

Sending the same --webhook-id twice shows the duplicate response.
"""

import argparse
import json
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

import httpx

from ordefy.services.signature import sign_payload


def sample_payload(topic: str) -> dict:
    now = datetime.now(timezone.utc).isoformat()
    if topic.startswith("products/"):
        return {
            "id": 7001,
            "title": "Demo T-Shirt",
            "updated_at": now,
            "variants": [{"id": 1, "sku": "TSHIRT-DEMO", "price": "19.99", "inventory_quantity": 25}],
        }
    return {
        "id": 5001,
        "name": "#1001",
        "email": "buyer@example.com",
        "total_price": "39.98",
        "currency": "USD",
        "financial_status": "paid",
        "created_at": now,
        "updated_at": now,
        "customer": {"first_name": "Ana", "last_name": "Gomez"},
        "line_items": [{"product_id": 7001, "variant_id": 1, "title": "Demo T-Shirt", "quantity": 2, "price": "19.99"}],
    }


def main() -> int:
    parser = argparse.ArgumentParser(description="Send a signed test webhook")
    parser.add_argument("--api-url", default="http://localhost:8080/api")
    parser.add_argument("--shop", required=True)
    parser.add_argument("--secret", required=True)
    parser.add_argument("--topic", default="orders/create")
    parser.add_argument("--webhook-id", default=None)
    args = parser.parse_args()

    body = json.dumps(sample_payload(args.topic)).encode("utf-8")
    headers = {
        "Content-Type": "application/json",
        "X-Shopify-Shop-Domain": args.shop,
        "X-Shopify-Topic": args.topic,
        "X-Shopify-Hmac-Sha256": sign_payload(body, args.secret),
        "X-Shopify-Webhook-Id": args.webhook_id or str(uuid.uuid4()),
    }
    slug = args.topic.replace("/", "-", 1)

    response = httpx.post(f"{args.api_url}/shopify/webhook/{slug}", content=body, headers=headers, timeout=15.0)
    print(f"{response.status_code} {response.text}")
    return 0 if response.status_code == 200 else 1


if __name__ == "__main__":
    sys.exit(main())
