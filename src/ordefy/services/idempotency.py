"""Idempotency key derivation for inbound webhooks."""

import hashlib


def webhook_timestamp(payload: dict) -> str | None:
    """The resource timestamp Shopify embeds in most payloads."""
    value = payload.get("updated_at") or payload.get("created_at")
    return str(value) if value else None


def build_idempotency_key(topic: str, payload: dict, webhook_id: str | None = None) -> str:
    """Shopify's delivery id when present, else ``{resource_id}:{topic}:{ts_hash}``.

    Redeliveries of the same event carry the same resource timestamp, so they
    collapse onto one key while genuine updates to the resource do not.
    """
    if webhook_id:
        return f"whid:{webhook_id}"

    resource_id = payload.get("id")
    resource_part = str(resource_id) if resource_id is not None else "no-id"

    timestamp = webhook_timestamp(payload)
    if timestamp:
        ts_part = hashlib.md5(timestamp.encode("utf-8")).hexdigest()[:8]
    else:
        ts_part = "no-ts"

    return f"{resource_part}:{topic}:{ts_part}"
