"""Register (or update) a Shopify integration so its webhooks are accepted.

Usage:
    ORDEFY_LOCAL_MODE=1 python scripts/seed_integration.py \
        --shop demo-store.myshopify.com --store-id store_demo --secret shpss_xxx

Omit --secret to verify with ORDEFY_SHOPIFY_API_SECRET instead.
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from ordefy.config import settings
from ordefy.db.base import Base
import ordefy.db.models  # noqa: F401
from ordefy.db.engine import create_db_engine, create_session_factory
from ordefy.db.models.integration import ShopifyIntegrationRow
from ordefy.models.enums import IntegrationStatus
from ordefy.repositories.integration_repo import IntegrationRepository
from ordefy.services.id_generator import generate_id


async def seed(shop_domain: str, store_id: str, secret: str | None) -> None:
    engine = create_db_engine()
    if "sqlite" in settings.effective_database_url:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async with create_session_factory(engine)() as session:
        repo = IntegrationRepository(session)
        domain = shop_domain.strip().lower()
        existing = await repo.get_active_by_shop_domain(domain)
        if existing:
            existing.store_id = store_id
            existing.webhook_secret = secret
            print(f"Updated integration {existing.integration_id} for {domain}")
        else:
            row = ShopifyIntegrationRow(
                integration_id=generate_id("int_"),
                store_id=store_id,
                shop_domain=domain,
                webhook_secret=secret,
                status=IntegrationStatus.ACTIVE,
            )
            session.add(row)
            print(f"Created integration {row.integration_id} for {domain}")
        await session.commit()
    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed a Shopify integration")
    parser.add_argument("--shop", required=True, help="Shop domain, e.g. demo.myshopify.com")
    parser.add_argument("--store-id", required=True)
    parser.add_argument("--secret", default=None, help="Per-shop webhook secret")
    args = parser.parse_args()
    asyncio.run(seed(args.shop, args.store_id, args.secret))
