"""
Entry point for the pharmacy expiry automation service.

Builds the inventory store (Supabase when SUPABASE_URL/SUPABASE_SERVICE_KEY are
set, seeded in-memory stock otherwise), the notification dispatcher and the
daily scheduler, then serves until interrupted.

Run with:   python -m demos.expiry_automation_demo
Or once:    python -m demos.expiry_automation_demo --once
"""

import argparse
import asyncio
from datetime import datetime

import httpx

from agents.scheduler import build_expiry_scheduler
from config.config import ExpiryAutomationConfig
from connectors.inventory_store import InMemoryInventoryStore, seed_demo_batches
from connectors.notifications import build_dispatcher
from connectors.supabase_store import SupabaseInventoryStore
from utils.logger import configure_logging, get_logger

logger = get_logger("expiry-automation")


def build_store(config: ExpiryAutomationConfig, client: httpx.AsyncClient):
    if config.uses_supabase:
        logger.info(f"Using Supabase table '{config.medicine_batches_table}'")
        return SupabaseInventoryStore(
            client,
            config.supabase_url,
            config.supabase_service_key,
            table=config.medicine_batches_table,
            timezone=config.tzinfo,
        )
    logger.warning("Supabase not configured; using seeded in-memory inventory")
    today = datetime.now(config.tzinfo).date()
    return InMemoryInventoryStore(seed_demo_batches(today), timezone=config.tzinfo)


async def main(run_once: bool = False) -> None:
    config = ExpiryAutomationConfig.from_env()
    configure_logging(config.log_level)

    async with httpx.AsyncClient(timeout=config.call_timeout_seconds) as client:
        store = build_store(config, client)
        dispatcher = build_dispatcher(config, client)
        scheduler = build_expiry_scheduler(config, store, dispatcher)

        if run_once:
            for rule in scheduler.rules:
                summary = await scheduler.trigger_now(rule.name)
                if summary is not None:
                    logger.info(f"{rule.name}: {summary.describe()}")
            return

        scheduler.start()
        try:
            await asyncio.Event().wait()
        finally:
            await scheduler.stop(wait=True)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Pharmacy expiry automation scheduler")
    parser.add_argument(
        "--once", action="store_true", help="run both rules immediately and exit"
    )
    args = parser.parse_args()
    try:
        asyncio.run(main(run_once=args.once))
    except KeyboardInterrupt:
        logger.info("Interrupted; shutting down")
