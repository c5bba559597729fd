"""
subdrop/node.py

Local development node.
Run with: python -m subdrop.node

Serves the REST API over an engine backed by an in-memory token ledger and
persists the engine's state tables to disk every SUBDROP_SAVE_INTERVAL
seconds (and on shutdown).
"""

import trio
import logging

from .api import SubdropAPI
from .config import EngineConfig, NodeConfig
from .ledger.memory import InMemoryTokenLedger
from .protocol.distribution import DistributionEngine
from .protocol.storage import FileBackend, SubdropStateStore

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(name)s] %(levelname)s: %(message)s'
)
logger = logging.getLogger(__name__)


async def main():
    """Run the development node."""
    config = NodeConfig.from_env()

    ledger = InMemoryTokenLedger()
    engine = DistributionEngine(
        ledger,
        config.engine_address,
        owner=config.owner_address,
        config=EngineConfig.from_env(),
    )

    store = SubdropStateStore(FileBackend(config.state_dir))
    if await store.load(engine):
        logger.info(f"Restored {engine.total_leaderboard_size()} leaderboard entries")

    api = SubdropAPI(
        engine,
        host=config.api_host,
        port=config.api_port,
        enable_metrics=config.enable_metrics,
    )

    async def save_loop():
        """Persist state periodically."""
        while True:
            await trio.sleep(config.save_interval)
            await store.save(engine)

    logger.info(f"Engine {engine.address} (owner {engine.owner}) ready")
    logger.info(f"State directory: {config.state_dir}")

    try:
        async with trio.open_nursery() as nursery:
            nursery.start_soon(api.start)
            nursery.start_soon(save_loop)
    finally:
        await store.save(engine)
        logger.info("State saved, node stopped")


if __name__ == "__main__":
    try:
        trio.run(main)
    except KeyboardInterrupt:
        logger.info("Shutting down...")
