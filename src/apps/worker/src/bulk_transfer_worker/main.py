"""Worker entrypoint."""
import asyncio
import signal

import structlog

from bulk_transfer_core.settings import Settings, get_settings
from bulk_transfer_core.store import SQLiteStore
from bulk_transfer_core.util import configure_logging
from bulk_transfer_worker.orchestrator import JobWorker

logger = structlog.get_logger()


async def serve(settings: Settings | None = None) -> None:
    """Run the job worker until SIGTERM or SIGINT."""
    settings = settings or get_settings()
    store = SQLiteStore(settings.sqlite_path)
    store.init_db()
    worker = JobWorker(store, settings)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, worker.stop)
    await worker.run()


def main():
    """Start the worker."""
    configure_logging()
    asyncio.run(serve())


if __name__ == "__main__":
    main()
