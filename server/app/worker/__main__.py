import asyncio
import signal

from app.core.config import settings
from app.core.logging import configure_logging
from app.db.db import SessionLocal, engine, init_models
from app.worker.runner import build_worker


async def serve() -> None:
    if settings.AUTO_CREATE_TABLES:
        await init_models(engine)

    worker = build_worker(SessionLocal)
    await worker.start()

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await stop.wait()
    await worker.stop()
    await engine.dispose()


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    asyncio.run(serve())


if __name__ == "__main__":
    main()
