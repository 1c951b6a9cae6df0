"""
Reservation Service Worker - Expiry Sweeper loop
Runs a sweep every SWEEP_INTERVAL_SECONDS until SIGINT/SIGTERM
"""
import os
import signal
import asyncio
import logging

from dotenv import load_dotenv

from reservation_service import create_app
from reservation_service.api.middlewares.correlation_id import set_correlation_id
from reservation_service.services.expiry_sweeper import ExpirySweeper

logger = logging.getLogger(__name__)


class ExpiryWorker:
    """Periodically expires overdue reservations"""

    def __init__(self, app, interval_seconds: float = None, sweeper: ExpirySweeper = None):
        self.app = app
        self.interval_seconds = interval_seconds or app.config.get('SWEEP_INTERVAL_SECONDS', 60)
        self.sweeper = sweeper
        self.stop_event = asyncio.Event()

    def run_sweep(self):
        """Run one sweep inside the application context"""
        with self.app.app_context():
            set_correlation_id()
            if self.sweeper is None:
                self.sweeper = ExpirySweeper()
            return self.sweeper.sweep()

    async def start(self):
        """Sweep until asked to stop"""
        logger.info(f"Expiry worker started, sweeping every {self.interval_seconds}s")
        while not self.stop_event.is_set():
            try:
                await asyncio.to_thread(self.run_sweep)
            except Exception as e:
                logger.error(f"Sweep failed: {str(e)}")
            try:
                await asyncio.wait_for(self.stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass
        logger.info("Expiry worker stopped")

    def stop(self):
        """Request a graceful stop"""
        logger.info("Stopping expiry worker...")
        self.stop_event.set()


async def main():
    """Main entry point for the worker"""
    load_dotenv()
    app = create_app(os.environ.get('FLASK_ENV', 'production'))
    worker = ExpiryWorker(app)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, worker.stop)

    await worker.start()


if __name__ == "__main__":
    asyncio.run(main())
