"""Application composition root."""
import logging
from typing import Callable, Optional

from wordgame.config import Settings, settings
from wordgame.monitoring import start_monitoring
from wordgame.services.progress_store import ProgressStore
from wordgame.services.storage import Storage, create_storage


class WordGameApp:
    """Owns the storage backend and the progress store used by the game UI."""

    def __init__(
        self,
        storage: Optional[Storage] = None,
        app_settings: Optional[Settings] = None,
        clock: Optional[Callable] = None,
    ):
        """Initialize the application."""
        self.settings = app_settings or settings
        self.storage = storage
        self.clock = clock
        self.store: Optional[ProgressStore] = None
        self.running = False
        self.logger = logging.getLogger(__name__)

    def start(self) -> ProgressStore:
        """Start the application and return its progress store."""
        if self.running:
            return self.store

        try:
            if self.storage is None:
                self.storage = create_storage(self.settings)
                self.logger.info("Storage initialized")

            if self.settings.monitoring.port:
                start_monitoring(self.settings.monitoring.port)
                self.logger.info(f"Metrics server listening on port {self.settings.monitoring.port}")

            self.store = ProgressStore(
                self.storage,
                clock=self.clock,
                date_format=self.settings.game.record_date_format,
                history_limit=self.settings.game.history_limit,
            )
            self.running = True
            self.logger.info("Application started")
            return self.store

        except Exception as e:
            self.logger.error("Failed to start application: %s", str(e))
            self.stop()
            raise

    def stop(self, flush: bool = False) -> None:
        """Stop the application, optionally forcing every record set to storage."""
        if not self.running:
            return

        if self.store:
            if flush:
                self.store.save_all()
                self.logger.info("Progress store saved")
            self.store = None

        self.running = False
        self.logger.info("Application stopped")

    def __enter__(self) -> ProgressStore:
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
