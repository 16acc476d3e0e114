"""
Base worker class for CamTracker background components.

Provides the common lifecycle and logging helpers shared by the job queue
and the cache cleanup scheduler.

LIFECYCLE:
- start()/stop() manage the worker: they set ``running`` and call
  initialize()/cleanup(), which subclasses implement.
- Autonomous loops (the queue's dispatch loop, APScheduler jobs) are created
  inside initialize() and torn down inside cleanup().
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from loguru import logger


class BaseWorker(ABC):
    """
    Abstract base class for CamTracker workers.

    Each worker owns one domain of background work and logs with a
    ``[name]`` prefix.
    """

    def __init__(self, name: str):
        """
        Initialize base worker.

        Args:
            name: Worker name for logging and identification
        """
        self.name = name
        self.running = False

    async def start(self) -> None:
        """Start the worker."""
        logger.info(f"Starting {self.name} worker")
        self.running = True
        await self.initialize()

    async def stop(self) -> None:
        """Stop the worker."""
        logger.info(f"Stopping {self.name} worker")
        self.running = False
        await self.cleanup()

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize worker-specific resources."""
        pass

    @abstractmethod
    async def cleanup(self) -> None:
        """Cleanup worker-specific resources."""
        pass

    def log_info(self, message: str) -> None:
        """Log info message with worker name prefix."""
        logger.info(f"[{self.name}] {message}")

    def log_error(self, message: str, error: Optional[BaseException] = None) -> None:
        """Log error message with worker name prefix."""
        if error:
            logger.error(f"[{self.name}] {message}: {error}")
        else:
            logger.error(f"[{self.name}] {message}")

    def log_warning(self, message: str) -> None:
        """Log warning message with worker name prefix."""
        logger.warning(f"[{self.name}] {message}")

    def log_debug(self, message: str) -> None:
        """Log debug message with worker name prefix."""
        logger.debug(f"[{self.name}] {message}")

    def get_status(self) -> Dict[str, Any]:
        """
        Get current worker status.

        Subclasses extend this with their own counters.
        """
        return {
            "name": self.name,
            "running": self.running,
            "worker_type": self.__class__.__name__,
        }
