"""Maintenance Scheduler - Periodic housekeeping for the broker and notifications

Handles:
- Reaping broker sessions whose heartbeat went quiet
- Deleting notifications past their expiry
"""
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..config.settings import settings
from ..realtime.broker import ChannelBroker, get_broker
from ..repositories.notification_repo import NotificationRepository
from ..utils.logger import get_logger, set_correlation_id
from ..utils.idgen import generate_correlation_id

logger = get_logger(__name__)


class MaintenanceScheduler:
    """
    APScheduler-driven housekeeping.

    Each server runs its own instance. Both jobs are idempotent, so
    running them on several servers at once is harmless.
    """

    def __init__(self, broker: Optional[ChannelBroker] = None):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._broker = broker
        self._is_running = False

    @property
    def broker(self) -> ChannelBroker:
        return self._broker or get_broker()

    def start(self) -> None:
        """Start the scheduler"""
        if self._is_running:
            logger.warning("Scheduler already running")
            return

        self.scheduler = AsyncIOScheduler()

        self.scheduler.add_job(
            self.reap_stale_sessions,
            trigger=IntervalTrigger(seconds=settings.broker_reap_interval_seconds),
            id="reap_stale_sessions",
            name="Reap stale broker sessions",
            replace_existing=True
        )

        self.scheduler.add_job(
            self.cleanup_expired_notifications,
            trigger=IntervalTrigger(minutes=settings.notification_cleanup_interval_minutes),
            id="cleanup_expired_notifications",
            name="Delete expired notifications",
            replace_existing=True
        )

        self.scheduler.start()
        self._is_running = True
        logger.info("Maintenance scheduler started")

    def stop(self) -> None:
        """Stop the scheduler"""
        if self.scheduler:
            self.scheduler.shutdown()
            self._is_running = False
            logger.info("Maintenance scheduler stopped")

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running"""
        return self._is_running

    async def reap_stale_sessions(self) -> int:
        """Disconnect sessions past the heartbeat timeout"""
        set_correlation_id(generate_correlation_id())
        try:
            reaped = self.broker.reap_stale(settings.broker_heartbeat_timeout_seconds)
            if reaped:
                logger.info(f"Reaped {reaped} stale sessions")
            return reaped
        except Exception as e:
            logger.error(f"Error in reap stale sessions job: {e}")
            return 0

    async def cleanup_expired_notifications(self) -> int:
        """Delete notifications past their expiry"""
        set_correlation_id(generate_correlation_id())
        try:
            return NotificationRepository().delete_expired()
        except Exception as e:
            logger.error(f"Error in notification cleanup job: {e}")
            return 0


# Global scheduler instance
_scheduler: Optional[MaintenanceScheduler] = None


def get_scheduler() -> MaintenanceScheduler:
    """Get or create scheduler instance"""
    global _scheduler
    if _scheduler is None:
        _scheduler = MaintenanceScheduler()
    return _scheduler


def start_scheduler() -> None:
    """Start the global scheduler"""
    get_scheduler().start()


def stop_scheduler() -> None:
    """Stop the global scheduler"""
    global _scheduler
    if _scheduler:
        _scheduler.stop()
        _scheduler = None
