"""Entry point: initialize services, start listeners and the nudge scheduler."""

import asyncio
import signal
from dataclasses import dataclass

import structlog
from google.cloud.firestore import Client

from config.constants import EVENTS_COLLECTION, SIGNALS_COLLECTION, NotificationType
from config.logging_config import setup_logging
from config.settings import Settings, settings
from notifications.dispatcher import NotificationDispatcher
from notifications.fcm_client import FCMPushClient
from notifications.filters import NotificationFilter, build_policies
from notifications.ports import EventStore, PushClient, SignalStore, UserStore
from runtime.listeners import CollectionListener
from scheduler.nudges import NudgeRunner
from scheduler.scheduler import Scheduler
from storage.firebase import close_firebase, get_firestore_client, init_firebase
from storage.repositories.event_repo import EventRepository
from storage.repositories.signal_repo import SignalRepository
from storage.repositories.user_repo import UserRepository
from triggers.engagement import EngagementTrigger
from triggers.proximity import ProximityTrigger

log = structlog.get_logger(__name__)


@dataclass
class Services:
    """Wired notification services, independent of Firebase."""

    dispatcher: NotificationDispatcher
    proximity: ProximityTrigger
    engagement: EngagementTrigger
    nudges: NudgeRunner
    scheduler: Scheduler


def build_services(
    config: Settings,
    user_store: UserStore,
    event_store: EventStore,
    signal_store: SignalStore,
    push_client: PushClient,
) -> Services:
    """Construct every service by explicit injection."""
    policies = build_policies(config)
    notification_filter = NotificationFilter(user_store, config.geohash_prefix_length)
    dispatcher = NotificationDispatcher(push_client, user_store, batch_size=config.multicast_batch_size)

    proximity = ProximityTrigger(
        notification_filter, dispatcher, policies[NotificationType.PROXIMITY]
    )
    engagement = EngagementTrigger(
        notification_filter,
        dispatcher,
        event_store,
        signal_store,
        policies[NotificationType.ENGAGEMENT],
        threshold=config.engagement_threshold,
    )
    nudges = NudgeRunner(notification_filter, dispatcher, policies)
    return Services(
        dispatcher=dispatcher,
        proximity=proximity,
        engagement=engagement,
        nudges=nudges,
        scheduler=Scheduler(config, nudges),
    )


def build_listeners(
    client: Client, services: Services, loop: asyncio.AbstractEventLoop
) -> list[CollectionListener]:
    return [
        CollectionListener(client, EVENTS_COLLECTION, services.proximity.on_event_created, loop),
        CollectionListener(client, SIGNALS_COLLECTION, services.engagement.on_signal_created, loop),
    ]


async def start_worker(config: Settings = settings) -> None:
    """Initialize all services and run until SIGINT/SIGTERM."""
    setup_logging(config.log_level)
    log.info("starting_crowd_notify", timezone=config.timezone)

    app = init_firebase(config)
    client = get_firestore_client(config)

    services = build_services(
        config,
        user_store=UserRepository(client),
        event_store=EventRepository(client),
        signal_store=SignalRepository(client),
        push_client=FCMPushClient(app),
    )

    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops do not support signal handlers
            pass

    listeners = build_listeners(client, services, loop)
    try:
        for listener in listeners:
            listener.start()
        services.scheduler.start()
        log.info("worker_ready", listeners=[listener.collection for listener in listeners])
        await stop.wait()
    finally:
        log.info("shutting_down")
        services.scheduler.stop()
        for listener in listeners:
            listener.stop()
        close_firebase()


def main() -> None:
    """Run the worker."""
    asyncio.run(start_worker())


if __name__ == "__main__":
    main()
