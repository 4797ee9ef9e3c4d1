"""Dependency injection container for the application."""

from dependency_injector import containers, providers

from busops.core.config import Settings
from busops.core.database import Database
from busops.core.cache import ResponseCache
from busops.services.accounts import InMemoryAccountRepository, SqlAccountRepository
from busops.services.calendar import NullCalendarPublisher
from busops.services.notion import NotionGateway
from busops.services.scheduler import CronScheduler
from busops.services.sync import SyncJob
from busops.services.user_auth import UserAuthService


class Container(containers.DeclarativeContainer):
    """Application dependency injection container."""

    # Settings
    settings = providers.Singleton(
        Settings,
    )

    # Database (account store when ACCOUNT_STORE=database)
    database = providers.Singleton(
        Database,
        settings=settings
    )

    # Response cache, one per process
    cache = providers.Singleton(
        ResponseCache,
        ttl_seconds=settings.provided.cache_ttl
    )

    account_repository = providers.Selector(
        settings.provided.account_store,
        memory=providers.Singleton(InMemoryAccountRepository),
        database=providers.Singleton(SqlAccountRepository, database=database),
    )

    # Services
    user_auth_service = providers.Factory(
        UserAuthService,
        repository=account_repository,
        settings=settings
    )

    notion_gateway = providers.Singleton(
        NotionGateway,
        settings=settings
    )

    calendar_publisher = providers.Singleton(
        NullCalendarPublisher
    )

    sync_job = providers.Singleton(
        SyncJob,
        settings=settings,
        gateway=notion_gateway,
        publisher=calendar_publisher
    )

    scheduler = providers.Singleton(
        CronScheduler,
        timezone=settings.provided.sync_timezone
    )
