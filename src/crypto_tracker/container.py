"""DI container. Wire via init_container(); endpoints use Depends(Provide[Container.*])."""
from typing import Annotated

from dependency_injector import containers, providers
from dependency_injector.wiring import Provide
from fastapi import Depends

from crypto_tracker.config import Settings
from crypto_tracker.db.alert_store import SqlAlertStore
from crypto_tracker.db.portfolio_store import SqlPortfolioStore
from crypto_tracker.db.sessions import create_db_engine
from crypto_tracker.db.user_store import SqlUserStore
from crypto_tracker.identity import Auth0IdentityProvider
from crypto_tracker.notifications import EmailNotificationSender
from crypto_tracker.providers import (CoinGeckoGateway, ProviderErrorMapper,
                                      ThrottledCache)
from crypto_tracker.services import (AlertScheduler, AlertsService,
                                     CryptoService, PortfolioService,
                                     UsersService)


class Container(containers.DeclarativeContainer):
    wiring_config = containers.WiringConfiguration(
        modules=[
            "crypto_tracker.routers.crypto",
            "crypto_tracker.routers.alerts",
            "crypto_tracker.routers.portfolio",
            "crypto_tracker.routers.users",
        ]
    )

    settings = providers.Singleton(Settings.from_env)

    # One cache per process: every upstream call shares its queue and entries.
    throttled_cache = providers.Singleton(
        ThrottledCache,
        ttl=settings.provided.cache_ttl_seconds,
        request_delay=settings.provided.request_delay_seconds,
        max_entries=settings.provided.cache_max_entries,
    )
    gateway = providers.Singleton(
        CoinGeckoGateway,
        throttled_cache,
        api_key=settings.provided.coingecko_api_key,
        news_base_url=settings.provided.news_api_url,
        timeout=settings.provided.http_timeout_seconds,
    )

    engine = providers.Singleton(
        create_db_engine,
        settings.provided.database_url,
        echo=settings.provided.sql_echo,
    )
    alert_store = providers.Singleton(SqlAlertStore, engine)
    user_store = providers.Singleton(SqlUserStore, engine)
    portfolio_store = providers.Singleton(SqlPortfolioStore, engine)

    notification_sender = providers.Singleton(
        EmailNotificationSender,
        user_store,
        smtp_host=settings.provided.smtp_host,
        smtp_port=settings.provided.smtp_port,
        smtp_user=settings.provided.smtp_user,
        smtp_password=settings.provided.smtp_password,
        sender=settings.provided.email_from,
        frontend_url=settings.provided.frontend_url,
    )
    identity_provider = providers.Singleton(
        Auth0IdentityProvider,
        settings.provided.auth0_domain,
        settings.provided.auth0_client_id,
        settings.provided.auth0_client_secret,
        timeout=settings.provided.http_timeout_seconds,
    )

    alert_scheduler = providers.Singleton(
        AlertScheduler,
        alert_store=alert_store,
        market_data=gateway,
        user_store=user_store,
        identity_provider=identity_provider,
        notification_sender=notification_sender,
        interval=settings.provided.alert_check_interval_seconds,
        snapshot_size=settings.provided.alert_snapshot_size,
        snapshot_page=settings.provided.alert_snapshot_page,
        tick_timeout=settings.provided.alert_tick_timeout_seconds,
    )

    crypto_service = providers.Singleton(
        CryptoService,
        gateway,
        providers.Factory(ProviderErrorMapper, "Crypto", "CoinGecko"),
    )
    alerts_service = providers.Singleton(AlertsService, alert_store, gateway)
    portfolio_service = providers.Singleton(PortfolioService, portfolio_store, gateway)
    users_service = providers.Singleton(UsersService, user_store)


# Type aliases for route injection (avoid repeating Annotated[...] in every route)
CryptoServiceDep = Annotated[CryptoService, Depends(Provide[Container.crypto_service])]
AlertsServiceDep = Annotated[AlertsService, Depends(Provide[Container.alerts_service])]
PortfolioServiceDep = Annotated[
    PortfolioService, Depends(Provide[Container.portfolio_service])
]
UsersServiceDep = Annotated[UsersService, Depends(Provide[Container.users_service])]


def init_container() -> Container:
    """Create container and wire to router modules."""
    container = Container()
    container.wire()
    return container
