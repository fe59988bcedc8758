"""Application bootstrap wiring for startup validation and dependency assembly."""

from dataclasses import dataclass

from wallet_ledger.adapters import WebSocketPriceStreamAdapter, YahooChartAdapter
from wallet_ledger.application import WalletLedgerApplication
from wallet_ledger.config import AppSettings, config_load_settings
from wallet_ledger.db import (
    SQLAlchemyAssetDayStore,
    SQLAlchemyDatabaseHealthService,
    SQLAlchemyEventStore,
    SQLAlchemyPositionStore,
    db_create_engine,
)
from wallet_ledger.jobs import RefreshJobOrchestrator
from wallet_ledger.ledger import LockCoordinator, PositionFanoutService, PositionLedgerService
from wallet_ledger.pricing import HistoricalPriceService, LivePriceCache


@dataclass(frozen=True)
class RuntimeServices:
    """Wired runtime services shared by every trigger surface."""

    settings: AppSettings
    db_health_service: SQLAlchemyDatabaseHealthService
    historical_service: HistoricalPriceService
    position_service: PositionLedgerService
    fanout_service: PositionFanoutService
    price_cache: LivePriceCache


def bootstrap_create_services(settings: AppSettings | None = None) -> RuntimeServices:
    """Wire repositories, adapters and services after validating startup configuration.

    Args:
        settings: Optional pre-loaded settings; loaded from environment when omitted.

    Returns:
        RuntimeServices: Wired runtime services.

    Raises:
        SettingsLoadError: Raised when startup configuration validation fails.
    """

    resolved_settings = settings or config_load_settings()
    engine = db_create_engine(
        database_url=resolved_settings.database_url,
        pool_size=resolved_settings.fanout_max_workers + resolved_settings.background_max_workers,
    )
    event_repository = SQLAlchemyEventStore(engine=engine)
    position_repository = SQLAlchemyPositionStore(engine=engine)
    asset_day_repository = SQLAlchemyAssetDayStore(engine=engine)
    locks = LockCoordinator(backoff_seconds=resolved_settings.lock_backoff_seconds)

    market_data_adapter = YahooChartAdapter(
        base_url=resolved_settings.market_data_base_url,
        symbol_suffix=resolved_settings.market_data_symbol_suffix,
        request_timeout_seconds=resolved_settings.market_data_timeout_seconds,
        retry_attempts=resolved_settings.market_data_retry_attempts,
        retry_backoff_base_seconds=resolved_settings.market_data_backoff_base_seconds,
        retry_max_backoff_seconds=resolved_settings.market_data_backoff_max_seconds,
    )
    historical_service = HistoricalPriceService(
        locks=locks,
        repository=asset_day_repository,
        event_repository=event_repository,
        market_data=market_data_adapter,
        epoch=resolved_settings.historical_epoch,
        max_workers=resolved_settings.fanout_max_workers,
    )
    position_service = PositionLedgerService(
        locks=locks,
        event_repository=event_repository,
        position_repository=position_repository,
        historical=historical_service,
        price_max_workers=resolved_settings.fanout_max_workers,
        background_max_workers=resolved_settings.background_max_workers,
    )
    fanout_service = PositionFanoutService(
        calculator=position_service,
        event_repository=event_repository,
        max_workers=resolved_settings.fanout_max_workers,
    )
    price_cache = LivePriceCache(
        stream=WebSocketPriceStreamAdapter(
            stream_url=resolved_settings.price_stream_url,
            symbol_suffix=resolved_settings.market_data_symbol_suffix,
        ),
        event_repository=event_repository,
        reconnect_seconds=resolved_settings.price_stream_reconnect_seconds,
    )

    return RuntimeServices(
        settings=resolved_settings,
        db_health_service=SQLAlchemyDatabaseHealthService(engine=engine),
        historical_service=historical_service,
        position_service=position_service,
        fanout_service=fanout_service,
        price_cache=price_cache,
    )


def bootstrap_create_application(settings: AppSettings | None = None) -> WalletLedgerApplication:
    """Assemble the runtime application facade.

    Starts the live price stream when enabled in settings.

    Args:
        settings: Optional pre-loaded settings; loaded from environment when omitted.

    Returns:
        WalletLedgerApplication: Fully initialized application facade.

    Raises:
        SettingsLoadError: Raised when startup configuration validation fails.
    """

    services = bootstrap_create_services(settings)
    application = WalletLedgerApplication(
        settings=services.settings,
        db_health_service=services.db_health_service,
        historical_service=services.historical_service,
        position_service=services.position_service,
        fanout_service=services.fanout_service,
        price_cache=services.price_cache,
    )
    if services.settings.price_stream_enabled:
        application.start_price_stream()
    return application


def bootstrap_create_refresh_orchestrator(settings: AppSettings | None = None) -> RefreshJobOrchestrator:
    """Build refresh orchestrator for non-interactive trigger surfaces.

    Args:
        settings: Optional pre-loaded settings; loaded from environment when omitted.

    Returns:
        RefreshJobOrchestrator: Fully wired refresh orchestrator instance.

    Raises:
        SettingsLoadError: Raised when startup configuration validation fails.
    """

    services = bootstrap_create_services(settings)
    return RefreshJobOrchestrator(
        historical_service=services.historical_service,
        fanout_service=services.fanout_service,
        position_service=services.position_service,
    )
