"""Assembly of the engine components from settings."""

from __future__ import annotations

from core.catalog import CatalogRepository
from core.catalog_client import CatalogAPIClient
from core.settings_manager import SettingsManager, settings as default_settings
from extraction.fetcher import PageFetcher
from session.emitter import EventEmitter
from session.state_machine import HostPage, NavigationStateMachine, SessionState


def build_catalog_repository(settings: SettingsManager = default_settings) -> CatalogRepository:
    client = CatalogAPIClient(
        api_url=settings.get("catalog_api_url"),
        api_key=settings.get("catalog_api_key"),
        table=settings.get("catalog_table"),
        timeout=settings.get("fetch_timeout"),
    )
    return CatalogRepository(
        api_client=client,
        static_path=settings.get("catalog_static_path"),
        mode=settings.get("catalog_validation_mode"),
    )


def build_fetcher(settings: SettingsManager = default_settings) -> PageFetcher:
    return PageFetcher(cookies=settings.cookies, timeout=settings.get("fetch_timeout"))


def build_state_machine(
    host: HostPage,
    settings: SettingsManager = default_settings,
    emitter: EventEmitter | None = None,
) -> NavigationStateMachine:
    session = SessionState(catalog=build_catalog_repository(settings))
    return NavigationStateMachine(
        host,
        session,
        emitter=emitter,
        fetcher=build_fetcher(settings),
        limit=settings.get("match_limit"),
        poll_interval=settings.get("nav_poll_interval"),
        toast_delay=settings.get("toast_delay"),
        toast_countdown=settings.get("toast_countdown"),
    )
