"""Application context assembly."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from inspection_drafts.config import Settings, load_settings
from inspection_drafts.domain.forms import FormDefinition, load_form
from inspection_drafts.exports.artifacts import ExportStore
from inspection_drafts.reconcile.engine import ReconciliationEngine, StartupReport
from inspection_drafts.session.controller import DraftSessionController
from inspection_drafts.store.db import SqliteKeyValueStore
from inspection_drafts.store.records import RecordStore
from inspection_drafts.sync.client import Credentials, SyncClient
from inspection_drafts.sync.remote import InspectionAPI

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Application-wide dependency container.

    Initialized once at startup and cached for the lifetime of the process.
    """

    settings: Settings
    backend: SqliteKeyValueStore
    store: RecordStore
    credentials: Credentials
    sync: SyncClient
    engine: ReconciliationEngine
    form: FormDefinition
    exports: ExportStore
    controller: DraftSessionController

    def login(self, token: str, user_id: str) -> StartupReport:
        """Hand the session over to an authenticated user."""
        self.controller.end_session()
        self.credentials.login(token, user_id)
        report = self.engine.switch_user(self.credentials.user_id)
        logger.info("Logged in as %s", user_id)
        return report

    def logout(self) -> None:
        self.controller.end_session()
        self.credentials.logout()
        self.engine.switch_user(self.credentials.user_id)
        logger.info("Logged out")


def build_app_context(settings: Settings) -> AppContext:
    backend = SqliteKeyValueStore(
        settings.storage.sqlite_path,
        wal=settings.storage.sqlite_wal,
        quota_bytes=settings.storage.quota_bytes,
    )
    store = RecordStore(backend, user_id=settings.sync.user_id)
    credentials = Credentials(token=settings.sync.token, user_id=settings.sync.user_id)

    api: InspectionAPI | None = None
    if settings.sync.enabled and settings.sync.api_url:
        api = InspectionAPI(
            settings.sync.api_url,
            credentials,
            timeout_seconds=settings.sync.timeout_seconds,
        )
    sync = SyncClient(api, credentials)
    engine = ReconciliationEngine(store, sync)

    form_path = Path(settings.session.form_path)
    form = load_form(str(form_path)) if form_path.exists() else FormDefinition()
    exports = ExportStore(settings.storage.export_path)

    controller = DraftSessionController(
        engine,
        form=form,
        exports=exports,
        autosave_interval_seconds=settings.session.autosave_interval_seconds,
    )
    return AppContext(
        settings=settings,
        backend=backend,
        store=store,
        credentials=credentials,
        sync=sync,
        engine=engine,
        form=form,
        exports=exports,
        controller=controller,
    )


@lru_cache(maxsize=1)
def get_app_context() -> AppContext:
    """Get or create the cached application context."""
    return build_app_context(load_settings())
