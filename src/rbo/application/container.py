from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from rbo.config import Settings
from rbo.repositories.rest_repo import RestRepository
from rbo.repositories.sqlite_repo import SqliteRepository
from rbo.services.intake_service import IntakeService
from rbo.services.inventory_service import InventoryService
from rbo.services.reconciliation_service import ReconciliationService
from rbo.services.reporting_service import ReportingService


@dataclass(frozen=True)
class AppContainer:
    settings: Settings
    repo: object
    intake: IntakeService
    reconciliation: ReconciliationService
    inventory: InventoryService
    reporting: ReportingService


def build_repository(settings: Settings, db_path: Path | str):
    if settings.uses_remote_store:
        return RestRepository(settings.supabase_url, settings.supabase_key, timeout=settings.http_timeout)
    repo = SqliteRepository(db_path)
    repo.init_db()
    return repo


def build_container(settings: Settings, db_path: Path | str) -> AppContainer:
    repo = build_repository(settings, db_path)

    intake = IntakeService(repo, tax_rate=settings.tax_rate)
    reconciliation = ReconciliationService(repo, margin_multiplier=settings.margin_multiplier)
    inventory = InventoryService(repo)
    reporting = ReportingService(repo, inventory)

    return AppContainer(
        settings=settings,
        repo=repo,
        intake=intake,
        reconciliation=reconciliation,
        inventory=inventory,
        reporting=reporting,
    )
