from __future__ import annotations

import os
from pathlib import Path

from plasticmart.config import resolve_data_dir
from plasticmart.services.settings_service import SettingsService
from plasticmart.storage.repo import JsonRepository


class PersistenceStore:
    """One repository per entity, all under the same data directory.

    Built once by the caller and handed to every service.
    """

    def __init__(self, data_dir: os.PathLike | str | None = None) -> None:
        self.data_dir: Path = resolve_data_dir(data_dir)
        self.settings = SettingsService(self.data_dir)

        backup = self.settings.get("backup") or {}
        opts = dict(
            backup_enabled=bool(backup.get("enabled", True)),
            backup_keep=int(backup.get("keep", 5)),
        )

        def repo(filename: str, entity: str) -> JsonRepository:
            return JsonRepository(self.data_dir / filename, entity_name=entity, key="id", **opts)

        self.parties = repo("parties.json", "party")
        self.units = repo("units.json", "unit")
        self.items = repo("items.json", "item")
        self.categories = repo("item_categories.json", "category")
        self.purchase_parties = repo("purchase_parties.json", "purchase party")
        self.item_party_prices = repo("item_party_prices.json", "item party price")
        self.invoices = repo("invoices.json", "invoice")
        self.payments = repo("payments.json", "payment")
        self.activity = repo("activity_logs.json", "activity log")
