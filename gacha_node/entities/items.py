from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from gacha_node.models.base import Collection, Model
from gacha_node.schemas.payloads import ItemPayload

logger = logging.getLogger(__name__)

NOTECARD_FIELDS = ("name", "rarity", "limit", "bought")


class Item(Model):
    id_attribute = "name"
    defaults = {
        "name": None,
        "type": None,
        "rarity": 0,
        "limit": -1,
        "bought": 0,
        "active": True,
    }

    @property
    def is_configured(self) -> bool:
        """Items only end up on the notecard once they can be won or are limited."""
        return (self.get("rarity") or 0) > 0 or self.get("limit", -1) != -1

    def to_notecard_json(self) -> dict[str, Any]:
        return {field: self.get(field) for field in NOTECARD_FIELDS}


class Items(Collection):
    model_class = Item
    url = "items"

    def parse(self, response: Any) -> list[dict[str, Any]]:
        return [ItemPayload.model_validate(record).model_dump() for record in response]

    def populate(self, invs: Iterable[Model], script_name: str | None) -> int:
        """Add an unconfigured item for every inventory entry we don't know yet.

        The machine's own script is never offered as a prize. Items whose
        inventory entry has gone away are kept but flagged inactive. Returns
        the number of items added.
        """
        inventory = {inv.get("name"): inv for inv in invs if inv.get("name") != script_name}
        for item in self:
            item.set("active", item.get("name") in inventory)

        added = 0
        for name, inv in inventory.items():
            if name is None or self.get(name) is not None:
                continue
            self.add({"name": name, "type": inv.get("type")})
            added += 1
        if added:
            logger.debug("populated %d items from inventory", added)
        return added

    def to_notecard_json(self) -> list[dict[str, Any]]:
        return [item.to_notecard_json() for item in self if item.is_configured]

    def from_notecard_json(self, records: Iterable[Mapping[str, Any]]) -> None:
        self.reset([ItemPayload.model_validate(record).model_dump() for record in records])
