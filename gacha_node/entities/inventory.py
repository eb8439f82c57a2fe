from __future__ import annotations

from typing import Any

from gacha_node.models.base import Collection, Model
from gacha_node.schemas.payloads import InventoryPayload


class Inventory(Model):
    id_attribute = "name"


class Invs(Collection):
    """Contents of the machine's inventory. Read-only; not part of the notecard."""

    model_class = Inventory
    url = "invs"

    def parse(self, response: Any) -> list[dict[str, Any]]:
        return [InventoryPayload.model_validate(record).model_dump() for record in response]
