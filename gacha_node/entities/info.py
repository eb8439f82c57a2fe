from __future__ import annotations

import copy
from typing import Any, Mapping

from gacha_node.models.base import Model
from gacha_node.schemas.payloads import InfoPayload


class Info(Model):
    """Identity of the machine: owner, script name, price and the ``extra`` blob."""

    url = "info"
    defaults = {
        "ownerKey": None,
        "ownerUserName": None,
        "ownerDisplayName": None,
        "scriptName": None,
        "price": 0,
        "extra": {},
        "itemCount": 0,
        "payoutCount": 0,
        "inventoryCount": 0,
    }

    def parse(self, response: Any) -> dict[str, Any]:
        return InfoPayload.model_validate(response).model_dump()

    def to_notecard_json(self) -> dict[str, Any]:
        return {
            "price": self.get("price"),
            "extra": copy.deepcopy(self.get("extra") or {}),
        }

    def from_notecard_json(self, data: Mapping[str, Any]) -> None:
        self.set({
            "price": data.get("price", self.get("price")),
            "extra": copy.deepcopy(data.get("extra") or {}),
        })


class InfoExtra(Model):
    """Flat mirror of ``Info.extra``; never fetched on its own."""
