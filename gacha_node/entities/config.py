from __future__ import annotations

from typing import Any, Mapping

from gacha_node.models.base import Model
from gacha_node.schemas.payloads import ConfigPayload


class Config(Model):
    url = "config"

    def parse(self, response: Any) -> dict[str, Any]:
        return ConfigPayload.model_validate(response).model_dump()

    def to_notecard_json(self) -> dict[str, Any]:
        return self.to_json()

    def from_notecard_json(self, data: Mapping[str, Any]) -> None:
        self.set(dict(data))
