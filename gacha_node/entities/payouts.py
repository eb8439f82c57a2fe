from __future__ import annotations

from typing import Any, Iterable

from gacha_node.models.base import Collection, Model
from gacha_node.schemas.payloads import PayoutPayload


class Payout(Model):
    id_attribute = "agentKey"
    defaults = {
        "agentKey": None,
        "displayName": None,
        "userName": None,
        "amount": 0,
    }


class Payouts(Collection):
    model_class = Payout
    url = "payouts"

    @property
    def total_price(self) -> int:
        return sum(int(payout.get("amount") or 0) for payout in self)

    def parse(self, response: Any) -> list[dict[str, Any]]:
        return [PayoutPayload.model_validate(record).model_dump() for record in response]

    def to_notecard_json(self) -> list[list[Any]]:
        return [[payout.get("agentKey"), payout.get("amount")] for payout in self]

    def from_notecard_json(self, pairs: Iterable[Iterable[Any]]) -> None:
        known = {payout.id: payout.attributes for payout in self}
        lines = []
        for agent_key, amount in pairs:
            line = dict(known.get(agent_key) or {"agentKey": agent_key})
            line["amount"] = int(amount)
            lines.append(line)
        self.reset(lines)
