from gacha_node.schemas.payloads import (
    ConfigPayload,
    InfoPayload,
    InventoryPayload,
    ItemPayload,
    PayoutPayload,
)

__all__ = [
    "ConfigPayload",
    "InfoPayload",
    "InventoryPayload",
    "ItemPayload",
    "PayoutPayload",
]
