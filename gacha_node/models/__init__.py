from gacha_node.models.base import Collection, Model
from gacha_node.models.events import ALL_EVENTS, Events
from gacha_node.models.options import FetchOptions

__all__ = [
    "ALL_EVENTS",
    "Collection",
    "Events",
    "FetchOptions",
    "Model",
]
