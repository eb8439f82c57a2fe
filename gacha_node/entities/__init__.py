from gacha_node.entities.config import Config
from gacha_node.entities.info import Info, InfoExtra
from gacha_node.entities.inventory import Inventory, Invs
from gacha_node.entities.items import Item, Items
from gacha_node.entities.payouts import Payout, Payouts

__all__ = [
    "Config",
    "Info",
    "InfoExtra",
    "Inventory",
    "Invs",
    "Item",
    "Items",
    "Payout",
    "Payouts",
]
