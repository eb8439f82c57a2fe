from gacha_node.config.admin_key import AdminKeyStore
from gacha_node.config.runtime import RuntimeSettings

__all__ = [
    "AdminKeyStore",
    "RuntimeSettings",
]
