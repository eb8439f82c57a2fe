from gacha_node.infrastructure.http.sync import INTENT_TO_VERB, SyncAdapter, raise_for_failure

__all__ = [
    "INTENT_TO_VERB",
    "SyncAdapter",
    "raise_for_failure",
]
