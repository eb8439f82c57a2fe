"""The gacha aggregate: one machine configuration built from its sub-resources.

A gacha owns one live instance per registered sub-resource (info, config,
payouts, items, inventory, ...). ``fetch()`` walks them strictly in
registration order, one request in flight at a time, skipping the ones the
session may not or need not load, and folds their progress into a single
weighted percentage. Once everything has arrived the persisted (notecard)
view is snapshotted so later edits can be detected.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from enum import Enum
from functools import partial
from types import MappingProxyType
from typing import Any, Callable, Mapping

from gacha_node.config.admin_key import AdminKeyStore
from gacha_node.entities import Config, Info, InfoExtra, Invs, Items, Payouts
from gacha_node.entities.payouts import Payout
from gacha_node.errors import FetchInProgressError
from gacha_node.infrastructure.http.sync import raise_for_failure
from gacha_node.models.base import Model, wrap_error
from gacha_node.models.events import ALL_EVENTS
from gacha_node.models.options import FetchOptions
from gacha_node.services.payout_ledger import PayoutRowContext, ledger_errors, recalculate_owner_amount

logger = logging.getLogger(__name__)

PROGRESS_SUFFIX = "ProgressPercentage"
PRICE_FIELD = "btn_price"

# reporter(gacha, submodel, fraction_done)
ProgressReporter = Callable[[Any, Any, float], None]


def progress_attribute(name: str) -> str:
    return f"{name}{PROGRESS_SUFFIX}"


@dataclass(frozen=True)
class SubmodelDescriptor:
    factory: Callable[..., Any]
    weight: float
    admin_only: bool = False
    fetch_enabled: bool = True
    progress_reporter: ProgressReporter | None = None


def record_count_progress(name: str, count_attribute: str) -> ProgressReporter:
    """Report progress as records received over the count announced by info.

    The expected count is ``info[count_attribute] + 1`` so an empty
    collection never divides by zero and never claims completion early.
    """

    def report(gacha: "Gacha", submodel: Any, fraction: float) -> None:
        expected = int(gacha.get("info").get(count_attribute) or 0) + 1
        gacha.set(progress_attribute(name), min(len(submodel) / expected * 100, 100))

    return report


DEFAULT_SUBMODELS: Mapping[str, SubmodelDescriptor] = MappingProxyType({
    "info": SubmodelDescriptor(factory=Info, weight=10),
    "info_extra": SubmodelDescriptor(factory=InfoExtra, weight=0, fetch_enabled=False),
    "config": SubmodelDescriptor(factory=Config, weight=10, admin_only=True),
    "payouts": SubmodelDescriptor(
        factory=Payouts,
        weight=20,
        admin_only=True,
        progress_reporter=record_count_progress("payouts", "payoutCount"),
    ),
    "items": SubmodelDescriptor(
        factory=Items,
        weight=30,
        progress_reporter=record_count_progress("items", "itemCount"),
    ),
    "invs": SubmodelDescriptor(
        factory=Invs,
        weight=30,
        admin_only=True,
        progress_reporter=record_count_progress("invs", "inventoryCount"),
    ),
})


class PipelineState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STALLED = "stalled"
    DONE = "done"


class FetchPipeline:
    """Sequential fetch of every sub-resource of one gacha.

    ``index`` points at the next entry to start. A sub-fetch that succeeds
    (synchronously or later) hands control back to the pipeline, which then
    starts the next one. A sub-fetch that fails stalls the pipeline: later
    entries are never started and keep their current progress.
    """

    def __init__(self, gacha: "Gacha", options: FetchOptions) -> None:
        self.gacha = gacha
        self.options = options
        self.names = list(gacha.submodels)
        self.index = 0
        self.current: str | None = None
        self.fetched: set[str] = set()
        self.state = PipelineState.IDLE
        self._waiting = False
        self._driving = False

    def start(self) -> None:
        self.state = PipelineState.RUNNING
        self._drive()

    def _drive(self) -> None:
        self._driving = True
        try:
            while self.state is PipelineState.RUNNING and not self._waiting:
                if self.index >= len(self.names):
                    self._complete()
                    break

                name = self.names[self.index]
                self.index += 1
                self.current = name
                descriptor = self.gacha.submodels[name]

                if self.gacha.should_skip(descriptor, self.options):
                    logger.debug("skipping %s (admin_only=%s, fetch=%s)", name, descriptor.admin_only, descriptor.fetch_enabled)
                    self.gacha.set(progress_attribute(name), 100)
                    continue

                self._waiting = True
                self._launch(name, descriptor)
        except BaseException:
            if self.state is PipelineState.RUNNING:
                self.state = PipelineState.STALLED
            raise
        finally:
            self._driving = False

    def _launch(self, name: str, descriptor: SubmodelDescriptor) -> None:
        submodel = self.gacha.get(name)
        fetch_options = self.options.clone(
            success=partial(self._entry_succeeded, name),
            error=partial(self._entry_failed, name),
        )
        if descriptor.progress_reporter is not None:
            fetch_options.progress = partial(descriptor.progress_reporter, self.gacha, submodel)

        logger.debug("fetching %s (%d/%d)", name, self.index, len(self.names))
        submodel.fetch(fetch_options)

    def _entry_succeeded(self, name: str, resource: Any, body: Any, options: FetchOptions) -> None:
        if self.state is not PipelineState.RUNNING or name != self.current:
            logger.warning("ignoring late completion of %s", name)
            return
        self.fetched.add(name)
        self.gacha.set(progress_attribute(name), 100)
        self._waiting = False
        if not self._driving:
            self._drive()

    def _entry_failed(self, name: str, resource: Any, failure: Any, options: FetchOptions) -> None:
        self.state = PipelineState.STALLED
        logger.warning("fetch of %s failed, %d of %d entries left unfetched", name, len(self.names) - self.index, len(self.names))
        if self.options.error is not None:
            self.options.error(resource, failure, options)
        else:
            raise_for_failure(resource, failure, options, intent="read")

    def _complete(self) -> None:
        gacha = self.gacha
        gacha.set("progressPercentage", 100)
        gacha.last_fetched_snapshot = gacha.to_notecard_json()

        # Both run after the snapshot, so anything they add counts as an unsaved change
        gacha.populate_items()
        gacha.ensure_owner_payout()

        self.state = PipelineState.DONE
        logger.info("gacha fetched, %d sub-resources", len(self.names))
        if self.options.success is not None:
            self.options.success(gacha, gacha.last_fetched_snapshot, self.options)


class Gacha(Model):
    url = "gacha"
    defaults = {
        "isValid": False,
        "progressPercentage": 0,
        "overrideProgress": None,
    }

    def __init__(
        self,
        attributes: Mapping[str, Any] | None = None,
        *,
        sync_adapter: Any,
        admin_keys: AdminKeyStore,
        submodels: Mapping[str, SubmodelDescriptor] | None = None,
    ) -> None:
        super().__init__(attributes, sync_adapter=sync_adapter)
        self.admin_keys = admin_keys
        self.submodels = submodels if submodels is not None else DEFAULT_SUBMODELS
        self.last_fetched_snapshot: Any = None
        self.pipeline: FetchPipeline | None = None
        self._bubbling: dict[str, Any] = {}

        self.on("change", self.update_progress)

        for name, descriptor in self.submodels.items():
            self.set(name, descriptor.factory(gacha=self), silent=True)
            self.set(progress_attribute(name), 0, silent=True)
            self._bubble_from(name)
            self.on(f"change:{name}", partial(self._on_submodel_replaced, name))

        self.listen_to_submodels()

    # ── wiring ──

    def _bubble(self, event: str, *args: Any) -> None:
        self.trigger(event, *args)

    def _bubble_from(self, name: str) -> None:
        previous = self._bubbling.pop(name, None)
        if previous is not None:
            previous.off(ALL_EVENTS, self._bubble)
        submodel = self.get(name)
        if submodel is not None:
            submodel.on(ALL_EVENTS, self._bubble)
            self._bubbling[name] = submodel

    def _on_submodel_replaced(self, name: str, *_: Any) -> None:
        self._bubble_from(name)
        self.listen_to_submodels()

    def listen_to_submodels(self) -> None:
        self.stop_listening()

        info = self.get("info")
        info_extra = self.get("info_extra")
        payouts = self.get("payouts")

        if info is not None and info_extra is not None:
            self.listen_to(info, "change:extra", self.update_extra_from_info)
            self.listen_to(info_extra, "change", self.update_info_from_extra)
        if info_extra is not None:
            self.listen_to(info_extra, f"change:{PRICE_FIELD}", self.recalculate_owner_amount)
        if payouts is not None:
            for event in ("add", "remove", "reset", "change:amount"):
                self.listen_to(payouts, event, self.recalculate_owner_amount)

    def update_extra_from_info(self, *_: Any) -> None:
        self.get("info_extra").replace(copy.deepcopy(self.get("info").get("extra") or {}))

    def update_info_from_extra(self, *_: Any) -> None:
        self.get("info").set("extra", copy.deepcopy(self.get("info_extra").attributes))

    # ── payouts ──

    @property
    def owner_key(self) -> str | None:
        info = self.get("info")
        return info.get("ownerKey") if info is not None else None

    def owner_price(self) -> int:
        """The price the ledger has to add up to: the button price, else the info price."""
        info_extra = self.get("info_extra")
        price = info_extra.get(PRICE_FIELD) if info_extra is not None else None
        if price is None:
            info = self.get("info")
            price = info.get("price") if info is not None else 0
        return int(price or 0)

    def recalculate_owner_amount(self, *_: Any) -> Payout | None:
        payouts = self.get("payouts")
        if payouts is None:
            return None
        return recalculate_owner_amount(payouts, self.owner_key, self.owner_price())

    def ensure_owner_payout(self) -> Payout | None:
        """Give an empty ledger its owner line, paid the full info price."""
        payouts = self.get("payouts")
        info = self.get("info")
        if payouts is None or info is None:
            logger.debug("no payouts or info sub-resource, owner line not created")
            return None
        if len(payouts):
            return None
        return payouts.add({
            "agentKey": info.get("ownerKey"),
            "userName": info.get("ownerUserName"),
            "displayName": info.get("ownerDisplayName"),
            "amount": info.get("price"),
        })

    def payout_row_context(self, payout: Payout) -> PayoutRowContext:
        return PayoutRowContext.for_payout(payout, self.owner_key, is_admin=self.admin_keys.load() is not None)

    @property
    def inventory_loaded(self) -> bool:
        return self.pipeline is not None and "invs" in self.pipeline.fetched

    def populate_items(self) -> int:
        """Offer every inventory entry as an item; needs an inventory read by the last fetch."""
        items = self.get("items")
        invs = self.get("invs")
        if items is None or invs is None:
            logger.debug("no items or inventory sub-resource, nothing to populate")
            return 0
        if not self.inventory_loaded:
            logger.debug("inventory not fetched in this session, items left as they are")
            return 0
        info = self.get("info")
        return items.populate(invs, info.get("scriptName") if info is not None else None)

    # ── progress ──

    def weighted_progress(self) -> float:
        total_weight = sum(descriptor.weight for descriptor in self.submodels.values())
        if total_weight <= 0:
            done = all(self.get(progress_attribute(name)) >= 100 for name in self.submodels)
            return 100 if done else 0
        weighted = sum(
            self.get(progress_attribute(name)) * descriptor.weight
            for name, descriptor in self.submodels.items()
        )
        return weighted / total_weight

    def update_progress(self, *_: Any) -> float:
        override = self.get("overrideProgress")
        progress = override if override is not None else self.weighted_progress()
        self.set("progressPercentage", progress)
        return progress

    # ── fetch / save ──

    def should_skip(self, descriptor: SubmodelDescriptor, options: FetchOptions) -> bool:
        if not descriptor.fetch_enabled:
            return True
        if descriptor.admin_only and (not options.load_admin or not self.admin_keys.load()):
            return True
        return False

    def fetch(self, options: FetchOptions | Mapping[str, Any] | None = None) -> FetchPipeline:
        options = FetchOptions.coerce(options)
        if self.pipeline is not None and self.pipeline.state is PipelineState.RUNNING:
            raise FetchInProgressError("a fetch is already running for this gacha")

        self.set({progress_attribute(name): 0 for name in self.submodels}, silent=True)
        self.set("progressPercentage", 0)

        self.pipeline = FetchPipeline(self, options)
        self.pipeline.start()
        return self.pipeline

    def to_post_json(self, options: FetchOptions, intent: str, verb: str) -> Any:
        return self.to_notecard_json()

    def save(self, options: FetchOptions | Mapping[str, Any] | None = None) -> Any:
        """Write the notecard view back; on success it becomes the new baseline."""
        options = FetchOptions.coerce(options)
        success = options.success
        snapshot = options.attrs if options.attrs is not None else self.to_notecard_json()

        def on_success(resource: Any, body: Any, sync_options: FetchOptions) -> None:
            self.last_fetched_snapshot = snapshot
            if success is not None:
                success(self, body, sync_options)
            self.trigger("sync", self, body, sync_options)

        return self.sync(
            "update",
            options.clone(attrs=snapshot, success=on_success, error=wrap_error(self, options.error)),
        )

    def validate(self) -> list[str]:
        payouts = self.get("payouts")
        errors = ledger_errors(payouts, self.owner_key, self.owner_price()) if payouts is not None else []
        self.set("isValid", not errors)
        return errors

    # ── views ──

    def to_json(self) -> dict[str, Any]:
        """Live view: every attribute, sub-resources replaced by their own live view."""
        json: dict[str, Any] = {}
        for key, value in self._attributes.items():
            serializer = getattr(value, "to_json", None)
            json[key] = serializer() if callable(serializer) else copy.deepcopy(value)
        return json

    def to_notecard_json(self) -> dict[str, Any]:
        """Persisted view: only the attributes that know how to write themselves to a notecard."""
        json: dict[str, Any] = {}
        for key, value in self._attributes.items():
            serializer = getattr(value, "to_notecard_json", None)
            if callable(serializer):
                json[key] = serializer()
        return json

    def from_notecard_json(self, data: Mapping[str, Any]) -> None:
        for key, value in data.items():
            loader = getattr(self.get(key), "from_notecard_json", None)
            if callable(loader):
                loader(value)
            else:
                logger.warning("notecard section %r has no sub-resource to load into", key)
        self.populate_items()

    def has_changed_since_fetch(self) -> bool:
        return self.to_notecard_json() != self.last_fetched_snapshot
