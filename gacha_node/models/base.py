"""Attribute models and ordered collections that sync through the adapter.

Every sub-resource of a gacha is one of these. They hold keyed attributes,
announce changes as ``change:<attribute>`` followed by one ``change`` event,
and fetch themselves through the sync adapter of the gacha that owns them.
"""
from __future__ import annotations

import copy
import logging
from typing import Any, Iterable, Iterator, Mapping

from pydantic import ValidationError

from gacha_node.errors import GachaError
from gacha_node.models.events import ALL_EVENTS, Events
from gacha_node.models.options import FetchOptions, ResultCallback

logger = logging.getLogger(__name__)


def wrap_error(resource: Any, error: ResultCallback | None) -> ResultCallback:
    """Announce a failed sync on the resource, then hand it to ``error`` or raise."""
    from gacha_node.infrastructure.http.sync import raise_for_failure

    def on_error(target: Any, failure: Any, options: FetchOptions) -> None:
        resource.trigger("error", resource, failure, options)
        if error is not None:
            error(resource, failure, options)
        else:
            raise_for_failure(resource, failure, options)

    return on_error


class Model(Events):
    id_attribute = "id"
    defaults: Mapping[str, Any] = {}
    url: str | None = None

    def __init__(
        self,
        attributes: Mapping[str, Any] | None = None,
        *,
        gacha: Any = None,
        collection: "Collection | None" = None,
        sync_adapter: Any = None,
    ) -> None:
        self.gacha = gacha
        self.collection = collection
        self._sync_adapter = sync_adapter
        self._attributes: dict[str, Any] = copy.deepcopy(dict(self.defaults))
        if attributes:
            self._attributes.update(attributes)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._attributes!r})"

    # ── attributes ──

    @property
    def attributes(self) -> dict[str, Any]:
        return dict(self._attributes)

    @property
    def id(self) -> Any:
        return self._attributes.get(self.id_attribute)

    def get(self, key: str, default: Any = None) -> Any:
        return self._attributes.get(key, default)

    def has(self, key: str) -> bool:
        return self._attributes.get(key) is not None

    def set(
        self,
        key: str | Mapping[str, Any],
        value: Any = None,
        *,
        silent: bool = False,
    ) -> list[str]:
        """Set one attribute or a mapping of them; returns the keys that changed.

        Assigning a value equal to the current one is a no-op and fires
        nothing, which is what stops mirrored models from ping-ponging.
        """
        changes = dict(key) if isinstance(key, Mapping) else {key: value}
        changed: list[str] = []
        for name, new_value in changes.items():
            if name in self._attributes and _same(self._attributes[name], new_value):
                continue
            self._attributes[name] = new_value
            changed.append(name)
        self._announce(changed, silent)
        return changed

    def unset(self, key: str, *, silent: bool = False) -> bool:
        if key not in self._attributes:
            return False
        del self._attributes[key]
        self._announce([key], silent)
        return True

    def replace(self, attributes: Mapping[str, Any] | None, *, silent: bool = False) -> list[str]:
        """Make the attribute set exactly ``attributes``: missing keys are dropped."""
        incoming = dict(attributes or {})
        changed = [name for name in self._attributes if name not in incoming]
        for name in changed:
            del self._attributes[name]
        for name, new_value in incoming.items():
            if name in self._attributes and _same(self._attributes[name], new_value):
                continue
            self._attributes[name] = new_value
            changed.append(name)
        self._announce(changed, silent)
        return changed

    def _announce(self, changed: list[str], silent: bool) -> None:
        if silent or not changed:
            return
        for name in changed:
            self.trigger(f"change:{name}", self, self._attributes.get(name))
        self.trigger("change", self)

    def to_json(self) -> dict[str, Any]:
        return copy.deepcopy(self._attributes)

    # ── sync ──

    @property
    def sync_adapter(self) -> Any:
        if self._sync_adapter is not None:
            return self._sync_adapter
        for owner in (self.gacha, self.collection):
            if owner is not None and getattr(owner, "sync_adapter", None) is not None:
                return owner.sync_adapter
        raise GachaError(f"{type(self).__name__} has no sync adapter to talk through")

    def to_post_json(self, options: FetchOptions, intent: str, verb: str) -> Any:
        return None

    def parse(self, response: Any) -> dict[str, Any]:
        return dict(response)

    def sync(self, intent: str, options: FetchOptions | Mapping[str, Any] | None = None) -> Any:
        return self.sync_adapter.sync(intent, self, options)

    def fetch(self, options: FetchOptions | Mapping[str, Any] | None = None) -> Any:
        options = FetchOptions.coerce(options)
        success = options.success

        def on_success(resource: Any, body: Any, sync_options: FetchOptions) -> None:
            try:
                attributes = self.parse(body)
            except (ValidationError, TypeError, ValueError) as exc:
                logger.warning("%s rejected response body: %s", type(self).__name__, exc)
                sync_options.error(self, exc, sync_options)
                return
            self.set(attributes)
            if success is not None:
                success(self, body, sync_options)
            self.trigger("sync", self, body, sync_options)

        return self.sync("read", options.clone(success=on_success, error=wrap_error(self, options.error)))


class Collection(Events):
    model_class: type[Model] = Model
    url: str | None = None

    def __init__(
        self,
        models: Iterable[Mapping[str, Any] | Model] | None = None,
        *,
        gacha: Any = None,
        sync_adapter: Any = None,
    ) -> None:
        self.gacha = gacha
        self._sync_adapter = sync_adapter
        self._models: list[Model] = []
        if models:
            self.reset(models, silent=True)

    def __len__(self) -> int:
        return len(self._models)

    def __iter__(self) -> Iterator[Model]:
        return iter(list(self._models))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._models!r})"

    @property
    def models(self) -> list[Model]:
        return list(self._models)

    def at(self, index: int) -> Model:
        return self._models[index]

    def get(self, model_id: Any) -> Model | None:
        if isinstance(model_id, Model):
            model_id = model_id.id
        if model_id is None:
            return None
        for model in self._models:
            if model.id == model_id:
                return model
        return None

    def _prepare(self, attributes: Mapping[str, Any] | Model) -> Model:
        if isinstance(attributes, Model):
            attributes.collection = self
            return attributes
        return self.model_class(attributes, collection=self)

    def add(self, attributes: Mapping[str, Any] | Model, *, silent: bool = False) -> Model:
        model = self._prepare(attributes)
        existing = self.get(model.id)
        if existing is not None:
            return existing
        self._models.append(model)
        model.on(ALL_EVENTS, self._on_model_event)
        if not silent:
            self.trigger("add", model, self)
        return model

    def remove(self, model: Model | Any, *, silent: bool = False) -> Model | None:
        target = model if isinstance(model, Model) and model in self._models else self.get(model)
        if target is None:
            return None
        self._models.remove(target)
        target.off(ALL_EVENTS, self._on_model_event)
        if target.collection is self:
            target.collection = None
        if not silent:
            self.trigger("remove", target, self)
        return target

    def reset(self, models: Iterable[Mapping[str, Any] | Model] | None = None, *, silent: bool = False) -> None:
        for model in self._models:
            model.off(ALL_EVENTS, self._on_model_event)
        self._models = []
        for attributes in models or ():
            self.add(attributes, silent=True)
        if not silent:
            self.trigger("reset", self)

    def _on_model_event(self, name: str, *args: Any) -> None:
        self.trigger(name, *args)

    def to_json(self) -> list[dict[str, Any]]:
        return [model.to_json() for model in self._models]

    # ── sync ──

    @property
    def sync_adapter(self) -> Any:
        if self._sync_adapter is not None:
            return self._sync_adapter
        if self.gacha is not None and getattr(self.gacha, "sync_adapter", None) is not None:
            return self.gacha.sync_adapter
        raise GachaError(f"{type(self).__name__} has no sync adapter to talk through")

    def to_post_json(self, options: FetchOptions, intent: str, verb: str) -> Any:
        return None

    def parse(self, response: Any) -> list[dict[str, Any]]:
        return [dict(record) for record in response]

    def sync(self, intent: str, options: FetchOptions | Mapping[str, Any] | None = None) -> Any:
        return self.sync_adapter.sync(intent, self, options)

    def fetch(self, options: FetchOptions | Mapping[str, Any] | None = None) -> Any:
        """Read the whole collection, adding records one by one.

        ``progress`` is reported after every record so per-record reporters
        see the collection grow. It is not handed to the adapter: byte
        fractions of the download say nothing about how many records the
        collection holds.
        """
        options = FetchOptions.coerce(options)
        success = options.success
        progress = options.progress

        def on_success(resource: Any, body: Any, sync_options: FetchOptions) -> None:
            try:
                records = self.parse(body)
            except (ValidationError, TypeError, ValueError) as exc:
                logger.warning("%s rejected response body: %s", type(self).__name__, exc)
                sync_options.error(self, exc, sync_options)
                return
            self.reset()
            for index, record in enumerate(records, start=1):
                self.add(record)
                if progress is not None:
                    progress(index / len(records))
            logger.debug("%s fetched %d records", type(self).__name__, len(records))
            if success is not None:
                success(self, body, sync_options)
            self.trigger("sync", self, body, sync_options)

        return self.sync(
            "read",
            options.clone(success=on_success, error=wrap_error(self, options.error), progress=None),
        )


def _same(old: Any, new: Any) -> bool:
    return old is new or bool(old == new)
