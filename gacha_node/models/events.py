"""Per-instance event dispatch for models and collections.

Handlers are registered by event name. The special name ``"all"`` receives
every event, with the event name prepended to the arguments, which is what
lets an owner re-emit a child's whole event stream as its own.
"""
from __future__ import annotations

from typing import Any, Callable

ALL_EVENTS = "all"

EventCallback = Callable[..., Any]


class Events:
    _handlers: dict[str, list[EventCallback]]
    _listening: list[tuple["Events", str, EventCallback]]

    def _ensure_event_state(self) -> None:
        if "_handlers" not in self.__dict__:
            self._handlers = {}
            self._listening = []

    def on(self, name: str, callback: EventCallback) -> None:
        self._ensure_event_state()
        self._handlers.setdefault(name, []).append(callback)

    def off(self, name: str | None = None, callback: EventCallback | None = None) -> None:
        self._ensure_event_state()
        names = [name] if name is not None else list(self._handlers)
        for key in names:
            if callback is None:
                self._handlers.pop(key, None)
                continue
            remaining = [handler for handler in self._handlers.get(key, []) if handler != callback]
            if remaining:
                self._handlers[key] = remaining
            else:
                self._handlers.pop(key, None)

    def trigger(self, name: str, *args: Any) -> None:
        self._ensure_event_state()
        # Copy so handlers may (un)subscribe while we dispatch
        for handler in list(self._handlers.get(name, ())):
            handler(*args)
        if name != ALL_EVENTS:
            for handler in list(self._handlers.get(ALL_EVENTS, ())):
                handler(name, *args)

    def listen_to(self, other: "Events", name: str, callback: EventCallback) -> None:
        """Subscribe to ``other`` while remembering it, so stop_listening can undo it."""
        self._ensure_event_state()
        other.on(name, callback)
        self._listening.append((other, name, callback))

    def stop_listening(
        self,
        other: "Events | None" = None,
        name: str | None = None,
        callback: EventCallback | None = None,
    ) -> None:
        self._ensure_event_state()
        kept: list[tuple[Events, str, EventCallback]] = []
        for target, event_name, handler in self._listening:
            matches = (
                (other is None or target is other)
                and (name is None or event_name == name)
                and (callback is None or handler == callback)
            )
            if matches:
                target.off(event_name, handler)
            else:
                kept.append((target, event_name, handler))
        self._listening = kept
