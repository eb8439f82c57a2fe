from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Callable, Mapping

# success(resource, body, options) / error(resource, failure, options)
ResultCallback = Callable[..., Any]
ProgressCallback = Callable[[float], Any]

# camelCase names used by the object's own clients
OPTION_ALIASES = {"loadAdmin": "load_admin"}


@dataclass
class FetchOptions:
    """Options bag threaded through fetch() and sync().

    ``attrs`` overrides the request body when not ``None``. ``handle`` is
    filled in by the sync adapter with the prepared request so observers can
    track in-flight calls. Unknown keys survive in ``extra``.
    """

    success: ResultCallback | None = None
    error: ResultCallback | None = None
    progress: ProgressCallback | None = None
    load_admin: bool = False
    attrs: Any = None
    handle: Any = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def coerce(cls, options: "FetchOptions | Mapping[str, Any] | None") -> "FetchOptions":
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        known = {f.name for f in fields(cls)} - {"extra"}
        renamed = {OPTION_ALIASES.get(key, key): value for key, value in options.items()}
        values = {key: value for key, value in renamed.items() if key in known}
        extra = {key: value for key, value in renamed.items() if key not in known}
        return cls(**values, extra=extra)

    def clone(self, **changes: Any) -> "FetchOptions":
        return replace(self, extra=dict(self.extra), **changes)
