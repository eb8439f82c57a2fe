"""HTTP transport for gacha sub-resources.

The object endpoint speaks a small protocol of its own: every write is a
POST, the CRUD verb travels in the URL path instead of the method, an admin
token (when held) is a path segment in front of the verb, and a literal
``null`` body is how the object says a call failed.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Mapping

import requests

from gacha_node.config.admin_key import AdminKeyStore
from gacha_node.config.runtime import RuntimeSettings
from gacha_node.errors import SyncError, UnknownIntentError
from gacha_node.models.options import FetchOptions

logger = logging.getLogger(__name__)

INTENT_TO_VERB: dict[str, str] = {
    "create": "post",
    "update": "post",
    "patch": "post",
    "delete": "delete",
    "read": "get",
}

VERB_TO_METHOD: dict[str, str] = {
    "post": "POST",
    "delete": "DELETE",
    "get": "GET",
}

_CHUNK_SIZE = 8192


def raise_for_failure(resource: Any, failure: Any, options: FetchOptions, *, intent: str | None = None) -> None:
    """Default error handler: failures are never dropped silently."""
    url = getattr(options.handle, "url", None)
    raise SyncError(
        f"There was an error talking with the object: {failure}",
        intent=intent,
        url=url,
        failure=failure,
    ) from (failure if isinstance(failure, BaseException) else None)


def _result(resource: Any, attribute: str) -> Any:
    value = getattr(resource, attribute, None)
    return value() if callable(value) else value


class SyncAdapter:
    def __init__(
        self,
        settings: RuntimeSettings,
        admin_keys: AdminKeyStore,
        session: requests.Session | None = None,
    ) -> None:
        self.settings = settings
        self.admin_keys = admin_keys
        self.session = session or requests.Session()

    def url_for(self, resource: Any, verb: str) -> str:
        admin_key = self.admin_keys.load()
        return (
            self.settings.base_url
            + self.settings.document_path
            + (f"{admin_key}/" if admin_key else "")
            + verb
            + "/"
            + str(_result(resource, "url") or "")
        )

    def sync(
        self,
        intent: str,
        resource: Any,
        options: FetchOptions | Mapping[str, Any] | None = None,
    ) -> requests.PreparedRequest:
        verb = INTENT_TO_VERB.get(intent)
        if verb is None:
            raise UnknownIntentError(f"unknown sync intent: {intent!r}, expected one of {sorted(INTENT_TO_VERB)}")

        options = FetchOptions.coerce(options)
        success = options.success
        error = options.error
        if error is None:
            def error(target: Any, failure: Any, sync_options: FetchOptions) -> None:
                raise_for_failure(target, failure, sync_options, intent=intent)

        body = options.attrs if options.attrs is not None else resource.to_post_json(options, intent, verb)
        request = requests.Request(
            method=VERB_TO_METHOD[verb],
            url=self.url_for(resource, verb),
            data=json.dumps(body),
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )
        prepared = self.session.prepare_request(request)
        options.handle = prepared
        resource.trigger("request", resource, prepared, options)

        logger.debug("sync intent=%s method=%s url=%s", intent, prepared.method, prepared.url)

        response: requests.Response | None = None
        try:
            response = self.session.send(
                prepared,
                timeout=self.settings.request_timeout_seconds,
                stream=options.progress is not None,
            )
            response.raise_for_status()
            payload = self._read_body(response, options)
        except (requests.RequestException, ValueError) as exc:
            logger.warning("sync intent=%s url=%s failed: %s", intent, prepared.url, exc)
            error(resource, exc, options)
            return prepared
        finally:
            if response is not None:
                response.close()

        # The transport succeeded, but null is the object's way of refusing the call
        if payload is None:
            logger.warning("sync intent=%s url=%s answered null", intent, prepared.url)
            error(resource, None, options)
        elif success is not None:
            success(resource, payload, options)
        return prepared

    def _read_body(self, response: requests.Response, options: FetchOptions) -> Any:
        """Decode the JSON body, reporting byte progress when the size is known."""
        total = int(response.headers.get("Content-Length") or 0)
        if options.progress is None or total <= 0:
            return response.json()

        received = 0
        chunks: list[bytes] = []
        for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
            chunks.append(chunk)
            received += len(chunk)
            options.progress(min(received / total, 1.0))
        return json.loads(b"".join(chunks).decode(response.encoding or "utf-8"))
