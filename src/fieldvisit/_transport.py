"""HTTP transport for the backing store document and the catalog resource."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from fieldvisit.exceptions import FieldVisitTransportError

_logger = logging.getLogger(__name__)

_JSON_CONTENT_TYPE = "application/json; charset=UTF-8"
_TEXT_CONTENT_TYPE = "text/plain; charset=UTF-8"


class Transport(Protocol):
    """Structural transport interface used by the persistence gateway.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def get_document(self, url: str) -> dict[str, Any]:
        ...

    async def post_document(self, url: str, document: Mapping[str, Any]) -> dict[str, Any]:
        ...

    async def get_text(self, url: str) -> str:
        ...


def _decode_object(text: str, url: str) -> dict[str, Any]:
    try:
        body = json.loads(text)
    except json.JSONDecodeError as exc:
        raise FieldVisitTransportError(f"Invalid JSON from {url}: {text[:200]}", endpoint=url) from exc
    if not isinstance(body, dict):
        raise FieldVisitTransportError(f"Expected a JSON object from {url}", endpoint=url)
    return body


class HttpTransport:
    """aiohttp transport.

    No timeout is imposed beyond the session's own defaults; a hung request
    blocks only the operation that issued it.
    """

    def __init__(self, http_session: aiohttp.ClientSession, *, post_as_text: bool = False) -> None:
        self._http = http_session
        self._post_as_text = post_as_text

    async def _request(self, method: str, url: str, **kwargs: Any) -> str:
        _logger.debug("%s %s", method, url)
        try:
            async with self._http.request(method, url, **kwargs) as resp:
                text = await resp.text()
                if not 200 <= resp.status < 300:
                    raise FieldVisitTransportError(
                        f"HTTP {resp.status} from {url}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=url,
                    )
        except FieldVisitTransportError:
            raise
        except TimeoutError as exc:
            raise FieldVisitTransportError(f"Request to {url} timed out", endpoint=url) from exc
        except aiohttp.ClientError as exc:
            raise FieldVisitTransportError(f"Request to {url} failed: {exc}", endpoint=url) from exc
        except UnicodeDecodeError as exc:
            raise FieldVisitTransportError(f"Undecodable response from {url}: {exc}", endpoint=url) from exc
        return text

    async def get_document(self, url: str) -> dict[str, Any]:
        text = await self._request("GET", url)
        return _decode_object(text, url)

    async def post_document(self, url: str, document: Mapping[str, Any]) -> dict[str, Any]:
        """POST a JSON document and return the decoded acknowledgement.

        A body of ``{"success": false}`` counts as a failure even with a 2xx
        status; hosted script backends report errors that way.
        """
        content_type = _TEXT_CONTENT_TYPE if self._post_as_text else _JSON_CONTENT_TYPE
        body = json.dumps(document, ensure_ascii=False)
        text = await self._request("POST", url, data=body.encode("utf-8"), headers={"content-type": content_type})
        ack = _decode_object(text, url) if text.strip() else {}
        if ack.get("success") is False:
            raise FieldVisitTransportError(
                f"Write rejected by {url}: {ack.get('error', 'unknown error')}",
                endpoint=url,
            )
        return ack

    async def get_text(self, url: str) -> str:
        return await self._request("GET", url)
