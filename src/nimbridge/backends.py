"""Backend handling for nimbridge."""

import asyncio
import json
import logging
import time
from typing import Any, AsyncIterator, Dict, Optional

import anyio
import httpx

from .config import ProxySettings
from .errors import AuthConfigError, InternalError, UpstreamError, UpstreamTimeoutError

logger = logging.getLogger(__name__)


def _decode_body(content: bytes) -> Any:
    try:
        return json.loads(content)
    except ValueError:
        return content.decode(errors="replace")


class BackendStream:
    """
    An open streaming response from the backend.

    Owns the HTTP client it was sent with; both are released by ``aclose``.
    Reads are bounded by the deadline set when the request was sent.
    """

    def __init__(self, response: httpx.Response, client: httpx.AsyncClient, deadline: float):
        self.response = response
        self.deadline = deadline
        self.closed = False
        self._client = client

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        chunks = self.response.aiter_bytes()
        while True:
            remaining = self.deadline - time.monotonic()
            if remaining <= 0:
                raise UpstreamTimeoutError()
            try:
                chunk = await asyncio.wait_for(chunks.__anext__(), timeout=remaining)
            except StopAsyncIteration:
                return
            except asyncio.TimeoutError as e:
                raise UpstreamTimeoutError() from e
            yield chunk

    async def aclose(self) -> None:
        if self.closed:
            return
        self.closed = True
        # Runs during client-disconnect cancellation too.
        with anyio.CancelScope(shield=True):
            try:
                await self.response.aclose()
            finally:
                await self._client.aclose()


class BackendClient:
    """
    Sends translated chat requests to the configured backend.

    A new ``httpx.AsyncClient`` is used per call. ``transport`` replaces the
    network transport, which is how tests plug in ``httpx.MockTransport``.
    """

    def __init__(self, settings: ProxySettings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport

    @property
    def url(self) -> str:
        return f"{self.settings.base_url}/chat/completions"

    def _headers(self) -> Dict[str, str]:
        if not self.settings.api_key:
            raise AuthConfigError()
        return {
            "Authorization": f"Bearer {self.settings.api_key}",
            "Content-Type": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self._transport,
            timeout=httpx.Timeout(self.settings.timeout),
        )

    async def complete(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Send a non-streaming request and return the decoded JSON body.

        Raises:
            UpstreamError: The backend answered with a non-success status
            UpstreamTimeoutError: No complete answer within the configured timeout
            InternalError: The backend could not be reached or sent invalid JSON
        """
        headers = self._headers()
        client = self._client()
        try:
            response = await asyncio.wait_for(
                client.post(self.url, json=payload, headers=headers),
                timeout=self.settings.timeout,
            )
            if not response.is_success:
                raise UpstreamError.from_response(
                    response.status_code, _decode_body(response.content)
                )
            try:
                return response.json()
            except ValueError as e:
                logger.error(f"Backend returned invalid JSON: {str(e)}")
                raise InternalError() from e
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.error(f"Backend request timed out after {self.settings.timeout}s")
            raise UpstreamTimeoutError() from e
        except httpx.HTTPError as e:
            logger.error(f"Error calling backend at {self.url}: {str(e)}")
            raise InternalError() from e
        finally:
            await client.aclose()

    async def open_stream(self, payload: Dict[str, Any]) -> BackendStream:
        """
        Send a streaming request and return the open response.

        Errors before the first body byte are raised exactly as in
        ``complete``; a non-success status has its body read and closed first.
        """
        headers = self._headers()
        deadline = time.monotonic() + self.settings.timeout
        client = self._client()
        request = client.build_request("POST", self.url, json=payload, headers=headers)

        try:
            response = await asyncio.wait_for(
                client.send(request, stream=True),
                timeout=self.settings.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            await client.aclose()
            logger.error(f"Backend stream timed out after {self.settings.timeout}s")
            raise UpstreamTimeoutError() from e
        except httpx.HTTPError as e:
            await client.aclose()
            logger.error(f"Error calling backend at {self.url}: {str(e)}")
            raise InternalError() from e

        if not response.is_success:
            try:
                body = await response.aread()
            except httpx.HTTPError:
                body = b""
            finally:
                await response.aclose()
                await client.aclose()
            raise UpstreamError.from_response(response.status_code, _decode_body(body))

        return BackendStream(response, client, deadline)
