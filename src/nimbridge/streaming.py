"""Streaming response handling for nimbridge."""

import asyncio
import json
from typing import Any, AsyncGenerator, AsyncIterator, Awaitable, Callable, Dict, Optional, Protocol

import httpx

from .config import ProxySettings, relay_logger
from .errors import ProxyError
from .framing import LineReassembler
from .reasoning import EventRewriter

DONE_EVENT = b"data: [DONE]\n\n"


class Upstream(Protocol):
    def aiter_bytes(self) -> AsyncIterator[bytes]: ...

    async def aclose(self) -> None: ...


class StreamRelay:
    """
    Couples one upstream event stream to one downstream event stream.

    Each instance serves a single response: it owns the line reassembler and
    the reasoning splitters for that stream and must not be reused.
    """

    def __init__(self, settings: ProxySettings):
        self.reassembler = LineReassembler()
        self.rewriter = EventRewriter(settings.show_reasoning)
        self.finished = False
        self.last_event: Dict[str, Any] = {}

    def translate_line(self, line: str) -> Optional[bytes]:
        """
        Translate one upstream line into the bytes to send downstream.

        Returns None for blank lines, which carry no event of their own.
        """
        line = line.strip()
        if not line:
            return None

        if not line.startswith("data:"):
            # Comments and other SSE fields pass through untouched
            return f"{line}\n".encode()

        payload = line[len("data:"):].strip()
        if payload == "[DONE]":
            self.finished = True
            return (self.closing_event() or b"") + DONE_EVENT

        try:
            event = json.loads(payload)
        except json.JSONDecodeError as e:
            relay_logger.warning(f"Forwarding unparseable stream line as-is: {str(e)}")
            return f"{line}\n\n".encode()

        if isinstance(event, dict):
            self.last_event = {
                key: event[key] for key in ("id", "object", "created", "model") if key in event
            }
            event = self.rewriter.apply_to_event(event)
        return f"data: {json.dumps(event, ensure_ascii=False)}\n\n".encode()

    def closing_event(self) -> Optional[bytes]:
        """
        Build one event carrying the closing tag of every reasoning segment
        still open, or None when nothing is open.
        """
        closed = self.rewriter.close()
        if not closed:
            return None

        event = {"object": "chat.completion.chunk", **self.last_event}
        event["choices"] = [
            {"index": index, "delta": {"content": text}, "finish_reason": None}
            for index, text in closed
        ]
        return f"data: {json.dumps(event, ensure_ascii=False)}\n\n".encode()

    async def relay(
        self,
        upstream: Upstream,
        is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> AsyncGenerator[bytes, None]:
        """
        Yield translated events until the upstream ends, fails, sends
        ``[DONE]`` or the caller goes away. The upstream is always closed.

        Args:
            upstream: Open backend stream
            is_disconnected: Checked between chunks; a true result stops the
                relay before the chunk is processed
        """
        try:
            async for chunk in upstream.aiter_bytes():
                if is_disconnected is not None and await is_disconnected():
                    relay_logger.info("Client disconnected, cancelling upstream read")
                    return

                for line in self.reassembler.feed(chunk):
                    output = self.translate_line(line)
                    if output is not None:
                        yield output
                    if self.finished:
                        return

            fragment = self.reassembler.flush()
            if fragment.strip():
                relay_logger.warning(
                    f"Discarding incomplete trailing stream fragment ({len(fragment)} chars)"
                )

            closing = self.closing_event()
            if closing is not None:
                yield closing
        except (httpx.HTTPError, ProxyError) as e:
            relay_logger.error(f"Stream error: {str(e) or type(e).__name__}")
        except asyncio.CancelledError:
            relay_logger.info("Stream cancelled, closing upstream")
            raise
        finally:
            await upstream.aclose()
