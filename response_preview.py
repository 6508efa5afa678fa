"""
Non-consuming preview of streaming provider responses.

The diagnostic build shows the first SSE chunks of every provider response
without taking them away from the real consumer. For an unread streaming
``httpx.Response`` the byte stream is split with an asyncio tee: the response
keeps one branch, the preview reads a bounded number of chunks from the other
and then closes it.
"""

import asyncio
import codecs
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional

import httpx

import json_utils as json

logger = logging.getLogger(__name__)

MAX_PREVIEW_CHUNKS = 20
PREVIEW_TEXT_LIMIT = 30

PRIMARY_BRANCH = 0
PREVIEW_BRANCH = 1


class _StreamTee:
    """
    Split one async byte iterator into two independently consumed branches.

    Chunks pulled from the source are kept until both open branches have
    seen them. Closing the primary branch closes the source; closing the
    preview branch only stops buffering for it. A source failure is kept and
    raised to every branch that reads up to the point where it happened.
    """

    def __init__(self, source: Any):
        self._source = source
        self._iterator: Optional[AsyncIterator[bytes]] = None
        self._chunks: List[bytes] = []
        self._base = 0
        self._offsets = [0, 0]
        self._closed = [False, False]
        self._exhausted = False
        self._error: Optional[BaseException] = None
        self._source_released = False
        self._lock = asyncio.Lock()

    def _trim(self) -> None:
        open_offsets = [offset for offset, closed in zip(self._offsets, self._closed) if not closed]
        low = min(open_offsets) if open_offsets else self._base + len(self._chunks)
        drop = low - self._base
        if drop > 0:
            del self._chunks[:drop]
            self._base = low

    async def read(self, branch: int) -> Optional[bytes]:
        async with self._lock:
            if self._closed[branch]:
                return None

            position = self._offsets[branch]
            if position - self._base >= len(self._chunks):
                if self._error is not None:
                    raise self._error
                if self._exhausted:
                    return None
                if self._iterator is None:
                    self._iterator = self._source.__aiter__()
                try:
                    chunk = await self._iterator.__anext__()
                except StopAsyncIteration:
                    self._exhausted = True
                    return None
                except Exception as exc:
                    # Every branch that reaches this point sees the same failure
                    self._error = exc
                    self._exhausted = True
                    try:
                        await self._release_source()
                    except Exception as close_exc:
                        logger.debug("Closing failed provider stream: %s", close_exc)
                    raise
                self._chunks.append(chunk)

            chunk = self._chunks[position - self._base]
            self._offsets[branch] = position + 1
            self._trim()
            return chunk

    async def close_branch(self, branch: int) -> None:
        async with self._lock:
            if self._closed[branch]:
                return
            self._closed[branch] = True
            self._trim()
            if branch == PRIMARY_BRANCH:
                self._exhausted = True
                await self._release_source()

    async def _release_source(self) -> None:
        if self._source_released:
            return
        self._source_released = True
        close = getattr(self._source, "aclose", None)
        if close is not None:
            await close()


class _TeeByteStream(httpx.AsyncByteStream):
    """One branch of a ``_StreamTee`` exposed as an httpx byte stream."""

    def __init__(self, tee: _StreamTee, branch: int):
        self._tee = tee
        self._branch = branch

    async def __aiter__(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self._tee.read(self._branch)
            if chunk is None:
                break
            yield chunk

    async def aclose(self) -> None:
        await self._tee.close_branch(self._branch)


async def _noop_close() -> None:
    return None


@dataclass
class PreviewClone:
    """Chunk source of a preview plus the callable that releases it."""

    chunks: AsyncIterator[bytes]
    aclose: Callable[[], Awaitable[None]] = _noop_close


async def _single_chunk(content: bytes) -> AsyncIterator[bytes]:
    if content:
        yield content


def _iterate_clone(cloned: Any) -> Optional[PreviewClone]:
    """Wrap the result of a fetch-style ``clone()`` call."""
    close = getattr(cloned, "aclose", None) or getattr(cloned, "cancel", None) or _noop_close

    if hasattr(cloned, "aiter_bytes"):
        return PreviewClone(chunks=cloned.aiter_bytes().__aiter__(), aclose=close)

    body = getattr(cloned, "body", cloned)
    if hasattr(body, "__aiter__"):
        return PreviewClone(chunks=body.__aiter__(), aclose=getattr(body, "aclose", None) or close)
    return None


def is_response_object(obj: Any) -> bool:
    """True for live response objects (parsed chunk objects are not)."""
    return isinstance(obj, httpx.Response) or callable(getattr(obj, "clone", None))


def clone_response(response: Any) -> Optional[PreviewClone]:
    """
    Return an independent chunk source for ``response`` without consuming it.

    Returns None when the response cannot be previewed (stream already
    consumed by someone else, or an unknown object).
    """
    if isinstance(response, httpx.Response):
        try:
            content = response.content
        except httpx.ResponseNotRead:
            content = None
        if content is not None:
            return PreviewClone(chunks=_single_chunk(content).__aiter__())

        if response.is_stream_consumed or response.is_closed:
            return None

        tee = _StreamTee(response.stream)
        response.stream = _TeeByteStream(tee, PRIMARY_BRANCH)
        preview_branch = _TeeByteStream(tee, PREVIEW_BRANCH)
        return PreviewClone(chunks=preview_branch.__aiter__(), aclose=preview_branch.aclose)

    clone = getattr(response, "clone", None)
    if callable(clone):
        return _iterate_clone(clone())

    return None


def _preview_text(value: Any) -> str:
    text = str(value)
    preview = text[:PREVIEW_TEXT_LIMIT].replace("\n", "↵")
    return f"{preview}..." if len(text) > PREVIEW_TEXT_LIMIT else preview


def classify_chunk(text: str) -> str:
    """Tag a raw SSE chunk by the kind of delta it carries."""
    has_reasoning = '"reasoning_content"' in text
    has_content = '"content"' in text and not has_reasoning
    if has_reasoning:
        return "[THINKING]"
    if has_content:
        return "[CONTENT]"
    return "[DATA]"


def describe_chunk(text: str) -> str:
    """
    Summarize the first JSON ``data:`` line of an SSE chunk.

    Returns `` -> {role:"assistant", content:"..."}`` or an empty string when
    nothing useful can be parsed.
    """
    for line in text.split("\n"):
        if not line.startswith("data: "):
            continue
        payload = line[len("data: "):].strip()
        if not payload or payload == "[DONE]":
            continue
        try:
            data = json.loads(payload)
        except json.JSONDecodeError:
            continue

        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices or not isinstance(choices, list) or not isinstance(choices[0], dict):
            return ""
        choice = choices[0]
        delta = choice.get("delta")
        if not isinstance(delta, dict):
            return ""

        properties = []
        if delta.get("role"):
            properties.append(f'role:"{delta["role"]}"')
        if "content" in delta and delta["content"] is not None:
            properties.append(f'content:"{_preview_text(delta["content"])}"')
        if "reasoning_content" in delta and delta["reasoning_content"] is not None:
            properties.append(f'reasoning_content:"{_preview_text(delta["reasoning_content"])}"')
        finish_reason = delta.get("finish_reason") or choice.get("finish_reason")
        if finish_reason:
            properties.append(f'finish_reason:"{finish_reason}"')

        if properties:
            return f" -> {{{', '.join(properties)}}}"
        return ""
    return ""


def describe_response(response: Any) -> List[str]:
    """Status line, URL and content type of a response object."""
    lines = []
    status = getattr(response, "status_code", None) or getattr(response, "status", None)
    reason = getattr(response, "reason_phrase", None) or getattr(response, "statusText", "")
    if status is not None:
        ok = 200 <= int(status) < 300
        lines.append(f"   Response.ok: {str(ok).lower()}")
        lines.append(f"   Response.status: {status} {reason}".rstrip())

    try:
        url = response.url
    except (AttributeError, RuntimeError):
        # httpx raises RuntimeError when the response has no request attached
        url = None
    lines.append(f"   Response.url: {url if url else 'undefined'}")

    if isinstance(response, httpx.Response):
        lines.append(f"   Response.bodyUsed: {str(response.is_stream_consumed).lower()}")

    try:
        content_type = response.headers.get("content-type")
    except AttributeError:
        lines.append("   Headers: Not available")
    else:
        if content_type:
            lines.append(f"   Content-Type: {content_type}")
    return lines


class ResponsePreviewer:
    """Read and describe the first chunks of a cloned response."""

    def __init__(self, max_chunks: int = MAX_PREVIEW_CHUNKS):
        self.max_chunks = max_chunks

    async def preview(self, clone: PreviewClone, max_chunks: Optional[int] = None) -> List[str]:
        limit = max_chunks or self.max_chunks
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        lines: List[str] = []
        chunks_read = 0

        try:
            while chunks_read < limit:
                try:
                    chunk = await clone.chunks.__anext__()
                except StopAsyncIteration:
                    lines.append(f"   [STREAM] Ended after {chunks_read} chunks")
                    break

                chunks_read += 1
                text = decoder.decode(chunk)
                lines.append(
                    f"   [CHUNK {chunks_read}] {len(chunk)} bytes {classify_chunk(text)}{describe_chunk(text)}"
                )
            else:
                lines.append(f"   [STREAM] Limit of {limit} chunks reached (more data exists)")
        finally:
            try:
                close_iterator = getattr(clone.chunks, "aclose", None)
                if close_iterator is not None:
                    await close_iterator()
                await clone.aclose()
            except Exception as exc:
                logger.debug("Preview reader close failed: %s", exc)

        lines.append("")
        lines.append("   [SUCCESS] Reading completed - Original response was NOT consumed")
        return lines
