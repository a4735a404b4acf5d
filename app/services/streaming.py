# app/services/streaming.py
"""
One incremental interface for three response shapes:
  - a finished local string      -> emit_complete
  - a local string typed out     -> emit_typed
  - an upstream SSE token stream -> parse_sse
Every stream ends with exactly one DONE chunk; concatenating the DELTA
contents gives back the full response text.
"""
import asyncio
import json
import logging
from enum import Enum
from typing import Any, AsyncIterable, AsyncIterator, Dict, List, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ChunkKind(str, Enum):
    RAG = "rag"
    DELTA = "delta"
    ERROR = "error"
    DONE = "done"


class StreamChunk(BaseModel):
    kind: ChunkKind
    content: str = ""
    text: str = ""  # cumulative text so far
    docs: List[Dict[str, str]] = []
    error: Optional[str] = None
    result: Optional[Any] = None


def rag_chunk(docs: List[Dict[str, str]]) -> StreamChunk:
    return StreamChunk(kind=ChunkKind.RAG, docs=docs)


def delta_chunk(content: str, text: str) -> StreamChunk:
    return StreamChunk(kind=ChunkKind.DELTA, content=content, text=text)


def error_chunk(message: str, text: str = "") -> StreamChunk:
    return StreamChunk(kind=ChunkKind.ERROR, error=message, text=text)


def done_chunk(text: str, result: Any = None) -> StreamChunk:
    return StreamChunk(kind=ChunkKind.DONE, text=text, result=result)


async def emit_complete(text: str) -> AsyncIterator[StreamChunk]:
    if text:
        yield delta_chunk(text, text)
    yield done_chunk(text)


async def emit_typed(text: str, chunk_size: int = 24, delay: float = 0.016) -> AsyncIterator[StreamChunk]:
    size = max(1, chunk_size)
    for start in range(0, len(text), size):
        yield delta_chunk(text[start:start + size], text[:start + size])
        if delay > 0:
            await asyncio.sleep(delay)
    yield done_chunk(text)


# -----------------------------
# Upstream SSE parsing
# -----------------------------

def _content_of(data: Any) -> str:
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if choices:
        choice = choices[0] or {}
        delta = choice.get("delta") or choice.get("message") or {}
        return delta.get("content") or ""
    token = data.get("token")
    if isinstance(token, dict):
        return "" if token.get("special") else (token.get("text") or "")
    return data.get("generated_text") or ""


class SSEParser:
    """
    Incremental server-sent-event parser.

    A data payload that is not valid JSON is held back and retried with the
    next payload appended. When the next payload parses on its own the held
    one is dropped; one still held when the stream ends is reported.
    """

    def __init__(self):
        self.text = ""
        self.finished = False
        self._buffer = ""
        self._event: Optional[str] = None
        self._pending = ""
        self._pending_event: Optional[str] = None

    def feed(self, chunk: str) -> List[StreamChunk]:
        out: List[StreamChunk] = []
        self._buffer += chunk
        while "\n" in self._buffer and not self.finished:
            line, self._buffer = self._buffer.split("\n", 1)
            out.extend(self._line(line.rstrip("\r")))
        return out

    def close(self) -> List[StreamChunk]:
        out: List[StreamChunk] = []
        if not self.finished and self._buffer.strip():
            out.extend(self._line(self._buffer.rstrip("\r")))
            self._buffer = ""
        if not self.finished:
            if self._pending:
                logger.warning("stream ended with unparsed frame: %s", self._pending[:120])
                out.append(error_chunk("Malformed stream frame", self.text))
            out.append(done_chunk(self.text))
            self.finished = True
        return out

    def _line(self, line: str) -> List[StreamChunk]:
        if not line:
            self._event = None
            return []
        if line.startswith(":"):
            return []
        if line.startswith("event:"):
            self._event = line[len("event:"):].strip()
            return []
        if not line.startswith("data:"):
            return []

        payload = line[len("data:"):].strip()
        event, self._event = self._event, None
        if payload == "[DONE]":
            out: List[StreamChunk] = []
            if self._pending:
                logger.warning("stream finished with unparsed frame: %s", self._pending[:120])
                out.append(error_chunk("Malformed stream frame", self.text))
                self._pending, self._pending_event = "", None
            self.finished = True
            return out + [done_chunk(self.text)]

        if self._pending:
            joined = self._pending + payload
            try:
                data = json.loads(joined)
            except ValueError:
                pass
            else:
                event = self._pending_event
                self._pending, self._pending_event = "", None
                return self._dispatch(event, data)
            try:
                data = json.loads(payload)
            except ValueError:
                self._pending = joined
                return []
            logger.warning("dropping unparsed stream frame: %s", self._pending[:120])
            self._pending, self._pending_event = "", None
            return self._dispatch(event, data)

        try:
            data = json.loads(payload)
        except ValueError:
            self._pending, self._pending_event = payload, event
            return []
        return self._dispatch(event, data)

    def _dispatch(self, event: Optional[str], data: Any) -> List[StreamChunk]:
        if event == "rag":
            return [rag_chunk(list(data.get("usedDocs") or []))]

        if event == "error" or (isinstance(data, dict) and "error" in data and not data.get("choices")):
            err = data.get("error") if isinstance(data, dict) else data
            if isinstance(err, dict):
                err = err.get("message") or json.dumps(err)
            self.finished = True
            return [error_chunk(str(err or "Streaming failed"), self.text), done_chunk(self.text)]

        content = _content_of(data)
        if not content:
            return []
        self.text += content
        return [delta_chunk(content, self.text)]


async def parse_sse(chunks: AsyncIterable[str]) -> AsyncIterator[StreamChunk]:
    parser = SSEParser()
    async for chunk in chunks:
        for item in parser.feed(chunk):
            yield item
        if parser.finished:
            return
    for item in parser.close():
        yield item


# -----------------------------
# Wire encoding
# -----------------------------

def _data(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False)


def encode_frame(chunk: StreamChunk) -> str:
    if chunk.kind is ChunkKind.RAG:
        return f"event: rag\ndata: {_data({'usedDocs': chunk.docs})}\n\n"
    if chunk.kind is ChunkKind.DELTA:
        return f"data: {_data({'choices': [{'delta': {'content': chunk.content}}]})}\n\n"
    if chunk.kind is ChunkKind.ERROR:
        return f"event: error\ndata: {_data({'error': chunk.error or 'Streaming failed'})}\n\n"
    return "data: [DONE]\n\n"
