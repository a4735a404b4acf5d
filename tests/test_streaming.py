import asyncio

from app.services.streaming import (
    ChunkKind,
    SSEParser,
    delta_chunk,
    done_chunk,
    emit_complete,
    emit_typed,
    encode_frame,
    error_chunk,
    parse_sse,
    rag_chunk,
)


def kinds(chunks):
    return [c.kind for c in chunks]


async def collect(source):
    return [c async for c in source]


async def from_list(parts):
    for part in parts:
        yield part


def test_frames_split_across_network_chunks():
    parser = SSEParser()
    out = parser.feed('data: {"choices":[{"delta":{"content":"Hel')
    assert out == []

    out = parser.feed('lo"}}]}\n\ndata: {"choices":[{"delta":{"content":" there"}}]}\n\n')
    assert [c.content for c in out] == ["Hello", " there"]
    assert out[-1].text == "Hello there"

    out = parser.feed(": keep-alive\ndata: [DONE]\n\n")
    assert kinds(out) == [ChunkKind.DONE]
    assert out[0].text == "Hello there"
    assert parser.finished


def test_partial_json_is_joined_with_next_payload():
    parser = SSEParser()
    out = parser.feed('data: {"choices":[{"delta":\n')
    assert out == []
    out = parser.feed('data: {"content":"Hi"}}]}\n')
    assert [c.content for c in out] == ["Hi"]


def test_unresolved_frame_reported_on_close():
    parser = SSEParser()
    parser.feed('data: {"choices":[{"delta":{"content":"ok"}}]}\n')
    parser.feed('data: {"broken\n')
    out = parser.close()
    assert kinds(out) == [ChunkKind.ERROR, ChunkKind.DONE]
    assert out[0].error == "Malformed stream frame"
    assert out[1].text == "ok"


def test_bad_frame_is_dropped_and_stream_continues():
    parser = SSEParser()
    out = parser.feed(
        "data: {oops\n\n"
        'data: {"choices":[{"delta":{"content":"Hello"}}]}\n\n'
        'data: {"choices":[{"delta":{"content":" world"}}]}\n\n'
        "data: [DONE]\n\n"
    )
    assert kinds(out) == [ChunkKind.DELTA, ChunkKind.DELTA, ChunkKind.DONE]
    assert parser.text == "Hello world"
    assert parser.finished


def test_done_ends_stream_while_frame_is_held():
    parser = SSEParser()
    parser.feed('data: {"choices":[{"delta":{"content":"ok"}}]}\n')
    out = parser.feed('data: {"broken\ndata: [DONE]\n')
    assert kinds(out) == [ChunkKind.ERROR, ChunkKind.DONE]
    assert out[1].text == "ok"
    assert parser.finished
    assert parser.close() == []


def test_error_event_finishes_stream():
    parser = SSEParser()
    out = parser.feed('event: error\ndata: {"error":"Rate limit exceeded"}\n\n')
    assert kinds(out) == [ChunkKind.ERROR, ChunkKind.DONE]
    assert out[0].error == "Rate limit exceeded"
    assert parser.finished
    assert parser.feed('data: {"choices":[{"delta":{"content":"late"}}]}\n') == []


def test_token_and_generated_text_shapes():
    parser = SSEParser()
    out = parser.feed(
        'data: {"token":{"text":"Hi","special":false}}\n'
        'data: {"token":{"text":"</s>","special":true}}\n'
        'data: {"generated_text":"!"}\n'
    )
    assert [c.content for c in out] == ["Hi", "!"]


def test_rag_event_is_passed_through():
    parser = SSEParser()
    out = parser.feed('event: rag\ndata: {"usedDocs":[{"id":"emi-basics","title":"EMI","category":"emi"}]}\n\n')
    assert kinds(out) == [ChunkKind.RAG]
    assert out[0].docs[0]["id"] == "emi-basics"


def test_parse_sse_stops_at_done():
    parts = [
        'data: {"choices":[{"delta":{"content":"A"}}]}\n',
        "data: [DONE]\n",
        'data: {"choices":[{"delta":{"content":"B"}}]}\n',
    ]
    chunks = asyncio.run(collect(parse_sse(from_list(parts))))
    assert kinds(chunks) == [ChunkKind.DELTA, ChunkKind.DONE]
    assert chunks[-1].text == "A"


def test_parse_sse_without_done_still_terminates():
    parts = ['data: {"choices":[{"delta":{"content":"A"}}]}\n', 'data: {"choices":[{"delta":{"content":"B"}}]}']
    chunks = asyncio.run(collect(parse_sse(from_list(parts))))
    assert kinds(chunks) == [ChunkKind.DELTA, ChunkKind.DELTA, ChunkKind.DONE]
    assert chunks[-1].text == "AB"


def test_typed_output_reassembles_text():
    text = "Your EMI is ₹9,822 per month for 36 months."
    chunks = asyncio.run(collect(emit_typed(text, chunk_size=5, delay=0)))
    deltas = [c for c in chunks if c.kind is ChunkKind.DELTA]
    assert "".join(c.content for c in deltas) == text
    assert chunks[-1].kind is ChunkKind.DONE
    assert chunks[-1].text == text


def test_complete_output_is_one_delta():
    chunks = asyncio.run(collect(emit_complete("hello")))
    assert kinds(chunks) == [ChunkKind.DELTA, ChunkKind.DONE]
    assert kinds(asyncio.run(collect(emit_complete("")))) == [ChunkKind.DONE]


def test_encode_frames():
    assert encode_frame(rag_chunk([])).startswith("event: rag\ndata: ")
    delta = encode_frame(delta_chunk("नमस्ते", "नमस्ते"))
    assert delta.startswith("data: ")
    assert "नमस्ते" in delta
    assert delta.endswith("\n\n")
    assert encode_frame(error_chunk("boom")).startswith("event: error\n")
    assert encode_frame(done_chunk("x")) == "data: [DONE]\n\n"
