"""Tests for the incremental SSE decoder."""

import pytest

from edu_gateway.providers.dashscope_provider import DashScopeProvider
from edu_gateway.providers.openai_provider import OpenAIProvider
from edu_gateway.services.decoder import EventKind, StreamDecoder, StreamEvent
from edu_gateway.tests.utils.upstream import dashscope_frame, openai_frame

PARSE = DashScopeProvider("sk-test", "https://dashscope.test").parse_frame

STREAM = (
    b"id:1\nevent:result\n:HTTP_STATUS/200\n"
    + dashscope_frame("Hel")
    + b"data: {not json\n\n"
    + dashscope_frame("lo, ")
    + b'data: {"output": {"choices": [{"message": {"content": ""}, "finish_reason": "null"}]}}\n\n'
    + dashscope_frame("世界")
    + b"data: [DONE]\n\n"
)


def decode_all(chunks: list[bytes]) -> list[StreamEvent]:
    decoder = StreamDecoder(PARSE)
    events: list[StreamEvent] = []
    for chunk in chunks:
        events.extend(decoder.feed(chunk))
    events.extend(decoder.close())
    return events


def test_single_chunk_sequence():
    events = decode_all([STREAM])

    assert [e.kind for e in events] == [
        EventKind.DELTA,
        EventKind.MALFORMED,
        EventKind.DELTA,
        EventKind.DELTA,
        EventKind.TERMINATOR,
    ]
    assert [e.text for e in events if e.kind is EventKind.DELTA] == ["Hel", "lo, ", "世界"]
    assert events[1].raw == "{not json"


@pytest.mark.parametrize("size", [1, 2, 3, 7, 16, 64])
def test_chunk_boundaries_do_not_change_events(size):
    """Splitting anywhere, even inside a multi-byte character, gives the same events."""
    chunks = [STREAM[i : i + size] for i in range(0, len(STREAM), size)]

    assert decode_all(chunks) == decode_all([STREAM])


def test_every_two_way_split_matches_single_chunk():
    expected = decode_all([STREAM])
    for cut in range(len(STREAM) + 1):
        assert decode_all([STREAM[:cut], STREAM[cut:]]) == expected


def test_done_sentinel_halts_decoder():
    decoder = StreamDecoder(PARSE)

    events = decoder.feed(b"data: [DONE]\n" + dashscope_frame("late"))

    assert events == [StreamEvent.terminator()]
    assert decoder.finished
    assert decoder.feed(dashscope_frame("later")) == []
    assert decoder.close() == []


def test_empty_payload_is_terminator():
    decoder = StreamDecoder(PARSE)

    events = decoder.feed(dashscope_frame("a") + b"data:\n" + dashscope_frame("b"))

    assert [e.kind for e in events] == [EventKind.DELTA, EventKind.TERMINATOR]


def test_malformed_frame_does_not_halt_stream():
    decoder = StreamDecoder(PARSE)

    events = decoder.feed(b'data: {"output": {"choi\n' + dashscope_frame("next"))

    assert [e.kind for e in events] == [EventKind.MALFORMED, EventKind.DELTA]
    assert events[1].text == "next"
    assert not decoder.finished


def test_non_object_json_is_malformed():
    decoder = StreamDecoder(PARSE)

    assert decoder.feed(b"data: [1, 2]\n")[0].kind is EventKind.MALFORMED


def test_control_frames_emit_nothing():
    decoder = StreamDecoder(PARSE)

    events = decoder.feed(b'data: {"request_id": "abc", "usage": {"output_tokens": 3}}\n')

    assert events == []


def test_partial_line_is_held_until_newline():
    decoder = StreamDecoder(PARSE)
    frame = dashscope_frame("held")

    assert decoder.feed(frame[:20]) == []
    assert decoder.feed(frame[20:]) == [StreamEvent.delta("held")]


def test_close_flushes_unterminated_last_line():
    decoder = StreamDecoder(PARSE)

    assert decoder.feed(dashscope_frame("tail").rstrip(b"\n")) == []
    assert decoder.close() == [StreamEvent.delta("tail")]
    assert decoder.finished


def test_crlf_line_endings():
    decoder = StreamDecoder(PARSE)

    events = decoder.feed(dashscope_frame("crlf").replace(b"\n", b"\r\n") + b"data: [DONE]\r\n")

    assert [e.kind for e in events] == [EventKind.DELTA, EventKind.TERMINATOR]
    assert events[0].text == "crlf"


def test_openai_frames():
    decoder = StreamDecoder(OpenAIProvider("sk", "https://openai.test").parse_frame)

    events = decoder.feed(openai_frame("Hi") + b'data: {"choices": [{"delta": {}}]}\n\n' + b"data: [DONE]\n\n")

    assert events == [StreamEvent.delta("Hi"), StreamEvent.terminator()]
