"""
Tests for the client-side SSE parser and the recommendation session state machine.
"""
import json

import pytest
import requests

from conftest import FakeResponse, FakeSession, sse_body
from src.client.api_client import RecommenderApiClient
from src.client.stream_consumer import (
    PreconditionError,
    RecommendationSession,
    SSEFrameParser,
    StreamStatus,
)
from src.models.schemas import IdentifiedGame

IMAGE = "data:image/jpeg;base64,QUJD"
PLAYING_TIME = "Medium (1-2 hours)"


def chunked(text, size):
    data = text.encode("utf-8")
    return [data[i:i + size] for i in range(0, len(data), size)]


def make_session(*responses):
    http = FakeSession(*responses)
    updates = []
    session = RecommendationSession(RecommenderApiClient("http://api.test", session=http), on_update=updates.append)
    return session, http, updates


def identify_response(*names):
    return FakeResponse(body=json.dumps([{"gameName": name, "bggId": None} for name in names]))


class TestSSEFrameParser:

    def setup_method(self):
        self.parser = SSEFrameParser()

    def test_frames_in_one_chunk(self):
        assert self.parser.feed(sse_body("a", "b", done=False)) == ["a", "b"]

    @pytest.mark.parametrize("size", [1, 2, 5, 13])
    def test_frames_split_across_chunks(self, size):
        body = sse_body("**Catan**", " is great", " for 4.")
        received = []
        for i in range(0, len(body), size):
            received.extend(self.parser.feed(body[i:i + size]))
        received.extend(self.parser.flush())

        assert "".join(received) == "**Catan** is great for 4."

    def test_done_contributes_nothing(self):
        assert self.parser.feed("data: [DONE]\n\n") == []
        assert self.parser.done_received

    def test_done_stops_the_rest_of_the_chunk(self):
        chunk = sse_body("a", done=True) + sse_body("ignored", done=False)

        assert self.parser.feed(chunk) == ["a"]

    def test_malformed_lines_are_skipped(self):
        chunk = (
            ": keep-alive comment\n"
            "event: something\n"
            "data: {not json}\n\n"
            'data: {"type": "text"}\n\n'
            'data: {"type": "text", "text": 42}\n\n'
            "data: [1, 2]\n\n"
            'data: {"type": "text", "text": "ok"}\n\n'
        )

        assert self.parser.feed(chunk) == ["ok"]

    def test_crlf_line_endings(self):
        assert self.parser.feed('data: {"type":"text","text":"x"}\r\n\r\n') == ["x"]

    def test_error_frame_is_recorded_after_earlier_text(self):
        chunk = sse_body("before", done=False) + 'data: {"type": "error", "error": "upstream died"}\n\n'

        assert self.parser.feed(chunk) == ["before"]
        assert self.parser.error == "upstream died"

    def test_flush_parses_unterminated_last_frame(self):
        assert self.parser.feed('data: {"type":"text","text":"tail"}') == []
        assert self.parser.flush() == ["tail"]


class TestRecommendationSession:

    def test_full_run_accumulates_in_order(self):
        stream = FakeResponse(chunks=chunked(sse_body("**Catan**", " is great for 4."), 7))
        session, http, updates = make_session(identify_response("Catan"), stream)

        status = session.run(IMAGE, "4", PLAYING_TIME)

        assert status is StreamStatus.DONE
        assert session.output == "**Catan** is great for 4."
        assert updates[0] == ""
        assert updates[-1] == session.output
        assert [game.gameName for game in session.identified_collection] == ["Catan"]
        assert http.calls[0].url == "http://api.test/api/identify"
        assert http.calls[1].url == "http://api.test/api/recommendation"
        assert http.calls[1].stream is True
        assert http.calls[1].json == {
            "identifiedCollection": [{"gameName": "Catan", "bggId": None}],
            "playerCount": "4",
            "playingTime": PLAYING_TIME,
        }
        assert stream.closed

    def test_multibyte_characters_split_across_chunks(self):
        session, _, _ = make_session(FakeResponse(chunks=chunked(sse_body("Çà et là … 🎲"), 3)))

        session.recommend([], "2", PLAYING_TIME)

        assert session.output == "Çà et là … 🎲"

    def test_second_request_starts_from_empty_output(self):
        session, _, updates = make_session(
            FakeResponse(body=sse_body("first answer")),
            FakeResponse(body=sse_body("second")),
        )
        session.recommend([], "2", PLAYING_TIME)
        assert session.output == "first answer"

        updates.clear()
        session.recommend([], "3", PLAYING_TIME)

        assert updates[0] == ""
        assert session.output == "second"

    def test_missing_image_makes_no_network_call(self):
        session, http, _ = make_session()
        session.output = "previous recommendations"

        with pytest.raises(PreconditionError):
            session.run(None, "4", PLAYING_TIME)

        assert http.calls == []
        assert session.output == "previous recommendations"
        assert session.status is StreamStatus.IDLE

    @pytest.mark.parametrize("player_count, playing_time", [(None, PLAYING_TIME), ("4", None), ("", "")])
    def test_missing_preferences_make_no_network_call(self, player_count, playing_time):
        session, http, _ = make_session()

        with pytest.raises(PreconditionError):
            session.run(IMAGE, player_count, playing_time)

        assert http.calls == []

    def test_transport_failure_keeps_partial_output(self):
        stream = FakeResponse(chunks=[sse_body("partial ", done=False)],
                              error=requests.ConnectionError("connection reset"))
        session, _, _ = make_session(stream)

        status = session.recommend([IdentifiedGame(gameName="Catan")], "4", PLAYING_TIME)

        assert status is StreamStatus.ERROR
        assert session.output == "partial "
        assert "connection reset" in session.error_message
        assert stream.closed

    def test_error_frame_moves_to_error(self):
        body = sse_body("partial", done=False) + 'data: {"type": "error", "error": "quota exceeded"}\n\n'
        session, _, _ = make_session(FakeResponse(body=body))

        session.recommend([], "4", PLAYING_TIME)

        assert session.status is StreamStatus.ERROR
        assert session.output == "partial"
        assert "quota exceeded" in session.error_message

    def test_server_error_response_message_is_surfaced(self):
        error = FakeResponse(status_code=400, body=json.dumps(
            {"error": "Invalid input data provided.", "details": ["playerCount: Field required"]}))
        session, _, _ = make_session(error)

        session.recommend([], "4", PLAYING_TIME)

        assert session.status is StreamStatus.ERROR
        assert "playerCount: Field required" in session.error_message
        assert error.closed

    def test_unknown_failure_gets_generic_message(self):
        session, _, _ = make_session(FakeResponse(chunks=[sse_body("x", done=False)], error=KeyError("odd")))

        session.recommend([], "4", PLAYING_TIME)

        assert session.status is StreamStatus.ERROR
        assert session.error_message == "An unknown error occurred while fetching recommendations."
        assert session.output == "x"

    def test_identify_failure_moves_to_error(self):
        session, http, _ = make_session(FakeResponse(status_code=502, body="bad gateway"))

        status = session.run(IMAGE, "4", PLAYING_TIME)

        assert status is StreamStatus.ERROR
        assert len(http.calls) == 1

    def test_new_request_cancels_in_flight_stream(self):
        in_flight = FakeResponse(body=sse_body("old"))
        session, _, _ = make_session(FakeResponse(body=sse_body("new")))
        session._response = in_flight
        session.status = StreamStatus.STREAMING

        session.recommend([], "4", PLAYING_TIME)

        assert in_flight.closed
        assert session.output == "new"
        assert session.status is StreamStatus.DONE

    def test_interrupted_stream_does_not_stay_streaming(self):
        class ScriptInterrupted(BaseException):
            pass

        stream = FakeResponse(chunks=[sse_body("first", done=False), sse_body("second")])
        session, _, _ = make_session(stream, FakeResponse(body=sse_body("retry")))

        def interrupt_on_text(text):
            if text:
                raise ScriptInterrupted()

        session.on_update = interrupt_on_text
        with pytest.raises(ScriptInterrupted):
            session.recommend([], "4", PLAYING_TIME)

        assert session.status is StreamStatus.IDLE
        assert not session.is_streaming
        assert session.output == "first"
        assert stream.closed

        session.on_update = None
        assert session.recommend([], "4", PLAYING_TIME) is StreamStatus.DONE
        assert session.output == "retry"

    def test_malformed_identify_body_moves_to_error(self):
        session, http, _ = make_session(FakeResponse(body=json.dumps([{"bggId": None}])))

        status = session.run(IMAGE, "4", PLAYING_TIME)

        assert status is StreamStatus.ERROR
        assert "Could not identify" in session.error_message
        assert len(http.calls) == 1
