"""
Shared fakes for the test suite: a requests-like session/response pair and a
stand-in for the async OpenAI client's streaming chat completions.
"""
import json
import sys
from pathlib import Path
from types import SimpleNamespace

import requests

# --- Dynamic Path Setup ---
project_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(project_root))


class FakeResponse:
    """Mimics the parts of requests.Response the code under test uses."""

    def __init__(self, status_code=200, body=b"", chunks=None, error=None):
        self.status_code = status_code
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        self._chunks = chunks
        self._error = error
        self.closed = False

    @property
    def ok(self):
        return self.status_code < 400

    @property
    def text(self):
        return self._body.decode("utf-8")

    def json(self):
        return json.loads(self._body)

    def raise_for_status(self):
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def iter_content(self, chunk_size=None):
        chunks = self._chunks if self._chunks is not None else [self._body]
        for chunk in chunks:
            yield chunk.encode("utf-8") if isinstance(chunk, str) else chunk
        if self._error is not None:
            raise self._error

    def close(self):
        self.closed = True


class FakeSession:
    """Records every POST and answers with queued responses (or raises them)."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append(SimpleNamespace(url=url, **kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def gemini_text_response(text, status_code=200):
    body = {"candidates": [{"content": {"parts": [{"text": text}]}}]}
    return FakeResponse(status_code=status_code, body=json.dumps(body))


def sse_body(*texts, done=True):
    frames = "".join(f"data: {json.dumps({'type': 'text', 'text': t}, ensure_ascii=False)}\n\n" for t in texts)
    return frames + ("data: [DONE]\n\n" if done else "")


class FakeChatStream:
    """Async iterable of chat completion chunks with an async close()."""

    def __init__(self, deltas, error=None):
        self.deltas = deltas
        self.error = error
        self.closed = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for delta in self.deltas:
            if delta is None:
                yield SimpleNamespace(choices=[])
            else:
                yield SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=delta))])
        if self.error is not None:
            raise self.error

    async def close(self):
        self.closed = True


class FakeAsyncOpenAI:
    """Captures the create() arguments and returns a prepared FakeChatStream."""

    def __init__(self, stream=None, error=None):
        self.stream = stream or FakeChatStream([])
        self.error = error
        self.requests = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    async def _create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.stream

    @property
    def last_prompt(self):
        return self.requests[-1]["messages"][-1]["content"]
