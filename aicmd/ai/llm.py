import json
import logging
import sys
import time

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, TextIO

import requests

from ..config import Config
from ..errors import DecodeError, ParseError, RemoteApiError, TransportError

logger = logging.getLogger(__name__)

TEMPERATURE = 0.3
FRAME_DELAY = 0.01  # seconds between streamed frames (typewriter effect)

SSE_DATA_PREFIX = "data: "
SSE_DONE = "data: [DONE]"

FRAME_ERROR_POLICIES = ("skip", "raise")


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class ChatMessage:
    role: Role
    content: str

    def to_dict(self) -> Dict:
        return {"role": self.role.value, "content": self.content}


@dataclass
class ChatRequest:
    """The JSON body sent to the chat-completion endpoint."""

    model: str
    messages: List[ChatMessage] = field(default_factory=list)
    temperature: float = TEMPERATURE
    stream: bool = False

    def to_dict(self) -> Dict:
        return {
            "model": self.model,
            "messages": [message.to_dict() for message in self.messages],
            "temperature": self.temperature,
            "stream": self.stream,
        }


def parse_error_message(body: str) -> Optional[str]:
    """
    Extracts `error.message` from an `{"error": {"message": ...}}` body.
    Returns None if the body doesn't have that shape.
    """
    try:
        data = json.loads(body)
    except ValueError:
        return None

    if not isinstance(data, dict) or not isinstance(data.get("error"), dict):
        return None
    message = data["error"].get("message")
    return message if isinstance(message, str) else None


def is_success(status_code: int) -> bool:
    """Only 2xx counts as success; redirects and informational codes do not."""
    return 200 <= status_code < 300


def _remote_error(status_code: int, body: str) -> RemoteApiError:
    message = parse_error_message(body)
    if message is not None:
        return RemoteApiError(f"API error: {message}", status_code)
    return RemoteApiError(f"API request failed: {body}", status_code)


def parse_completion(body: str) -> str:
    """Returns the content of the first choice of a buffered response ("" if none)."""
    try:
        data = json.loads(body)
        choices = data["choices"]
        if not isinstance(choices, list):
            raise TypeError("choices is not a list")
        if not choices:
            return ""
        content = choices[0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError) as e:
        raise ParseError(f"Failed to parse the API response: {e}") from e

    if not isinstance(content, str):
        raise ParseError("Failed to parse the API response: message content is not a string")
    return content


def parse_stream_frame(data: str) -> Optional[str]:
    """
    Returns the delta content of one `data: {...}` frame payload, or None if
    the frame carries no content. Raises ValueError on a malformed frame.
    """
    payload = json.loads(data)
    try:
        choices = payload["choices"]
        if not choices:
            return None
        content = choices[0]["delta"].get("content")
    except (KeyError, IndexError, TypeError, AttributeError) as e:
        raise ValueError(f"unexpected frame shape: {e}") from e

    if content is not None and not isinstance(content, str):
        raise ValueError("delta content is not a string")
    return content


def iter_sse_lines(chunks: Iterable[bytes]) -> Iterator[str]:
    """
    Splits a stream of byte chunks into trimmed text lines.

    A line may span several chunks; the unfinished tail of a chunk is kept
    until the rest arrives. Bytes that aren't valid UTF-8 are replaced.
    """
    pending = b""
    for chunk in chunks:
        if not chunk:
            continue
        pending += chunk
        *lines, pending = pending.split(b"\n")
        for line in lines:
            yield line.decode("utf-8", errors="replace").strip()
    if pending:
        yield pending.decode("utf-8", errors="replace").strip()


class LLMClient:
    """
    A minimal client for an OpenAI-compatible chat-completion endpoint.

    Every call sends exactly two messages (system, then user) and waits for
    the response before returning, so only one request is ever in flight.
    """

    def __init__(
        self,
        config: Config,
        session: Optional[requests.Session] = None,
        out: Optional[TextIO] = None,
        frame_delay: float = FRAME_DELAY,
        on_frame_parse_error: str = "skip",
    ):
        """
        Args:
            config: Endpoint, key and model to use.
            session: The HTTP session. A new `requests.Session` if not given.
            out: Where streamed content is written. Defaults to stdout.
            frame_delay: Pause after each streamed frame, in seconds.
            on_frame_parse_error: "skip" ignores malformed stream frames,
                "raise" turns them into a ParseError.
        """
        if on_frame_parse_error not in FRAME_ERROR_POLICIES:
            raise ValueError(f"Unknown frame error policy: {on_frame_parse_error}")

        self.config = config
        self.session = session if session is not None else requests.Session()
        self._out = out
        self.frame_delay = frame_delay
        self.on_frame_parse_error = on_frame_parse_error

    @property
    def out(self) -> TextIO:
        return self._out if self._out is not None else sys.stdout

    @staticmethod
    def format_system_message(content: str) -> ChatMessage:
        return ChatMessage(role=Role.SYSTEM, content=content)

    @staticmethod
    def format_user_message(content: str) -> ChatMessage:
        return ChatMessage(role=Role.USER, content=content)

    def build_request(self, system_prompt: str, user_prompt: str, stream: bool) -> ChatRequest:
        return ChatRequest(
            model=self.config.model,
            messages=[
                self.format_system_message(system_prompt),
                self.format_user_message(user_prompt),
            ],
            stream=stream,
        )

    def _post(self, request: ChatRequest) -> requests.Response:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key}",
        }
        mode = "streamed" if request.stream else "buffered"
        logger.debug("Sending %s request to %s (model %s)", mode, self.config.api_url, request.model)
        try:
            response = self.session.post(
                self.config.api_url,
                headers=headers,
                json=request.to_dict(),
                stream=request.stream,
            )
        except requests.RequestException as e:
            raise TransportError(f"API request failed: {e}") from e

        logger.debug("API responded with HTTP %s", response.status_code)
        return response

    @staticmethod
    def _read_body(response: requests.Response) -> str:
        try:
            return response.text
        except requests.RequestException as e:
            raise DecodeError(f"Failed to read the API response: {e}") from e

    def call_buffered(self, system_prompt: str, user_prompt: str) -> str:
        """
        Sends a non-streamed request and returns the first choice's content.

        Raises:
            TransportError: The request could not be sent.
            DecodeError: The response body could not be read.
            RemoteApiError: Non-success status, or an embedded error object.
            ParseError: The success body doesn't look like a chat completion.
        """
        response = self._post(self.build_request(system_prompt, user_prompt, stream=False))
        body = self._read_body(response)

        if not is_success(response.status_code):
            raise _remote_error(response.status_code, body)

        # Some endpoints report errors with HTTP 200.
        if '"error"' in body:
            message = parse_error_message(body)
            if message is not None:
                raise RemoteApiError(f"API error: {message}", response.status_code)

        return parse_completion(body)

    def call_streamed(self, system_prompt: str, user_prompt: str) -> str:
        """
        Sends a streamed request, writing each content delta to `out` as it
        arrives, and returns the accumulated content.

        Raises:
            TransportError: The request could not be sent or the stream broke.
            DecodeError: An error body could not be read.
            RemoteApiError: The initial status was not successful.
            ParseError: A frame was malformed and the policy is "raise".
        """
        response = self._post(self.build_request(system_prompt, user_prompt, stream=True))

        if not is_success(response.status_code):
            raise _remote_error(response.status_code, self._read_body(response))

        out = self.out
        full_content = []
        try:
            for line in iter_sse_lines(response.iter_content(chunk_size=None)):
                content = self._handle_stream_line(line)
                if content is None:
                    continue

                out.write(content)
                out.flush()
                full_content.append(content)
                time.sleep(self.frame_delay)
        except requests.RequestException as e:
            raise TransportError(f"Failed to read the API stream: {e}") from e
        finally:
            response.close()

        out.write("\n")
        out.flush()
        return "".join(full_content)

    def _handle_stream_line(self, line: str) -> Optional[str]:
        if not line or line == SSE_DONE:
            return None
        if not line.startswith(SSE_DATA_PREFIX):
            return None

        data = line[len(SSE_DATA_PREFIX):]
        try:
            return parse_stream_frame(data)
        except ValueError as e:
            if self.on_frame_parse_error == "raise":
                raise ParseError(f"Malformed stream frame: {data!r}") from e
            logger.debug("Skipping malformed stream frame %r: %s", data, e)
            return None
