"""
=============================================================================
HTTP RESPONSE
=============================================================================

HTTPResponse holds status, headers and body; to_bytes() serializes it
for the socket. ResponseBuilder is the fluent way to make one.

    Handler returns          to_bytes()              Socket sends
    HTTPResponse    ─────►   serializes    ─────►    raw bytes

        HTTPResponse(            b"HTTP/1.1 200 OK\\r\\n
          status=200,              Content-Type: application/json\\r\\n
          headers={...},           Content-Length: 27\\r\\n
          body=b"..."              \\r\\n
        )                          {...}"

Content-Length, Date and Server are filled in at serialization time
unless the handler already set them.

=============================================================================
"""

from dataclasses import dataclass, field
from email.utils import formatdate
from http import HTTPStatus
from typing import Dict, Union
import json


@dataclass
class HTTPResponse:
    """An HTTP response to be sent to the client."""

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 404 Not Found"."""
        return f"{self.version} {self.status.value} {self.status.phrase}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def to_bytes(self, server_name: str = "GameStateAPI/1.0") -> bytes:
        """
        Serialize the response for socket.sendall().

        Args:
            server_name: Value for the Server header.
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))

        if "Date" not in response_headers:
            response_headers["Date"] = formatdate(usegmt=True)

        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTP responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.NOT_FOUND)
            .json({"error": "Player not found or not online"})
            .build())

    Every method except build() returns self.
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Raw body; strings are encoded as UTF-8."""
        if isinstance(body, str):
            self._body = body.encode("utf-8")
        else:
            self._body = body
        return self

    def json(self, data, pretty: bool = False) -> "ResponseBuilder":
        """
        Serialize data as the JSON body and set Content-Type.

        Args:
            data: Any JSON-serializable value.
            pretty: Indent with two spaces.
        """
        indent = 2 if pretty else None
        self._body = json.dumps(data, indent=indent, ensure_ascii=False).encode("utf-8")
        self._headers["Content-Type"] = "application/json"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )
