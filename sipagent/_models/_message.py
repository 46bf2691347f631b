"""
SIP Message models (Request and Response) and MessageFactory.

Requests and responses carry just enough structure for the register agent:
headers, a body, the CSeq arithmetic needed for retries, and the response
fields (Expires, Contact expiries, Authentication-Info) that drive the
registration and subscription state machines.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod

from .._utils import BRANCH, EOL, REASON_PHRASES, SCHEME, VERSION
from .._types import HeaderTypes
from ._header import Headers, HeaderParser


# ============================================================================
# Base Classes
# ============================================================================


class SIPMessage(ABC):
    """
    Abstract base class for SIP messages.

    Subclasses provide the start line; headers and content are shared.
    """

    _headers: Headers
    _content: bytes

    def _init_content(self, content: str | bytes | None) -> None:
        if isinstance(content, str):
            self._content = content.encode("utf-8")
        elif isinstance(content, bytes):
            self._content = content
        else:
            self._content = b""
        if "Content-Length" not in self._headers:
            self._headers["Content-Length"] = str(len(self._content))

    @property
    def headers(self) -> Headers:
        """Return the message headers."""
        return self._headers

    @property
    def content(self) -> bytes:
        """Return the message body as bytes."""
        return self._content

    @property
    def call_id(self) -> str | None:
        return self._headers.get("Call-ID")

    @property
    def cseq(self) -> str | None:
        return self._headers.get("CSeq")

    @property
    def cseq_number(self) -> int:
        """Return the sequence number part of the CSeq header (0 if absent)."""
        if not self.cseq:
            return 0
        return int(self.cseq.split()[0])

    @property
    def expires(self) -> int | None:
        """Return the Expires header as delta-seconds, None if absent."""
        return HeaderParser.parse_delta_seconds(self._headers.get("Expires"))

    @abstractmethod
    def start_line(self) -> str:
        """Return the request line or status line."""
        ...

    def to_bytes(self) -> bytes:
        """Serialize message to bytes (wire format)."""
        encoding = "utf-8"
        data = self.start_line().encode(encoding) + EOL.encode(encoding)
        data += self._headers.raw(encoding) + EOL.encode(encoding)
        return data + self._content

    def __str__(self) -> str:
        return self.to_bytes().decode("utf-8", errors="replace")


# ============================================================================
# Request Implementation
# ============================================================================


class Request(SIPMessage):
    """SIP Request message (REGISTER and SUBSCRIBE for this agent)."""

    __slots__ = ("method", "uri", "version", "_headers", "_content")

    def __init__(
        self,
        method: str,
        uri: str,
        *,
        headers: HeaderTypes | None = None,
        content: str | bytes | None = None,
        version: str | None = None,
    ) -> None:
        self.method = method.upper()
        self.uri = uri
        self.version = version if version else f"{SCHEME}/{VERSION}"
        self._headers = (
            Headers(headers) if not isinstance(headers, Headers) else headers
        )
        self._init_content(content)

        if "Max-Forwards" not in self._headers:
            self._headers["Max-Forwards"] = "70"

    def start_line(self) -> str:
        return f"{self.method} {self.uri} {self.version}"

    @property
    def is_register(self) -> bool:
        """True if this is a REGISTER request."""
        return self.method == "REGISTER"

    def increment_cseq(self) -> int:
        """
        Increment the CSeq sequence number in place.

        A retried request is a new transaction, so it also gets a fresh
        Via branch.

        Returns:
            The new sequence number
        """
        seq = self.cseq_number + 1
        self._headers["CSeq"] = f"{seq} {self.method}"
        via = self._headers.get("Via")
        if via and ";branch=" in via:
            head, _, rest = via.partition(";branch=")
            tail = rest.split(";", 1)[1] if ";" in rest else ""
            self._headers["Via"] = f"{head};branch={MessageFactory.new_branch()}" + (
                f";{tail}" if tail else ""
            )
        return seq

    def __repr__(self) -> str:
        return f"<Request({self.method!r}, {self.uri!r}, cseq={self.cseq_number})>"


# ============================================================================
# Response Implementation
# ============================================================================


class Response(SIPMessage):
    """
    SIP Response message.

    Response classes:
    - 1xx: Provisional (100 Trying)
    - 2xx: Success (200 OK, 202 Accepted)
    - 3xx-6xx: Failure (401/407 carry digest challenges)
    """

    __slots__ = (
        "status_code",
        "version",
        "reason_phrase",
        "_headers",
        "_content",
    )

    def __init__(
        self,
        status_code: int,
        *,
        reason_phrase: str | None = None,
        headers: HeaderTypes | None = None,
        content: str | bytes | None = None,
        version: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.version = version if version else f"{SCHEME}/{VERSION}"
        self._headers = (
            Headers(headers) if not isinstance(headers, Headers) else headers
        )

        if reason_phrase is None:
            self.reason_phrase = REASON_PHRASES.get(status_code, "Unknown")
        else:
            self.reason_phrase = reason_phrase

        self._init_content(content)

    def start_line(self) -> str:
        return f"{self.version} {self.status_code} {self.reason_phrase}"

    @property
    def status_text(self) -> str:
        """Return 'code reason', the text reported to listeners."""
        return f"{self.status_code} {self.reason_phrase}"

    @property
    def contact_expires(self) -> list[int]:
        """Return the 'expires' parameter of every Contact entry that has one."""
        contact = self._headers.get("Contact")
        if not contact:
            return []

        values = []
        for entry in HeaderParser.split_contacts(contact):
            params = HeaderParser.parse_header_value(entry)
            expires = HeaderParser.parse_delta_seconds(params.get("expires"))
            if expires is not None:
                values.append(expires)
        return values

    @property
    def next_nonce(self) -> str | None:
        """Return the nextnonce parameter of Authentication-Info, if any."""
        info = self._headers.get("Authentication-Info")
        if not info:
            return None
        for part in info.split(","):
            if "=" not in part:
                continue
            key, value = part.split("=", 1)
            if key.strip().lower() == "nextnonce":
                return value.strip().strip('"')
        return None

    def __repr__(self) -> str:
        return f"<Response [{self.status_code} {self.reason_phrase}]>"


# ============================================================================
# Message Factory
# ============================================================================


class MessageFactory:
    """Builds the out-of-dialog requests the register agent sends."""

    @staticmethod
    def new_branch() -> str:
        return f"{BRANCH}{uuid.uuid4().hex[:16]}"

    @staticmethod
    def new_tag() -> str:
        return uuid.uuid4().hex[:8]

    @staticmethod
    def new_call_id(contact: str) -> str:
        host = MessageFactory.parse_uri(contact)["host"] or "localhost"
        return f"{uuid.uuid4().hex}@{host}"

    @staticmethod
    def parse_uri(uri: str) -> dict[str, str]:
        """
        Parse SIP URI into components.

        Example:
            >>> MessageFactory.parse_uri("sip:alice@atlanta.com:5060;transport=tcp")
            {'scheme': 'sip', 'user': 'alice', 'host': 'atlanta.com', 'port': '5060', 'params': 'transport=tcp'}
        """
        result: dict[str, str] = {
            "scheme": "",
            "user": "",
            "host": "",
            "port": "",
            "params": "",
        }

        uri = uri.strip().strip("<>")
        if ":" not in uri:
            return result

        scheme, rest = uri.split(":", 1)
        result["scheme"] = scheme

        if ";" in rest:
            rest, params = rest.split(";", 1)
            result["params"] = params

        if "@" in rest:
            user, host_port = rest.split("@", 1)
            result["user"] = user
        else:
            host_port = rest

        if ":" in host_port:
            host, port = host_port.rsplit(":", 1)
            result["host"] = host
            result["port"] = port
        else:
            result["host"] = host_port

        return result

    @staticmethod
    def registrar_uri(target: str) -> str:
        """Return the Request-URI of a REGISTER: the target without its user part."""
        parts = MessageFactory.parse_uri(target)
        uri = f"{parts['scheme'] or 'sip'}:{parts['host']}"
        if parts["port"]:
            uri += f":{parts['port']}"
        return uri

    @staticmethod
    def _via(contact: str) -> str:
        parts = MessageFactory.parse_uri(contact)
        host = parts["host"] or "localhost"
        port = parts["port"] or "5060"
        return f"SIP/2.0/UDP {host}:{port};branch={MessageFactory.new_branch()};rport"

    @staticmethod
    def create_register_request(
        target: str,
        contact: str,
        *,
        call_id: str,
        cseq: int,
        expires: int,
        user_agent: str | None = None,
    ) -> Request:
        """
        Create a REGISTER binding `contact` to `target` for `expires` seconds.

        Args:
            target: Address of record (used for From and To)
            contact: Contact address to bind
            call_id: Call-ID shared by all registrations of this agent
            cseq: Sequence number for this request
            expires: Requested lifetime (0 removes the binding)
            user_agent: User-Agent header value (optional)
        """
        headers = {
            "Via": MessageFactory._via(contact),
            "From": f"<{target}>;tag={MessageFactory.new_tag()}",
            "To": f"<{target}>",
            "Call-ID": call_id,
            "CSeq": f"{cseq} REGISTER",
            "Contact": f"<{contact}>",
            "Expires": str(expires),
        }
        if user_agent:
            headers["User-Agent"] = user_agent

        return Request("REGISTER", MessageFactory.registrar_uri(target), headers=headers)

    @staticmethod
    def create_subscribe_request(
        target: str,
        contact: str,
        *,
        event: str,
        expires: int,
        accept: str,
        user_agent: str | None = None,
    ) -> Request:
        """Create an initial (body-less) SUBSCRIBE for `event` at `target`."""
        headers = {
            "Via": MessageFactory._via(contact),
            "From": f"<{target}>;tag={MessageFactory.new_tag()}",
            "To": f"<{target}>",
            "Call-ID": MessageFactory.new_call_id(contact),
            "CSeq": "1 SUBSCRIBE",
            "Contact": f"<{contact}>",
            "Event": event,
            "Accept": accept,
            "Expires": str(expires),
        }
        if user_agent:
            headers["User-Agent"] = user_agent

        return Request("SUBSCRIBE", target, headers=headers)


__all__ = [
    "SIPMessage",
    "Request",
    "Response",
    "MessageFactory",
]
