"""
Message summary body model and parser (RFC 3842).

NOTIFY requests of the message-summary event package carry an
application/simple-message-summary body:

    Messages-Waiting: yes
    Message-Account: sip:alice@vmail.example.com
    Voice-Message: 2/8 (0/2)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .._types import NotifyParseError
from .._utils import EOL, MWI_CONTENT_TYPE


@dataclass
class SimpleMsgSummaryBody:
    """
    Simple message summary body (application/simple-message-summary).

    Used for voice mail and message waiting indicators (MWI). `account` holds
    only the part of Message-Account before '@'; the host is dropped because
    it is unreliable behind NAT.
    """

    messages_waiting: bool = False
    voice_message_new: int = 0
    voice_message_old: int = 0
    account: Optional[str] = None

    def to_string(self) -> str:
        """Serialize to message summary format."""
        lines = [f"Messages-Waiting: {'yes' if self.messages_waiting else 'no'}"]

        if self.account:
            lines.append(f"Message-Account: {self.account}")

        if self.voice_message_new > 0 or self.voice_message_old > 0:
            lines.append(
                f"Voice-Message: {self.voice_message_new}/{self.voice_message_old}"
            )

        return EOL.join(lines) + EOL

    @property
    def content_type(self) -> str:
        return MWI_CONTENT_TYPE


class BodyParser:
    """Parser for SIP message bodies."""

    @staticmethod
    def parse_simple_message_summary(content: bytes | str) -> SimpleMsgSummaryBody:
        """
        Parse a simple-message-summary body (MWI).

        Property names are case-insensitive and unknown properties are
        skipped. Only 'yes' (any case) turns Messages-Waiting on.

        Raises:
            NotifyParseError: If the Voice-Message count is not an integer
        """
        text = content.decode("utf-8") if isinstance(content, bytes) else content

        summary = SimpleMsgSummaryBody()

        for line in text.replace("\r\n", "\n").split("\n"):
            if not line.strip():
                continue

            name, sep, value = line.partition(":")
            if not sep:
                continue
            name = name.strip().lower()
            value = value.strip()

            if name == "messages-waiting":
                if value.lower() == "yes":
                    summary.messages_waiting = True
            elif name == "voice-message":
                new, _, old = value.partition("/")
                new = new.strip()
                if not (new.isascii() and new.isdigit()):
                    raise NotifyParseError(f"Invalid Voice-Message count: {value!r}")
                summary.voice_message_new = int(new)
                old_fields = old.split()
                if old_fields and old_fields[0].isdigit():
                    summary.voice_message_old = int(old_fields[0])
            elif name == "message-account":
                summary.account = value.split("@", 1)[0]

        return summary


__all__ = [
    "SimpleMsgSummaryBody",
    "BodyParser",
]
