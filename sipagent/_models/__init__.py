"""
SIP Models Package.

This package contains models for SIP messages, headers, digest
authentication and message-summary bodies.
"""

from ._auth import (
    AuthParser,
    DigestAuth,
    DigestChallenge,
    DigestCredentials,
)
from ._body import BodyParser, SimpleMsgSummaryBody
from ._header import HeaderParser, Headers
from ._message import MessageFactory, Request, Response, SIPMessage

__all__ = [
    # Headers
    "Headers",
    "HeaderParser",
    # Messages
    "SIPMessage",
    "Request",
    "Response",
    "MessageFactory",
    # Authentication - Digest
    "DigestAuth",
    "DigestChallenge",
    "DigestCredentials",
    "AuthParser",
    # Body types
    "SimpleMsgSummaryBody",
    "BodyParser",
]
