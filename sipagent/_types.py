"""
Type definitions for the SIP register agent.

This module centralizes the registration states, the agent configuration
and the exception hierarchy used throughout the package.
"""

from __future__ import annotations

import typing
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

if typing.TYPE_CHECKING:
    from ._models._header import Headers
    from ._models._auth import DigestCredentials


# =============================================================================
# Header Types
# =============================================================================

HeaderTypes = typing.Union[
    "Headers",
    Mapping[str, str],
]


# =============================================================================
# Registration States
# =============================================================================


class RegistrationState(Enum):
    """
    States of the registration state machine.

    UNREGISTERED → REGISTERING → REGISTERED → DEREGISTERING → UNREGISTERED

    Only REGISTERING and DEREGISTERING have a REGISTER transaction in
    flight; a failed transaction rolls back to the previous stable state.
    """

    UNREGISTERED = auto()
    REGISTERING = auto()
    REGISTERED = auto()
    DEREGISTERING = auto()

    @property
    def is_pending(self) -> bool:
        """True while a REGISTER transaction is outstanding."""
        return self in (RegistrationState.REGISTERING, RegistrationState.DEREGISTERING)


# =============================================================================
# Agent Configuration
# =============================================================================


@dataclass
class AgentConfig:
    """
    Configuration for a RegisterAgent.

    Attributes:
        target: Address of record at the registrar (e.g. 'sip:alice@example.com')
        contact: Local contact address (e.g. 'sip:alice@192.0.2.10:5060')
        username: Authentication username
        password: Authentication password
        realm: Authentication realm (a challenge always overrides it)
        expires: Default registration lifetime in seconds
        user_agent: User-Agent header value (optional)
        mwi_enabled: Default value of the MWI feature toggle
        subscription_expires: Requested message-summary subscription lifetime
        max_attempts: Authentication / resubscription retry bound
        mwi_retry_delay: Seconds to wait before resubscribing after a failure
        register_retry_delay: Seconds before re-registering after a failure
    """

    target: str
    contact: str
    username: str = ""
    password: str = ""
    realm: Optional[str] = None
    expires: int = 3600
    user_agent: Optional[str] = None
    mwi_enabled: bool = True
    subscription_expires: int = 184000
    max_attempts: int = 3
    mwi_retry_delay: float = 10.0
    register_retry_delay: float = 1.0

    def credentials(self) -> DigestCredentials:
        """Return the digest credentials described by this configuration."""
        from ._models._auth import DigestCredentials

        return DigestCredentials(
            username=self.username, password=self.password, realm=self.realm
        )


# =============================================================================
# Exceptions
# =============================================================================


class SipAgentError(Exception):
    """Base exception for register agent errors."""

    pass


class AuthenticationError(SipAgentError, ValueError):
    """Raised when a challenge cannot be answered (unsupported or malformed)."""

    pass


class NotifyParseError(SipAgentError, ValueError):
    """Raised when a message-summary NOTIFY body cannot be parsed."""

    pass


__all__ = [
    "HeaderTypes",
    "RegistrationState",
    "AgentConfig",
    "SipAgentError",
    "AuthenticationError",
    "NotifyParseError",
]
