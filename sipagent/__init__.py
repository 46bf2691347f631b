"""sipagent - SIP registration and message-waiting subscription agent."""

from __future__ import annotations

# Agent facade
from ._agent import RegisterAgent

# State machines
from ._register import Registrar, RegistrationSession
from ._mwi import MWISubscriber, SubscriptionSession

# Authentication
from ._auth import ChallengeResolver

# Collaborator contracts
from ._interfaces import (
    AgentListener,
    DialogFactory,
    DialogListener,
    Scheduler,
    SubscriberDialog,
    TimerScheduler,
    TransactionListener,
    TransactionSender,
)

# Message models
from ._models import (
    AuthParser,
    BodyParser,
    DigestAuth,
    DigestChallenge,
    DigestCredentials,
    HeaderParser,
    Headers,
    MessageFactory,
    Request,
    Response,
    SimpleMsgSummaryBody,
    SIPMessage,
)

# Types
from ._types import (
    AgentConfig,
    AuthenticationError,
    NotifyParseError,
    RegistrationState,
    SipAgentError,
)

# Utilities
from ._utils import (
    BRANCH,
    EOL,
    MWI_CONTENT_TYPE,
    MWI_EVENT,
    console,
    logger,
)

__version__ = "0.1.0"

__all__ = [
    # Agent
    "RegisterAgent",
    "AgentConfig",
    # State machines
    "Registrar",
    "RegistrationSession",
    "RegistrationState",
    "MWISubscriber",
    "SubscriptionSession",
    # Authentication
    "ChallengeResolver",
    "AuthParser",
    "DigestAuth",
    "DigestChallenge",
    "DigestCredentials",
    # Collaborators
    "AgentListener",
    "DialogFactory",
    "DialogListener",
    "Scheduler",
    "SubscriberDialog",
    "TimerScheduler",
    "TransactionListener",
    "TransactionSender",
    # Messages
    "Headers",
    "HeaderParser",
    "SIPMessage",
    "Request",
    "Response",
    "MessageFactory",
    "SimpleMsgSummaryBody",
    "BodyParser",
    # Errors
    "SipAgentError",
    "AuthenticationError",
    "NotifyParseError",
    # Utilities
    "console",
    "logger",
    "EOL",
    "BRANCH",
    "MWI_EVENT",
    "MWI_CONTENT_TYPE",
    # Metadata
    "__version__",
]
