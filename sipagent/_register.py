"""
REGISTER state machine.

This module drives REGISTER / un-REGISTER transactions through the
registration states, answering digest challenges on the way:

    UNREGISTERED --register(t>0)--> REGISTERING --2xx--> REGISTERED
    REGISTERED   --register(t>0)--> REGISTERING
    REGISTERED   --register(0)----> DEREGISTERING --2xx--> UNREGISTERED

A failed or timed-out transaction rolls back to the state it started from
(REGISTERING -> UNREGISTERED, DEREGISTERING -> REGISTERED).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from ._auth import ChallengeResolver
from ._models._auth import DigestCredentials
from ._models._message import MessageFactory
from ._types import AgentConfig, RegistrationState
from ._utils import logger

if TYPE_CHECKING:
    from ._agent import RegisterAgent
    from ._interfaces import TransactionSender
    from ._models._message import Request, Response


@dataclass
class RegistrationSession:
    """
    Registration state of one agent.

    Holds the addresses, the credentials shared with the MWI subscriber,
    and the authentication continuation state (next nonce, qop).
    """

    target: str
    contact: str
    username: str
    passwd: str
    call_id: str
    realm: Optional[str] = None
    next_nonce: Optional[str] = None
    qop: Optional[str] = None
    expire_time: int = 3600
    state: RegistrationState = RegistrationState.UNREGISTERED
    attempts: int = 0
    cseq: int = 0

    @classmethod
    def from_config(cls, config: AgentConfig) -> RegistrationSession:
        return cls(
            target=config.target,
            contact=config.contact,
            username=config.username,
            passwd=config.password,
            realm=config.realm,
            expire_time=config.expires,
            call_id=MessageFactory.new_call_id(config.contact),
        )

    def credentials(self) -> DigestCredentials:
        return DigestCredentials(
            username=self.username, password=self.passwd, realm=self.realm
        )

    def next_cseq(self) -> int:
        self.cseq += 1
        return self.cseq


class Registrar:
    """
    Registration state machine (RFC 3261 Section 10).

    At most one REGISTER transaction is outstanding: register() is
    rejected while the session is REGISTERING or DEREGISTERING. Each
    accepted call resets the authentication attempt counter; each 401/407
    on the transaction consumes one attempt, up to `max_attempts`.
    """

    def __init__(
        self,
        session: RegistrationSession,
        config: AgentConfig,
        sender: TransactionSender,
        resolver: ChallengeResolver,
        owner: RegisterAgent,
    ) -> None:
        self.session = session
        self.config = config
        self.sender = sender
        self.resolver = resolver
        self.owner = owner

    @property
    def state(self) -> RegistrationState:
        return self.session.state

    def is_registered(self) -> bool:
        """True while registered or (re-)registering."""
        return self.session.state in (
            RegistrationState.REGISTERED,
            RegistrationState.REGISTERING,
        )

    def register(self, expires: Optional[int] = None) -> bool:
        """
        Register for `expires` seconds, or deregister when `expires` is 0.

        Args:
            expires: Requested lifetime; None reuses the last requested one

        Returns:
            False if the call is not allowed in the current state
        """
        session = self.session
        if expires is None:
            expires = session.expire_time

        if expires > 0:
            if session.state not in (
                RegistrationState.UNREGISTERED,
                RegistrationState.REGISTERED,
            ):
                logger.warning(
                    f"register({expires}) rejected in state {session.state.name}"
                )
                return False
            session.expire_time = expires
            next_state = RegistrationState.REGISTERING
        else:
            if session.state != RegistrationState.REGISTERED:
                logger.warning(
                    f"Deregistration rejected in state {session.state.name}"
                )
                return False
            expires = 0
            next_state = RegistrationState.DEREGISTERING

        session.attempts = 0
        session.state = next_state

        request = MessageFactory.create_register_request(
            session.target,
            session.contact,
            call_id=session.call_id,
            cseq=session.next_cseq(),
            expires=expires,
            user_agent=self.config.user_agent,
        )

        authorization = self.resolver.preemptive_authorization(request, session)
        if authorization:
            request.headers["Authorization"] = authorization

        if expires > 0:
            logger.info(
                f"📤 Registering contact {session.contact} (it expires in {expires} secs)"
            )
        else:
            logger.info(f"📤 Unregistering contact {session.contact}")

        self.sender.submit(request, self.owner)
        return True

    # ------------------------------------------------------------------
    # Transaction callbacks
    # ------------------------------------------------------------------

    def on_provisional(self, request: Request, response: Response) -> None:
        logger.debug(f"REGISTER progress: {response.status_text}")

    def on_success(self, request: Request, response: Response) -> None:
        if not request.is_register:
            return

        session = self.session
        if not session.state.is_pending:
            logger.debug(
                f"Ignoring {response.status_text} in state {session.state.name}"
            )
            return

        next_nonce = response.next_nonce
        if next_nonce:
            session.next_nonce = next_nonce

        expires = self.granted_expires(response)
        result = response.status_text

        if session.state == RegistrationState.REGISTERING:
            session.state = RegistrationState.REGISTERED
            result = f"{result} (expires in {expires} secs)"
            logger.info(f"✅ Registration success: {result}")
            self.owner._registration_succeeded(result)
            self.owner._schedule_reregister(expires)
        else:
            session.state = RegistrationState.UNREGISTERED
            logger.info(f"✅ Unregistration success: {result}")
            self.owner._registration_succeeded(result)

    def on_failure(self, request: Request, response: Response) -> None:
        if not request.is_register:
            return

        session = self.session
        if not session.state.is_pending:
            logger.debug(
                f"Ignoring {response.status_text} in state {session.state.name}"
            )
            return

        if self._retry_with_auth(request, response):
            return

        result = response.status_text
        logger.error(f"❌ Registration failure: {result}")
        self._rollback(result)

    def on_timeout(self, request: Request) -> None:
        if not request.is_register:
            return

        if not self.session.state.is_pending:
            logger.debug(f"Ignoring timeout in state {self.session.state.name}")
            return

        logger.error("❌ Registration failure: No response from server.")
        self._rollback("Timeout")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def granted_expires(response: Response) -> int:
        """
        Return the expiry the registrar granted.

        The Expires header wins; otherwise the smallest positive Contact
        'expires' parameter; otherwise 0.
        """
        expires = response.expires
        if expires is not None:
            return expires

        granted = [value for value in response.contact_expires if value > 0]
        return min(granted) if granted else 0

    def _retry_with_auth(self, request: Request, response: Response) -> bool:
        session = self.session
        if session.attempts >= self.config.max_attempts:
            logger.warning(
                f"🔐 Giving up after {session.attempts} authentication attempts"
            )
            return False

        if not self.resolver.handle_authentication(
            response.status_code, response, request, session
        ):
            return False

        session.attempts += 1
        session.cseq = max(session.cseq, request.increment_cseq())
        logger.info(
            f"📤 REGISTER retry with credentials (attempt {session.attempts})"
        )
        self.sender.submit(request, self.owner)
        return True

    def _rollback(self, result: str) -> None:
        """Undo the pending transition and report `result` as a failure."""
        session = self.session
        if session.state == RegistrationState.REGISTERING:
            session.state = RegistrationState.UNREGISTERED
            self.owner._registration_failed(result)
            self.owner._schedule_reregister(self.config.register_retry_delay)
        else:
            session.state = RegistrationState.REGISTERED
            self.owner._registration_failed(result)


__all__ = ["RegistrationSession", "Registrar"]
