"""
Message-waiting indication (MWI) subscriber.

Keeps a message-summary subscription (RFC 3842) alive in the background:

- start_mwi() sends a fresh SUBSCRIBE on a new dialog
- a successful subscription arms a renewal timer for the granted expiry
- failures are retried with credentials, or after a fixed delay, a bounded
  number of times
- server-side termination starts a new cycle immediately
- NOTIFY bodies are parsed and delivered as (voicemail, count, account)

Every new dialog bumps the session generation. Timers remember the
generation they were armed in and do nothing once it has moved on, and
callbacks from a replaced dialog are ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from ._models._body import BodyParser
from ._models._message import MessageFactory
from ._types import NotifyParseError
from ._utils import MWI_CONTENT_TYPE, MWI_EVENT, logger

if TYPE_CHECKING:
    from ._agent import RegisterAgent
    from ._auth import ChallengeResolver
    from ._interfaces import DialogFactory, SubscriberDialog, TimerFactory
    from ._models._message import Request, Response
    from ._register import RegistrationSession
    from ._types import AgentConfig


@dataclass
class SubscriptionSession:
    """State of the message-summary subscription."""

    dialog: Optional[SubscriberDialog] = None
    pending_request: Optional[Request] = None
    subscribed: bool = False
    attempts: int = 0
    generation: int = 0


class MWISubscriber:
    """
    Subscription manager for the message-summary event package.

    All methods expect to run under the owner's lock; timers re-acquire it
    before touching the session.
    """

    def __init__(
        self,
        config: AgentConfig,
        credentials: RegistrationSession,
        dialog_factory: DialogFactory,
        resolver: ChallengeResolver,
        owner: RegisterAgent,
        mwi_enabled: Callable[[], bool],
        timer_factory: TimerFactory,
    ) -> None:
        self.config = config
        self.credentials = credentials
        self.dialog_factory = dialog_factory
        self.resolver = resolver
        self.owner = owner
        self.mwi_enabled = mwi_enabled
        self.timer_factory = timer_factory
        self.session = SubscriptionSession()

    @property
    def subscribed(self) -> bool:
        return self.session.subscribed

    def reset_attempts(self) -> None:
        self.session.attempts = 0

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def start_mwi(self) -> None:
        """Subscribe unless already subscribed or MWI is disabled."""
        if self.session.subscribed:
            return
        if not self.mwi_enabled():
            logger.debug("MWI disabled, not subscribing")
            return

        request = self._subscribe_message(current=False)
        logger.info(f"📤 Subscribing to {MWI_EVENT} at {request.uri}")
        self.session.dialog.subscribe(request)

    def stop_mwi(self) -> None:
        """Drop the current dialog and report voicemail status as off."""
        self._invalidate()
        self.session.dialog = None
        self.session.subscribed = False
        logger.info("📬 MWI stopped")
        self.owner._mwi_update(False, 0, None)

    # ------------------------------------------------------------------
    # Dialog callbacks
    # ------------------------------------------------------------------

    def on_success(
        self, dialog: SubscriberDialog, code: int, reason: str, response: Response
    ) -> None:
        if not self._is_current(dialog, "subscription success"):
            return
        # Replays of the success notice are expected
        if self.session.subscribed:
            return

        expires = response.expires
        if expires is None:
            expires = self.config.subscription_expires
        if expires == 0:
            logger.info("📬 Subscription accepted with Expires: 0, not renewing")
            return

        self.session.subscribed = True
        logger.info(f"✅ Subscribed to {MWI_EVENT} ({code} {reason}), renewing in {expires}s")
        self._arm_timer(expires, self._renew)

    def on_failure(
        self, dialog: SubscriberDialog, code: int, reason: str, response: Response
    ) -> None:
        if not self._is_current(dialog, "subscription failure"):
            return

        logger.warning(f"❌ Subscription failure: {code} {reason}")
        request = self._subscribe_message(current=True)
        if (
            self.resolver.handle_authentication(
                code, response, request, self.credentials
            )
            and self.session.attempts < self.config.max_attempts
        ):
            self.session.attempts += 1
            self.session.dialog.subscribe(request)
        else:
            self._delay_start()

    def on_timeout(self, dialog: SubscriberDialog) -> None:
        if not self._is_current(dialog, "subscribe timeout"):
            return
        logger.warning("❌ Subscription failure: No response from server.")
        self.session.subscribed = False
        self._delay_start()

    def on_terminated(self, dialog: SubscriberDialog) -> None:
        if not self._is_current(dialog, "subscription termination"):
            return
        logger.info("📬 Subscription terminated by server, resubscribing")
        self.session.subscribed = False
        self.start_mwi()

    def on_notify(self, dialog: SubscriberDialog, body: str) -> None:
        if not self.mwi_enabled():
            return
        if not self._is_current(dialog, "NOTIFY"):
            return

        try:
            summary = BodyParser.parse_simple_message_summary(body or "")
        except NotifyParseError as e:
            logger.warning(f"Ignoring malformed message summary: {e}")
            return

        logger.info(
            f"📬 MWI: waiting={summary.messages_waiting} "
            f"count={summary.voice_message_new} account={summary.account}"
        )
        self.owner._mwi_update(
            summary.messages_waiting, summary.voice_message_new, summary.account
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _subscribe_message(self, current: bool) -> Request:
        """
        Start a new dialog and return the SUBSCRIBE to send on it.

        Args:
            current: Reuse the pending request with its CSeq incremented
                instead of building a fresh one
        """
        # The renewal timer goes stale with the old dialog
        self._invalidate()
        self.session.subscribed = False
        self.session.dialog = self.dialog_factory(MWI_EVENT, self.owner)

        pending = self.session.pending_request
        if current and pending is not None:
            request = pending
            request.increment_cseq()
        else:
            request = MessageFactory.create_subscribe_request(
                self.credentials.target,
                self.credentials.contact,
                event=MWI_EVENT,
                expires=self.config.subscription_expires,
                accept=MWI_CONTENT_TYPE,
                user_agent=self.config.user_agent,
            )

        request.headers["Expires"] = str(self.config.subscription_expires)
        request.headers["Accept"] = MWI_CONTENT_TYPE
        self.session.pending_request = request
        return request

    def _invalidate(self) -> None:
        """Make every timer armed so far stale."""
        self.session.generation += 1

    def _is_current(self, dialog: SubscriberDialog, what: str) -> bool:
        if dialog is not None and dialog is self.session.dialog:
            return True
        logger.debug(f"Ignoring {what} from a stale dialog")
        return False

    def _renew(self) -> None:
        self.session.subscribed = False
        self.session.attempts = 0
        self.start_mwi()

    def _delay_start(self) -> None:
        if self.session.attempts >= self.config.max_attempts:
            logger.warning(
                f"📬 Giving up on {MWI_EVENT} after {self.session.attempts} retries"
            )
            return
        self.session.attempts += 1
        logger.info(
            f"📬 Resubscribing in {self.config.mwi_retry_delay}s "
            f"(attempt {self.session.attempts})"
        )
        self._arm_timer(self.config.mwi_retry_delay, self.start_mwi)

    def _arm_timer(self, delay: float, action: Callable[[], None]) -> None:
        generation = self.session.generation

        def fire() -> None:
            with self.owner.lock:
                if generation != self.session.generation:
                    logger.debug("Stale MWI timer fired, ignoring")
                    return
                action()

        timer = self.timer_factory(delay, fire)
        timer.daemon = True
        timer.start()


__all__ = ["SubscriptionSession", "MWISubscriber"]
