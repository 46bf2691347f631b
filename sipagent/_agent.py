"""
Register agent facade.

RegisterAgent is the object applications hold. It registers a contact
address with a registrar (once or periodically through a Scheduler),
keeps a message-summary subscription for voicemail indication, and
dispatches transaction and dialog callbacks to the state machine that
owns them.

Example:
    >>> agent = RegisterAgent(
    ...     AgentConfig(
    ...         target="sip:alice@example.com",
    ...         contact="sip:alice@192.0.2.10:5060",
    ...         username="alice",
    ...         password="secret",
    ...     ),
    ...     sender=my_transaction_layer,
    ...     dialog_factory=my_dialog_layer.subscriber,
    ...     listener=MyListener(),
    ... )
    >>> agent.register()
    True
    >>> agent.start_mwi()
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Callable, Optional

from ._auth import ChallengeResolver
from ._interfaces import (
    AgentListener,
    DialogListener,
    TimerScheduler,
    TransactionListener,
)
from ._mwi import MWISubscriber
from ._register import Registrar, RegistrationSession
from ._types import AgentConfig, RegistrationState
from ._utils import logger

if TYPE_CHECKING:
    from ._interfaces import (
        DialogFactory,
        Scheduler,
        SubscriberDialog,
        TimerFactory,
        TransactionSender,
    )
    from ._models._message import Request, Response


class RegisterAgent(TransactionListener, DialogListener):
    """
    Register user agent with MWI subscription.

    All public entry points and all collaborator callbacks run under one
    re-entrant lock, so at most one transition is applied at a time.
    """

    def __init__(
        self,
        config: AgentConfig,
        sender: TransactionSender,
        dialog_factory: DialogFactory,
        listener: Optional[AgentListener] = None,
        scheduler: Optional[Scheduler] = None,
        mwi_enabled: Optional[Callable[[], bool]] = None,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        """
        Initialize the agent in the UNREGISTERED state.

        Args:
            config: Addresses, credentials and timing configuration
            sender: Transaction layer used for REGISTER requests
            dialog_factory: Creates subscriber dialogs for SUBSCRIBE/NOTIFY
            listener: Receives registration results and MWI updates
            scheduler: Re-registration scheduler (default: TimerScheduler
                calling register() on this agent)
            mwi_enabled: MWI feature toggle, read before every subscribe and
                NOTIFY delivery (default: config.mwi_enabled)
            timer_factory: Timer constructor for background timers
        """
        self.config = config
        self.listener = listener
        self.halted = False
        self.lock = threading.RLock()
        self.scheduler = scheduler or TimerScheduler(self.register, timer_factory)

        if mwi_enabled is None:
            mwi_enabled = self._config_mwi_enabled

        self.resolver = ChallengeResolver()
        self.session = RegistrationSession.from_config(config)
        self.registrar = Registrar(
            self.session, config, sender, self.resolver, self
        )
        self.subscriber = MWISubscriber(
            config,
            self.session,
            dialog_factory,
            self.resolver,
            self,
            mwi_enabled,
            timer_factory,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def target(self) -> str:
        return self.session.target

    @property
    def contact(self) -> str:
        return self.session.contact

    @property
    def state(self) -> RegistrationState:
        return self.session.state

    @property
    def subscribed(self) -> bool:
        return self.subscriber.subscribed

    def _config_mwi_enabled(self) -> bool:
        return self.config.mwi_enabled

    def is_registered(self) -> bool:
        """True while registered or (re-)registering."""
        return self.registrar.is_registered()

    def register(self, expires: Optional[int] = None) -> bool:
        """
        Register the contact for `expires` seconds (0 deregisters).

        Returns:
            False if a REGISTER transaction is already pending, or if
            deregistration is requested while not registered
        """
        with self.lock:
            return self.registrar.register(expires)

    def unregister(self) -> bool:
        """
        Stop MWI and remove the registration.

        Returns:
            False, with the subscription left untouched, if not registered
        """
        with self.lock:
            if self.session.state != RegistrationState.REGISTERED:
                logger.warning(
                    f"Unregister rejected in state {self.session.state.name}"
                )
                return False
            self.subscriber.stop_mwi()
            return self.registrar.register(0)

    def start_mwi(self) -> None:
        """Start the message-summary subscription (no-op if already subscribed)."""
        with self.lock:
            self.subscriber.start_mwi()

    def stop_mwi(self) -> None:
        """Stop the message-summary subscription and report MWI as off."""
        with self.lock:
            self.subscriber.stop_mwi()

    def halt(self) -> None:
        """Detach the listener; in-flight exchanges complete silently."""
        with self.lock:
            self.halted = True
            self.listener = None

    # ------------------------------------------------------------------
    # TransactionListener
    # ------------------------------------------------------------------

    def on_trans_provisional_response(self, request: Request, response: Response) -> None:
        with self.lock:
            self.registrar.on_provisional(request, response)

    def on_trans_success_response(self, request: Request, response: Response) -> None:
        with self.lock:
            self.registrar.on_success(request, response)

    def on_trans_failure_response(self, request: Request, response: Response) -> None:
        with self.lock:
            self.registrar.on_failure(request, response)

    def on_trans_timeout(self, request: Request) -> None:
        with self.lock:
            self.registrar.on_timeout(request)

    # ------------------------------------------------------------------
    # DialogListener
    # ------------------------------------------------------------------

    def on_dlg_subscription_success(
        self, dialog: SubscriberDialog, code: int, reason: str, response: Response
    ) -> None:
        with self.lock:
            self.subscriber.on_success(dialog, code, reason, response)

    def on_dlg_subscription_failure(
        self, dialog: SubscriberDialog, code: int, reason: str, response: Response
    ) -> None:
        with self.lock:
            self.subscriber.on_failure(dialog, code, reason, response)

    def on_dlg_subscribe_timeout(self, dialog: SubscriberDialog) -> None:
        with self.lock:
            self.subscriber.on_timeout(dialog)

    def on_dlg_subscription_terminated(self, dialog: SubscriberDialog) -> None:
        with self.lock:
            self.subscriber.on_terminated(dialog)

    def on_dlg_notify(
        self,
        dialog: SubscriberDialog,
        target: str,
        notifier: str,
        contact: str,
        state: str,
        content_type: str,
        body: str,
        message: Request,
    ) -> None:
        with self.lock:
            self.subscriber.on_notify(dialog, body)

    # ------------------------------------------------------------------
    # Notifications (called by the state machines)
    # ------------------------------------------------------------------

    def _registration_succeeded(self, result: str) -> None:
        if self.session.state == RegistrationState.REGISTERED:
            # A fresh registration restarts the bounded resubscription budget
            self.subscriber.reset_attempts()
        listener = self.listener
        if listener is None:
            return
        try:
            listener.on_ua_registration_success(
                self, self.session.target, self.session.contact, result
            )
        except Exception:
            logger.exception("Listener failed handling registration success")

    def _registration_failed(self, result: str) -> None:
        listener = self.listener
        if listener is None:
            return
        try:
            listener.on_ua_registration_failure(
                self, self.session.target, self.session.contact, result
            )
        except Exception:
            logger.exception("Listener failed handling registration failure")

    def _schedule_reregister(self, delay: float) -> None:
        if self.halted:
            return
        self.scheduler.re_register(delay)

    def _mwi_update(self, voicemail: bool, count: int, account: Optional[str]) -> None:
        listener = self.listener
        if listener is None:
            return
        try:
            listener.on_mwi_update(voicemail, count, account)
        except Exception:
            logger.exception("Listener failed handling MWI update")

    def __repr__(self) -> str:
        return (
            f"<RegisterAgent({self.session.target!r}, {self.session.state.name}, "
            f"subscribed={self.subscriber.subscribed})>"
        )


__all__ = ["RegisterAgent"]
