"""
Collaborator contracts for the register agent.

The agent does not own sockets, retransmissions or dialog bookkeeping.
It talks to the outside world through the abstract classes below:

- TransactionSender: runs a non-INVITE client transaction for a request
- SubscriberDialog: one SUBSCRIBE/NOTIFY dialog, created by a DialogFactory
- Scheduler: re-invokes register() after a delay
- AgentListener: receives registration results and MWI updates

Callbacks flow back through TransactionListener and DialogListener, both
implemented by RegisterAgent.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, Optional

from ._utils import logger

if TYPE_CHECKING:
    from ._models._message import Request, Response

# Matches threading.Timer(interval, function)
TimerFactory = Callable[[float, Callable[[], None]], threading.Timer]


class TransactionListener(ABC):
    """Receives the outcome of a client transaction started by TransactionSender."""

    @abstractmethod
    def on_trans_provisional_response(self, request: Request, response: Response) -> None:
        """A 1xx response was received."""
        ...

    @abstractmethod
    def on_trans_success_response(self, request: Request, response: Response) -> None:
        """A 2xx response was received."""
        ...

    @abstractmethod
    def on_trans_failure_response(self, request: Request, response: Response) -> None:
        """A 3xx-6xx response was received."""
        ...

    @abstractmethod
    def on_trans_timeout(self, request: Request) -> None:
        """No final response arrived before the transaction timer fired."""
        ...


class TransactionSender(ABC):
    """Sends a request as a new client transaction."""

    @abstractmethod
    def submit(self, request: Request, listener: TransactionListener) -> None:
        """
        Start a transaction for `request`.

        Exactly one stream of callbacks is delivered to `listener`, each
        carrying the request that was submitted.
        """
        ...


class DialogListener(ABC):
    """Receives subscription dialog events."""

    @abstractmethod
    def on_dlg_subscription_success(
        self, dialog: SubscriberDialog, code: int, reason: str, response: Response
    ) -> None: ...

    @abstractmethod
    def on_dlg_subscription_failure(
        self, dialog: SubscriberDialog, code: int, reason: str, response: Response
    ) -> None: ...

    @abstractmethod
    def on_dlg_subscribe_timeout(self, dialog: SubscriberDialog) -> None: ...

    @abstractmethod
    def on_dlg_subscription_terminated(self, dialog: SubscriberDialog) -> None: ...

    @abstractmethod
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
    ) -> None: ...


class SubscriberDialog(ABC):
    """A subscriber dialog for one event package."""

    @abstractmethod
    def subscribe(self, request: Request) -> None:
        """Send `request` (initial or refreshing SUBSCRIBE) within this dialog."""
        ...


# DialogFactory(event, listener) -> SubscriberDialog
DialogFactory = Callable[[str, DialogListener], SubscriberDialog]


class Scheduler(ABC):
    """Owner of periodic re-registration."""

    @abstractmethod
    def re_register(self, delay: float) -> None:
        """Re-invoke register() after `delay` seconds."""
        ...


class AgentListener(ABC):
    """Receives registration results and message-waiting updates."""

    def on_ua_registration_success(
        self, agent: object, target: str, contact: str, result: str
    ) -> None:
        pass

    def on_ua_registration_failure(
        self, agent: object, target: str, contact: str, result: str
    ) -> None:
        pass

    def on_mwi_update(
        self, voicemail: bool, count: int, account: Optional[str]
    ) -> None:
        pass


class TimerScheduler(Scheduler):
    """
    Default Scheduler backed by a daemon threading.Timer.

    Only the most recent request is kept: scheduling again cancels the
    pending timer. A non-positive delay cancels without rescheduling.
    """

    def __init__(
        self,
        register: Callable[[], bool],
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self._register = register
        self._timer_factory = timer_factory
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    def re_register(self, delay: float) -> None:
        with self._lock:
            if self._timer:
                self._timer.cancel()
                self._timer = None

            if delay <= 0:
                logger.debug("Re-registration not scheduled (no expiry granted)")
                return

            logger.debug(f"Re-registration scheduled in {delay}s")
            self._timer = self._timer_factory(delay, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        """Cancel any pending re-registration."""
        with self._lock:
            if self._timer:
                self._timer.cancel()
                self._timer = None

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
        try:
            if not self._register():
                logger.debug("Scheduled re-registration rejected (transaction pending)")
        except Exception:
            logger.exception("Scheduled re-registration failed")


__all__ = [
    "TimerFactory",
    "TransactionListener",
    "TransactionSender",
    "DialogListener",
    "SubscriberDialog",
    "DialogFactory",
    "Scheduler",
    "AgentListener",
    "TimerScheduler",
]
