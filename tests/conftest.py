import pytest

from sipagent import AgentConfig, AgentListener, RegisterAgent, Scheduler, SubscriberDialog


class FakeSender:
    def __init__(self):
        self.submitted = []

    def submit(self, request, listener):
        self.submitted.append((request, listener))

    @property
    def last(self):
        return self.submitted[-1][0]


class FakeDialog(SubscriberDialog):
    def __init__(self, event, listener):
        self.event = event
        self.listener = listener
        self.requests = []

    def subscribe(self, request):
        self.requests.append(request)


class FakeDialogFactory:
    def __init__(self):
        self.dialogs = []

    def __call__(self, event, listener):
        dialog = FakeDialog(event, listener)
        self.dialogs.append(dialog)
        return dialog

    @property
    def last(self):
        return self.dialogs[-1]

    @property
    def subscribes(self):
        return [req for dialog in self.dialogs for req in dialog.requests]


class FakeScheduler(Scheduler):
    def __init__(self):
        self.delays = []

    def re_register(self, delay):
        self.delays.append(delay)


class RecordingListener(AgentListener):
    def __init__(self):
        self.successes = []
        self.failures = []
        self.mwi = []

    def on_ua_registration_success(self, agent, target, contact, result):
        self.successes.append(result)

    def on_ua_registration_failure(self, agent, target, contact, result):
        self.failures.append(result)

    def on_mwi_update(self, voicemail, count, account):
        self.mwi.append((voicemail, count, account))


class FakeTimer:
    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function()


class FakeTimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, interval, function):
        timer = FakeTimer(interval, function)
        self.timers.append(timer)
        return timer


class Toggle:
    def __init__(self, enabled=True):
        self.enabled = enabled

    def __call__(self):
        return self.enabled


@pytest.fixture
def config():
    return AgentConfig(
        target="sip:alice@sip.example.com",
        contact="sip:alice@192.0.2.10:5060",
        username="alice",
        password="secret",
    )


@pytest.fixture
def sender():
    return FakeSender()


@pytest.fixture
def dialogs():
    return FakeDialogFactory()


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def timers():
    return FakeTimerFactory()


@pytest.fixture
def toggle():
    return Toggle()


@pytest.fixture
def agent(config, sender, dialogs, listener, scheduler, toggle, timers):
    return RegisterAgent(
        config,
        sender=sender,
        dialog_factory=dialogs,
        listener=listener,
        scheduler=scheduler,
        mwi_enabled=toggle,
        timer_factory=timers,
    )
