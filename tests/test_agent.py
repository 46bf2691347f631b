import pytest

from sipagent import (
    AgentConfig,
    HeaderParser,
    Headers,
    MessageFactory,
    RegisterAgent,
    RegistrationState,
    Response,
    TimerScheduler,
)

from conftest import FakeDialogFactory, FakeSender, FakeTimerFactory


class TestTimerScheduler:
    def test_schedules_daemon_timer(self, timers):
        calls = []
        scheduler = TimerScheduler(lambda: calls.append(1) or True, timers)

        scheduler.re_register(1800)

        (timer,) = timers.timers
        assert timer.interval == 1800
        assert timer.daemon and timer.started
        timer.fire()
        assert calls == [1]

    def test_reschedule_cancels_previous(self, timers):
        scheduler = TimerScheduler(lambda: True, timers)

        scheduler.re_register(60)
        scheduler.re_register(120)

        assert timers.timers[0].cancelled
        assert not timers.timers[1].cancelled

    def test_non_positive_delay_only_cancels(self, timers):
        scheduler = TimerScheduler(lambda: True, timers)
        scheduler.re_register(60)

        scheduler.re_register(0)

        assert len(timers.timers) == 1
        assert timers.timers[0].cancelled

    def test_register_errors_are_logged(self, timers):
        def broken():
            raise RuntimeError("transport down")

        scheduler = TimerScheduler(broken, timers)
        scheduler.re_register(5)

        timers.timers[0].fire()


def test_default_scheduler_reregisters(config):
    sender = FakeSender()
    timers = FakeTimerFactory()
    agent = RegisterAgent(
        config, sender=sender, dialog_factory=FakeDialogFactory(), timer_factory=timers
    )
    agent.register(600)
    agent.on_trans_success_response(sender.last, Response(200, headers={"Expires": "600"}))
    assert isinstance(agent.scheduler, TimerScheduler)
    assert timers.timers[-1].interval == 600

    timers.timers[-1].fire()

    assert len(sender.submitted) == 2
    assert sender.last.headers["Expires"] == "600"
    assert agent.state == RegistrationState.REGISTERING


def test_config_toggle_is_default(config):
    dialogs = FakeDialogFactory()
    config.mwi_enabled = False
    agent = RegisterAgent(config, sender=FakeSender(), dialog_factory=dialogs)

    agent.start_mwi()
    assert dialogs.dialogs == []

    config.mwi_enabled = True
    agent.start_mwi()
    assert len(dialogs.dialogs) == 1


def test_full_cycle(agent, sender, dialogs, listener, scheduler):
    assert agent.register(3600)
    agent.on_trans_failure_response(
        sender.last,
        Response(401, headers={"WWW-Authenticate": 'Digest realm="sip.example.com", nonce="a"'}),
    )
    agent.on_trans_success_response(sender.last, Response(200, headers={"Expires": "3600"}))
    agent.start_mwi()
    agent.on_dlg_subscription_success(
        dialogs.last, 200, "OK", Response(200, headers={"Expires": "600"})
    )
    agent.on_dlg_notify(
        dialogs.last,
        "sip:alice@sip.example.com",
        "sip:vm@sip.example.com",
        "sip:vm@192.0.2.1",
        "active",
        "application/simple-message-summary",
        "Messages-Waiting: yes\r\nVoice-Message: 1/0\r\n",
        None,
    )
    assert agent.unregister()
    agent.on_trans_success_response(sender.last, Response(200))

    assert listener.successes == ["200 OK (expires in 3600 secs)", "200 OK"]
    assert listener.mwi == [(True, 1, None), (False, 0, None)]
    assert agent.state == RegistrationState.UNREGISTERED
    assert not agent.is_registered()
    assert [req.cseq_number for req, _ in sender.submitted] == [1, 2, 3]


def test_repr(agent):
    assert repr(agent) == (
        "<RegisterAgent('sip:alice@sip.example.com', UNREGISTERED, subscribed=False)>"
    )


def test_config_credentials():
    config = AgentConfig(
        target="sip:bob@example.com", contact="sip:bob@10.0.0.2", username="bob", password="pw"
    )

    credentials = config.credentials()

    assert (credentials.username, credentials.password) == ("bob", "pw")


class TestHeaders:
    def test_case_insensitive_and_compact(self):
        headers = Headers({"call-id": "abc@host", "m": "<sip:alice@host>"})

        assert headers["CALL-ID"] == "abc@host"
        assert list(headers) == ["Call-ID", "Contact"]

    def test_raw_serialization(self):
        headers = Headers({"CSeq": "1 REGISTER"})

        assert headers.raw() == b"CSeq: 1 REGISTER\r\n"

    def test_contact_params(self):
        entries = HeaderParser.split_contacts('<sip:a@h;lr>;expires=60, "x,y" <sip:b@h>')

        assert len(entries) == 2
        assert HeaderParser.parse_header_value(entries[0])["expires"] == "60"

    @pytest.mark.parametrize("value, expected", [("600", 600), (" 0 ", 0), ("soon", None), (None, None)])
    def test_delta_seconds(self, value, expected):
        assert HeaderParser.parse_delta_seconds(value) == expected


class TestMessageFactory:
    def test_registrar_uri_drops_user(self):
        assert MessageFactory.registrar_uri("sip:alice@example.com:5070") == "sip:example.com:5070"

    def test_increment_cseq_refreshes_branch(self):
        request = MessageFactory.create_register_request(
            "sip:alice@example.com", "sip:alice@10.0.0.1", call_id="c@h", cseq=4, expires=60
        )
        branch = request.headers["Via"]

        assert request.increment_cseq() == 5
        assert request.cseq == "5 REGISTER"
        assert request.headers["Via"] != branch
        assert request.headers["Via"].endswith(";rport")

    def test_wire_format(self):
        request = MessageFactory.create_subscribe_request(
            "sip:alice@example.com",
            "sip:alice@10.0.0.1",
            event="message-summary",
            expires=184000,
            accept="application/simple-message-summary",
            user_agent="sipagent",
        )

        data = request.to_bytes()

        assert data.startswith(b"SUBSCRIBE sip:alice@example.com SIP/2.0\r\n")
        assert b"Event: message-summary\r\n" in data
        assert b"User-Agent: sipagent\r\n" in data
        assert data.endswith(b"\r\n\r\n")
