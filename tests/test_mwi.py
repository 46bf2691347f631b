from sipagent import RegistrationState, Response

WWW_CHALLENGE = 'Digest realm="sip.example.com", nonce="n1"'
WAITING = "Messages-Waiting: yes\r\nVoice-Message: 4/0\r\nMessage-Account: alice@pbx.example\r\n"


def notify(agent, dialog, body):
    agent.on_dlg_notify(
        dialog,
        "sip:alice@sip.example.com",
        "sip:vm@sip.example.com",
        "sip:vm@192.0.2.1",
        "active",
        "application/simple-message-summary",
        body,
        None,
    )


def subscribe_ok(agent, dialogs, expires="3600"):
    agent.start_mwi()
    dialog = dialogs.last
    agent.on_dlg_subscription_success(
        dialog, 200, "OK", Response(200, headers={"Expires": expires})
    )
    return dialog


def test_start_mwi_sends_subscribe(agent, dialogs):
    agent.start_mwi()

    assert len(dialogs.dialogs) == 1
    dialog = dialogs.last
    assert dialog.event == "message-summary"
    assert dialog.listener is agent
    (request,) = dialog.requests
    assert request.method == "SUBSCRIBE"
    assert request.uri == "sip:alice@sip.example.com"
    assert request.headers["Event"] == "message-summary"
    assert request.headers["Accept"] == "application/simple-message-summary"
    assert request.headers["Expires"] == "184000"
    assert request.content == b""


def test_start_mwi_disabled_is_noop(agent, dialogs, toggle):
    toggle.enabled = False

    agent.start_mwi()

    assert dialogs.dialogs == []


def test_success_arms_single_renewal_timer(agent, dialogs, timers, listener):
    dialog = subscribe_ok(agent, dialogs, expires="3600")
    agent.on_dlg_subscription_success(
        dialog, 200, "OK", Response(200, headers={"Expires": "3600"})
    )

    assert agent.subscribed
    assert len(timers.timers) == 1
    assert timers.timers[0].interval == 3600
    assert timers.timers[0].started
    assert timers.timers[0].daemon
    assert listener.mwi == []


def test_success_without_expires_uses_requested_duration(agent, dialogs, timers):
    agent.start_mwi()
    agent.on_dlg_subscription_success(dialogs.last, 200, "OK", Response(200))

    assert timers.timers[0].interval == 184000


def test_success_with_zero_expires_stays_unsubscribed(agent, dialogs, timers):
    subscribe_ok(agent, dialogs, expires="0")

    assert not agent.subscribed
    assert timers.timers == []


def test_start_mwi_while_subscribed_is_noop(agent, dialogs):
    subscribe_ok(agent, dialogs)

    agent.start_mwi()

    assert len(dialogs.dialogs) == 1


def test_renewal_timer_resubscribes(agent, dialogs, timers):
    subscribe_ok(agent, dialogs)

    timers.timers[0].fire()

    assert not agent.subscribed
    assert len(dialogs.dialogs) == 2
    assert dialogs.last.requests[0].method == "SUBSCRIBE"


def test_stop_mwi_reports_off(agent, dialogs, listener):
    subscribe_ok(agent, dialogs)

    agent.stop_mwi()

    assert listener.mwi == [(False, 0, None)]
    assert not agent.subscribed


def test_stale_success_after_stop_is_ignored(agent, dialogs, timers, listener):
    agent.start_mwi()
    dialog = dialogs.last
    agent.stop_mwi()

    agent.on_dlg_subscription_success(
        dialog, 200, "OK", Response(200, headers={"Expires": "3600"})
    )

    assert listener.mwi == [(False, 0, None)]
    assert timers.timers == []
    assert not agent.subscribed


def test_renewal_timer_after_stop_is_noop(agent, dialogs, timers):
    subscribe_ok(agent, dialogs)
    agent.stop_mwi()

    timers.timers[0].fire()

    assert len(dialogs.dialogs) == 1


def test_auth_failure_resubscribes_immediately(agent, dialogs, timers):
    agent.start_mwi()
    first = dialogs.last
    original = first.requests[0]

    agent.on_dlg_subscription_failure(
        first,
        401,
        "Unauthorized",
        Response(401, headers={"WWW-Authenticate": WWW_CHALLENGE}),
    )

    assert len(dialogs.dialogs) == 2
    retry = dialogs.last.requests[0]
    assert retry is original
    assert retry.cseq_number == 2
    assert "Authorization" in retry.headers
    assert timers.timers == []
    assert agent.subscriber.session.attempts == 1


def test_stale_failure_is_ignored(agent, dialogs):
    agent.start_mwi()
    first = dialogs.last
    agent.on_dlg_subscription_failure(
        first, 401, "Unauthorized", Response(401, headers={"WWW-Authenticate": WWW_CHALLENGE})
    )

    agent.on_dlg_subscription_failure(first, 500, "Server Error", Response(500))

    assert len(dialogs.dialogs) == 2


def test_non_auth_failure_retries_after_delay(agent, dialogs, timers):
    agent.start_mwi()

    agent.on_dlg_subscription_failure(dialogs.last, 489, "Bad Event", Response(489))

    assert len(timers.timers) == 1
    assert timers.timers[0].interval == 10.0
    assert len(dialogs.subscribes) == 1

    timers.timers[0].fire()

    assert len(dialogs.subscribes) == 2


def test_retries_stop_after_three(agent, dialogs, timers):
    agent.start_mwi()

    for _ in range(3):
        agent.on_dlg_subscribe_timeout(dialogs.last)
        timers.timers[-1].fire()
    assert len(timers.timers) == 3

    agent.on_dlg_subscribe_timeout(dialogs.last)

    assert len(timers.timers) == 3
    assert len(dialogs.subscribes) == 4


def test_registration_success_restores_retry_budget(agent, dialogs, timers, sender):
    agent.start_mwi()
    for _ in range(3):
        agent.on_dlg_subscribe_timeout(dialogs.last)
        timers.timers[-1].fire()

    agent.register(3600)
    agent.on_trans_success_response(sender.last, Response(200, headers={"Expires": "60"}))
    assert agent.state == RegistrationState.REGISTERED

    agent.on_dlg_subscribe_timeout(dialogs.last)
    assert len(timers.timers) == 4


def test_terminated_resubscribes_immediately(agent, dialogs, timers):
    dialog = subscribe_ok(agent, dialogs)

    agent.on_dlg_subscription_terminated(dialog)

    assert len(dialogs.dialogs) == 2
    assert not agent.subscribed
    assert len(timers.timers) == 1


def test_notify_delivers_summary(agent, dialogs, listener):
    dialog = subscribe_ok(agent, dialogs)

    notify(agent, dialog, WAITING)
    notify(agent, dialog, "Messages-Waiting: no\r\n")

    assert listener.mwi == [(True, 4, "alice"), (False, 0, None)]


def test_notify_ignored_when_disabled(agent, dialogs, listener, toggle):
    dialog = subscribe_ok(agent, dialogs)
    toggle.enabled = False

    notify(agent, dialog, WAITING)

    assert listener.mwi == []


def test_malformed_notify_emits_nothing(agent, dialogs, listener):
    dialog = subscribe_ok(agent, dialogs)

    notify(agent, dialog, "Messages-Waiting: yes\r\nVoice-Message: lots/0\r\n")
    notify(agent, dialog, WAITING)

    assert listener.mwi == [(True, 4, "alice")]
    assert agent.subscribed


def test_unregister_stops_mwi_first(agent, dialogs, sender, listener):
    agent.register(3600)
    agent.on_trans_success_response(sender.last, Response(200, headers={"Expires": "60"}))
    subscribe_ok(agent, dialogs)

    assert agent.unregister()

    assert listener.mwi == [(False, 0, None)]
    assert not agent.subscribed
    assert agent.state == RegistrationState.DEREGISTERING


def test_rejected_unregister_keeps_subscription(agent, dialogs, sender, listener, timers):
    dialog = subscribe_ok(agent, dialogs)

    assert not agent.unregister()

    assert listener.mwi == []
    assert agent.subscribed
    assert sender.submitted == []
    timers.timers[0].fire()
    assert len(dialogs.dialogs) == 2
    assert dialogs.last is not dialog


def test_failure_after_success_still_renews(agent, dialogs, timers):
    subscribe_ok(agent, dialogs)
    renewal = timers.timers[0]

    agent.on_dlg_subscription_failure(dialogs.last, 500, "Server Error", Response(500))

    assert not agent.subscribed
    retry = timers.timers[1]
    retry.fire()
    renewal.fire()

    assert len(dialogs.subscribes) == 2
    assert dialogs.last.requests[0].cseq_number == 1


def test_timeout_after_success_resubscribes(agent, dialogs, timers):
    subscribe_ok(agent, dialogs)
    renewal = timers.timers[0]

    agent.on_dlg_subscribe_timeout(dialogs.last)

    assert not agent.subscribed
    timers.timers[1].fire()
    renewal.fire()

    assert len(dialogs.subscribes) == 2


def test_exhausted_auth_budget_still_updates_realm(agent, dialogs, timers):
    agent.start_mwi()
    challenge = 'Digest realm="vm.example.com", nonce="v1", qop="auth"'
    for _ in range(3):
        agent.on_dlg_subscription_failure(
            dialogs.last, 401, "Unauthorized", Response(401, headers={"WWW-Authenticate": challenge})
        )
    assert timers.timers == []
    agent.session.realm = "other.example.com"
    agent.session.qop = None

    agent.on_dlg_subscription_failure(
        dialogs.last, 401, "Unauthorized", Response(401, headers={"WWW-Authenticate": challenge})
    )

    assert agent.session.realm == "vm.example.com"
    assert agent.session.qop == "auth"
    assert timers.timers == []
    assert len(dialogs.subscribes) == 4
