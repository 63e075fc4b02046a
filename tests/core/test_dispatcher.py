from unittest.mock import patch

import pytest

from coachbot.core import dispatcher as dispatch
from coachbot.core import state_machine as sm
from coachbot.core.checkin_flow import MESSAGES as CHECKIN_MESSAGES
from coachbot.core.onboarding_flow import MESSAGES as ONBOARDING_MESSAGES
from coachbot.messaging.client import TransportError
from coachbot.store.record_repo import StoreError

ADDR = "5550102030"
SENDER = "whatsapp:+15550102030"
PERIOD = "2026-10-11"


def test_unknown_sender_gets_fallback(dispatcher, outbox, store):
    result = dispatcher.handle_inbound(SENDER, "hello")
    assert result.status == dispatch.UNKNOWN_SENDER
    assert outbox.texts(ADDR) == [dispatch.UNKNOWN_SENDER_REPLY]
    assert store.records == {}


def test_onboarding_round_1_answer(dispatcher, outbox, store):
    store.put(address=ADDR, flow=sm.ONBOARDING, state=sm.ROUND_1_SENT)

    result = dispatcher.handle_inbound(SENDER, "35, 180, 20, 2, 3")

    assert result.status == dispatch.HANDLED
    assert result.toState == sm.ROUND_1_COMPLETE
    assert outbox.texts() == [ONBOARDING_MESSAGES["TRANSITION_ROUND_2"]]
    saved = store.load_onboarding(ADDR)
    assert saved.state == sm.ROUND_1_COMPLETE
    assert saved.answers["round1"]["weight"] == 180


def test_reprompt_leaves_record_untouched(dispatcher, outbox, store):
    store.put(address=ADDR, flow=sm.ONBOARDING, state=sm.ROUND_1_SENT, lastMessageAt=5)

    result = dispatcher.handle_inbound(SENDER, "35, 180")

    assert result.status == dispatch.REPROMPTED
    assert outbox.texts() == [ONBOARDING_MESSAGES["ERROR"]]
    saved = store.load_onboarding(ADDR)
    assert saved.version == 1
    assert saved.lastMessageAt == 5


def test_live_checkin_owns_inbound(dispatcher, outbox, store):
    store.put(address=ADDR, flow=sm.ONBOARDING, state=sm.ONBOARDING_COMPLETE)
    store.put(address=ADDR, flow=sm.CHECKIN, state=sm.INITIAL_SENT, periodStart=PERIOD)

    result = dispatcher.handle_inbound(SENDER, "Y")

    assert result.flow == sm.CHECKIN
    assert store.load_checkin(ADDR, PERIOD).state == sm.ROUND_1_SENT
    assert outbox.texts() == [CHECKIN_MESSAGES["ROUND_1"]]


def test_finished_checkin_falls_back_to_onboarding(dispatcher, outbox, store):
    store.put(address=ADDR, flow=sm.ONBOARDING, state=sm.ONBOARDING_COMPLETE)
    store.put(address=ADDR, flow=sm.CHECKIN, state=sm.COMPLETED, periodStart=PERIOD)

    result = dispatcher.handle_inbound(SENDER, "Y")

    assert result.status == dispatch.UNEXPECTED
    assert result.flow == sm.ONBOARDING
    assert outbox.texts() == [ONBOARDING_MESSAGES["UNEXPECTED"]]


def test_help_is_flow_specific_and_never_mutates(dispatcher, outbox, store):
    store.put(address=ADDR, flow=sm.ONBOARDING, state=sm.ROUND_2_SENT)
    assert dispatcher.handle_inbound(SENDER, " help ").status == dispatch.HELP
    assert outbox.texts() == [ONBOARDING_MESSAGES["HELP"]]

    store.put(address=ADDR, flow=sm.CHECKIN, state=sm.ROUND_1_SENT, periodStart=PERIOD)
    dispatcher.handle_inbound(SENDER, "HELP")
    assert outbox.texts()[-1] == CHECKIN_MESSAGES["HELP"]
    assert store.load_checkin(ADDR, PERIOD).state == sm.ROUND_1_SENT
    assert store.load_onboarding(ADDR).version == 1


def test_stop_ends_checkin_and_opts_out(dispatcher, outbox, store):
    store.put(address=ADDR, flow=sm.ONBOARDING, state=sm.ONBOARDING_COMPLETE)
    store.put(address=ADDR, flow=sm.CHECKIN, state=sm.TRANSITION_SENT, periodStart=PERIOD)

    result = dispatcher.handle_inbound(SENDER, "stop")

    assert result.status == dispatch.STOPPED
    assert store.load_checkin(ADDR, PERIOD).state == sm.ABANDONED
    assert store.load_onboarding(ADDR).optedOut is True
    assert outbox.texts() == [CHECKIN_MESSAGES["STOP"]]


def test_stop_also_closes_unfinished_earlier_week(dispatcher, outbox, store):
    store.put(address=ADDR, flow=sm.ONBOARDING, state=sm.ONBOARDING_COMPLETE)
    store.put(address=ADDR, flow=sm.CHECKIN, state=sm.INITIAL_NO_RESPONSE, periodStart="2026-10-04", reminderCount=1)
    store.put(address=ADDR, flow=sm.CHECKIN, state=sm.INITIAL_SENT, periodStart=PERIOD)

    dispatcher.handle_inbound(SENDER, "STOP")

    assert store.load_checkin(ADDR, "2026-10-04").state == sm.ABANDONED
    assert store.load_checkin(ADDR, PERIOD).state == sm.ABANDONED
    assert outbox.texts() == [CHECKIN_MESSAGES["STOP"]]


def test_stop_during_onboarding(dispatcher, store):
    store.put(address=ADDR, flow=sm.ONBOARDING, state=sm.ROUND_2_SENT)

    dispatcher.handle_inbound(SENDER, "STOP")

    saved = store.load_onboarding(ADDR)
    assert saved.state == sm.ONBOARDING_COMPLETE
    assert saved.optedOut is True


def test_transport_failure_is_not_persisted(dispatcher, outbox, store):
    store.put(address=ADDR, flow=sm.ONBOARDING, state=sm.ROUND_1_SENT)
    outbox.fail_for.add(ADDR)

    with pytest.raises(TransportError):
        dispatcher.handle_inbound(SENDER, "35, 180, 20, 2, 3")

    assert store.load_onboarding(ADDR).state == sm.ROUND_1_SENT


@patch("coachbot.core.dispatcher.log")
def test_store_failure_logged_with_context(mock_log, dispatcher, store):
    store.put(address=ADDR, flow=sm.ONBOARDING, state=sm.ROUND_1_SENT)
    store.fail_save = StoreError("redis down")

    with pytest.raises(StoreError):
        dispatcher.handle_inbound(SENDER, "35, 180, 20, 2, 3")

    failures = [c.kwargs for c in mock_log.call_args_list if c.kwargs.get("event") == "record_save_failed"]
    assert failures and failures[0]["fromState"] == sm.ROUND_1_SENT
    assert failures[0]["toState"] == sm.ROUND_1_COMPLETE


@patch("coachbot.core.dispatcher.publish_completed")
def test_completion_hands_off_answers(mock_publish, dispatcher, store):
    store.put(address=ADDR, flow=sm.CHECKIN, state=sm.ROUND_2_SENT, periodStart=PERIOD,
              answers={"round1": {"scaleUpdate": 175}})

    dispatcher.handle_inbound(SENDER, "8, 3, Y, 2, 1")

    mock_publish.assert_called_once()
    record = mock_publish.call_args.args[0]
    assert record.state == sm.COMPLETED
    assert set(record.answers) == {"round1", "round2"}


def test_start_onboarding_sends_welcome_and_schedules(dispatcher, outbox, store):
    result = dispatcher.start_onboarding("+1 (555) 010-2030")

    assert result.status == dispatch.HANDLED
    assert store.load_onboarding(ADDR).state == sm.REGISTERED
    assert outbox.texts() == [ONBOARDING_MESSAGES["WELCOME"]]
    dispatcher.schedule_kickoff.assert_called_once_with(ADDR)

    store.put(address="5550109999", flow=sm.ONBOARDING, state=sm.ROUND_1_SENT)
    again = dispatcher.start_onboarding("5550109999")
    assert again.status == dispatch.EXISTS
    assert len(outbox.sent) == 1


def test_retry_after_failed_kickoff_booking_reschedules(dispatcher, outbox, store):
    dispatcher.schedule_kickoff.side_effect = ConnectionError("redis down")
    with pytest.raises(ConnectionError):
        dispatcher.start_onboarding(SENDER)
    assert store.load_onboarding(ADDR).state == sm.REGISTERED

    dispatcher.schedule_kickoff.side_effect = None
    retry = dispatcher.start_onboarding(SENDER)

    assert retry.status == dispatch.RESCHEDULED
    assert retry.toState == sm.REGISTERED
    assert dispatcher.schedule_kickoff.call_count == 2
    assert outbox.texts() == [ONBOARDING_MESSAGES["WELCOME"]]


def test_start_onboarding_rejects_empty_address(dispatcher):
    with pytest.raises(ValueError):
        dispatcher.start_onboarding("whatsapp:")


def test_kickoff_sends_round_1_once(dispatcher, outbox, store):
    store.put(address=ADDR, flow=sm.ONBOARDING, state=sm.REGISTERED)

    assert dispatcher.kickoff(ADDR).toState == sm.ROUND_1_SENT
    assert dispatcher.kickoff(ADDR).status == dispatch.SKIPPED
    assert outbox.texts() == [ONBOARDING_MESSAGES["ROUND_1"]]
