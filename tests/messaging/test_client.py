from unittest.mock import MagicMock, patch

import pytest

from coachbot.messaging.client import TransportError, send_message
from coachbot.settings import settings


@pytest.fixture(autouse=True)
def twilio_settings():
    with patch.object(settings, "TWILIO_PHONE_NUMBER", "+14155238886"), patch.object(settings, "CHANNEL_SCHEME", "whatsapp"):
        yield


@patch("coachbot.messaging.client.get_client")
def test_send_formats_addresses(mock_get_client):
    mock_get_client.return_value.messages.create.return_value = MagicMock(sid="SM42")

    assert send_message("5550102030", "hi") == "SM42"

    mock_get_client.return_value.messages.create.assert_called_once_with(
        body="hi", from_="whatsapp:+14155238886", to="whatsapp:+5550102030"
    )


@patch("coachbot.messaging.client.log")
@patch("coachbot.messaging.client.get_client")
def test_send_failure_raises_transport_error(mock_get_client, mock_log):
    mock_get_client.return_value.messages.create.side_effect = RuntimeError("20003 auth")

    with pytest.raises(TransportError) as exc:
        send_message("5550102030", "hi")

    assert exc.value.address == "5550102030"
    assert mock_log.call_args.kwargs["event"] == "send_failed"
