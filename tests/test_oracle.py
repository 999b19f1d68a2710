"""
Tests for the oracle client: card alphabet mapping and response handling
"""

import threading

import pytest
import requests

from klaverjas.config import OracleConfig
from klaverjas.oracle import OracleClient, from_api_card, strip_quotes, to_api_card, to_api_suit


class FakeResponse:
    def __init__(self, text, status=200):
        self.text = text
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response

    def close(self):
        pass


@pytest.mark.parametrize("internal,api", [
    ("AH", "Ah"), ("KC", "Kc"), ("QD", "Qd"), ("JS", "Js"),
    ("10S", "Ts"), ("9H", "Nh"), ("8C", "Ec"), ("7D", "Sd"),
])
def test_card_mapping(internal, api):
    assert to_api_card(internal) == api
    assert from_api_card(api) == internal


def test_card_mapping_errors():
    for bad in ("", "1H", "AX"):
        with pytest.raises(ValueError):
            to_api_card(bad)
    for bad in ("", "X", "Zh", "AH"):
        with pytest.raises(ValueError):
            from_api_card(bad)


def test_suit_mapping():
    assert to_api_suit("H") == "Hearts"
    assert to_api_suit("c") == "Clubs"
    assert to_api_suit("D") == "Diamonds"
    assert to_api_suit("S") == "Spades"
    assert to_api_suit("Spades") == "Spades"
    with pytest.raises(ValueError):
        to_api_suit(" ")


def test_strip_quotes():
    assert strip_quotes('"Ah"') == "Ah"
    assert strip_quotes("'Ts'") == "Ts"
    assert strip_quotes(" Ah ") == "Ah"
    assert strip_quotes('"Ah') == '"Ah'


def make_client(session):
    return OracleClient.from_config(OracleConfig(base_url="http://oracle.test", timeout_ms=2500),
                                    game_variant="rotterdams", session=session)


def test_request_body():
    session = FakeSession(FakeResponse('"Ts"'))
    client = make_client(session)
    card = client.fetch_best_card(["AH", "-", None, "9C"], "S", ["10S", "7D"])
    assert card == "10S"
    call = session.calls[0]
    assert call["url"] == "http://oracle.test/api/v1/calcAiCard"
    assert call["timeout"] == 2.5
    assert call["json"] == {
        "currentTrick": ["Ah", "Nc"],
        "trumpSuit": "Spades",
        "hand": ["Ts", "Sd"],
        "gameVariant": "rotterdams",
    }


def test_unmapped_answer_is_returned_verbatim():
    client = make_client(FakeSession(FakeResponse("'Xy'")))
    assert client.fetch_best_card([], "H", ["AH"]) == "Xy"


def test_empty_answer():
    client = make_client(FakeSession(FakeResponse("  ")))
    assert client.fetch_best_card([], "H", ["AH"]) is None


def test_transport_error_gives_none():
    client = make_client(FakeSession(error=requests.ConnectionError("down")))
    assert client.fetch_best_card([], "H", ["AH"]) is None


def test_http_error_gives_none():
    client = make_client(FakeSession(FakeResponse("oops", status=500)))
    assert client.fetch_best_card([], "H", ["AH"]) is None


def test_one_session_per_thread(monkeypatch):
    created = []

    class RecordingSession(FakeSession):
        def __init__(self):
            super().__init__(FakeResponse('"Ah"'))
            self.closed = False
            created.append(self)

        def close(self):
            self.closed = True

    monkeypatch.setattr(requests, "Session", RecordingSession)
    client = OracleClient("http://oracle.test")
    assert client.session is client.session

    seen = []
    worker = threading.Thread(target=lambda: seen.append(client.fetch_best_card([], "H", ["AH"])))
    worker.start()
    worker.join()

    assert seen == ["AH"]
    assert len(created) == 2
    assert created[0].calls == []
    assert len(created[1].calls) == 1
    client.close()
    assert all(s.closed for s in created)
