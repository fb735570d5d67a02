import json

import pytest

from conftest import SECRET, FakeHubClient, RecordingSink, sign
from test_feed_parser import entry, feed
from yt_notifier.app import Application
from yt_notifier.registry import SUBSCRIPTIONS_KEY
from yt_notifier.web import NotifierWebServer

AUTH = {"Authorization": f"Bearer {SECRET}"}


@pytest.fixture
def client(application: Application):
    return NotifierWebServer(application).app.test_client()


def test_index(client) -> None:
    response = client.get("/")
    assert response.get_json() == {"message": "YouTube Notifier is running!"}


@pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer wrong"}, {"Authorization": SECRET}])
def test_api_requires_bearer_token(client, headers) -> None:
    response = client.get("/api/subscriptions", headers=headers)
    assert response.status_code == 401
    assert response.get_json() == {"error": "Unauthorized"}


def test_subscribe_list_unsubscribe(client, hub: FakeHubClient) -> None:
    response = client.post("/api/subscribe", json={"channelId": "c1"}, headers=AUTH)
    assert response.status_code == 200
    assert response.get_json() == {"message": "Subscribed!"}

    listed = client.get("/api/subscriptions", headers=AUTH).get_json()
    assert [item["channelId"] for item in listed] == ["c1"]
    assert isinstance(listed[0]["lastSubscribedAt"], int)

    response = client.post("/api/unsubscribe", json={"channelId": "c1"}, headers=AUTH)
    assert response.get_json() == {"message": "Unsubscribed!"}
    assert client.get("/api/subscriptions", headers=AUTH).get_json() == []
    assert [call["callback_url"] for call in hub.calls] == ["https://notify.example.com/callback"] * 2


@pytest.mark.parametrize("body", [None, {}, {"channelId": 5}, {"channelId": ""}, ["c1"]])
def test_subscribe_rejects_invalid_body(client, body) -> None:
    response = client.post("/api/subscribe", json=body, headers=AUTH)
    assert response.status_code == 400
    assert "error" in response.get_json()


def test_subscribe_hub_failure(client, hub: FakeHubClient) -> None:
    hub.results["c1"] = False

    response = client.post("/api/subscribe", json={"channelId": "c1"}, headers=AUTH)

    assert response.status_code == 502
    assert response.get_json() == {"error": "Failed to subscribe for c1"}
    assert client.get("/api/subscriptions", headers=AUTH).get_json() == []


def test_force_renew(client, store, hub: FakeHubClient, sink: RecordingSink) -> None:
    store.put(SUBSCRIPTIONS_KEY, json.dumps([
        {"channelId": "c1", "lastSubscribedAt": 1},
        {"channelId": "c2", "lastSubscribedAt": 1},
    ]))
    hub.results["c2"] = False

    response = client.post("/api/force-renew", headers=AUTH)

    assert response.get_json() == {"message": "Forced Renewal Done!", "renewed": 1, "failed": ["c2"]}
    assert sink.messages == ["Failed to renew subscription for c2"]


def test_hub_challenge_is_echoed(client) -> None:
    response = client.get("/callback?hub.mode=subscribe&hub.topic=t&hub.challenge=abc123")
    assert response.status_code == 200
    assert response.get_data(as_text=True) == "abc123"
    assert response.mimetype == "text/plain"


def test_hub_challenge_missing(client) -> None:
    assert client.get("/callback").status_code == 400


def test_push_notification_forwarded(client, sink: RecordingSink) -> None:
    body = feed(entry()).encode()

    response = client.post("/callback", data=body, headers={"X-Hub-Signature": sign(body)})

    assert response.status_code == 200
    assert response.get_data(as_text=True) == "OK"
    assert len(sink.messages) == 1
    assert sink.messages[0].startswith("New video from [A](http://a)")


def test_push_with_bad_signature_rejected(client, sink: RecordingSink) -> None:
    body = feed(entry()).encode()

    response = client.post("/callback", data=body, headers={"X-Hub-Signature": sign(body, secret="other")})

    assert response.status_code == 403
    assert response.get_data(as_text=True) == "Error: Invalid signature"
    assert sink.messages == []


def test_push_without_signature_rejected(client) -> None:
    assert client.post("/callback", data=b"<feed/>").status_code == 403


def test_malformed_push_is_acknowledged(client, sink: RecordingSink) -> None:
    body = feed(entry(title=None)).encode()

    response = client.post("/callback", data=body, headers={"X-Hub-Signature": sign(body)})

    assert response.get_data(as_text=True) == "OK"
    assert sink.messages == []


def test_push_when_sink_down_still_ok(config, store, hub) -> None:
    app = Application(config=config, store=store, hub=hub, sink=RecordingSink(fail=True))
    client = NotifierWebServer(app).app.test_client()
    body = feed(entry()).encode()

    response = client.post("/callback", data=body, headers={"X-Hub-Signature": sign(body)})

    assert response.get_data(as_text=True) == "OK"


def test_unhandled_error_is_reported(client, store, sink: RecordingSink, monkeypatch) -> None:
    def broken_get(key):
        raise RuntimeError("store offline")

    monkeypatch.setattr(store, "get", broken_get)

    response = client.get("/api/subscriptions", headers=AUTH)

    assert response.status_code == 500
    assert response.get_json() == {"message": "Something went wrong"}
    assert len(sink.messages) == 1
    assert sink.messages[0].startswith("Encountered an Error\n")
    assert "store offline" in sink.messages[0]


def test_unknown_route_is_404(client, sink: RecordingSink) -> None:
    assert client.get("/nope").status_code == 404
    assert sink.messages == []
