import asyncio
import json

import httpx

from stock_service.notifications import LowStockNotifier


def test_payload(widget):
    payload = LowStockNotifier.payload(widget)
    assert payload["type"] == "low_stock"
    assert payload["data"]["item_id"] == widget.id
    assert payload["data"]["current_quantity"] == 0
    assert payload["data"]["threshold"] == 5


def test_notify_posts_to_notification_service(widget):
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(201, json={"id": 1})

    notifier = LowStockNotifier("http://notify/", transport=httpx.MockTransport(handler))
    assert asyncio.run(notifier.notify(widget)) is True

    assert len(requests) == 1
    assert str(requests[0].url) == "http://notify/notifications/"
    assert json.loads(requests[0].content)["data"]["item_name"] == "Widget"


def test_notify_failure_is_logged(widget, caplog):
    notifier = LowStockNotifier(
        "http://notify", transport=httpx.MockTransport(lambda request: httpx.Response(500))
    )
    assert asyncio.run(notifier.notify(widget)) is False
    assert "Failed to send low stock notification" in caplog.text


def test_low_stock_movement_schedules_notification(client, app):
    sent = []

    def handler(request):
        sent.append(json.loads(request.content))
        return httpx.Response(201)

    app.state.notifier = LowStockNotifier("http://notify", transport=httpx.MockTransport(handler))

    item = client.post("/items/", json={"name": "Widget", "unit": "pcs", "min_stock_level": 5}).json()
    movement = {"item_id": item["id"], "type": "IN", "quantity": 20, "responsible_person": "Ann"}
    assert client.post("/movements/", json=movement).status_code == 201
    assert sent == []

    movement.update(type="OUT", quantity=16)
    assert client.post("/movements/", json=movement).status_code == 201
    assert len(sent) == 1
    assert sent[0]["data"]["current_quantity"] == 4


def test_notifications_disabled_by_default(client, app):
    assert app.state.notifier is None
