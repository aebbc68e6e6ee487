from decimal import Decimal

import stripe

from models import Order, OrderStatusEnum
from services import stripe_client


def _checkout(client, headers, *template_ids):
    return client.post(
        "/api/create-payment-intent", json={"templateIds": list(template_ids)}, headers=headers,
    )


def _confirm(client, headers, order_id, payment_intent_id):
    return client.post(
        "/api/confirm-payment",
        json={"orderId": order_id, "paymentIntentId": payment_intent_id},
        headers=headers,
    )


def test_purchase_flow(client, db, buyer, headers_for, make_template, fake_stripe):
    t1 = make_template("One", price="10.00")
    t2 = make_template("Two", price="15.00")
    headers = headers_for(buyer)

    r = _checkout(client, headers, t1.id, t2.id)
    assert r.status_code == 200, r.text
    body = r.json()
    order_id = body["orderId"]
    assert body["clientSecret"] == "pi_test_1_secret_abc"

    intent = fake_stripe.intents["pi_test_1"]
    assert intent["amount"] == 2500
    assert intent["currency"] == "usd"
    assert intent["metadata"] == {"orderId": order_id}

    r = client.get(f"/api/orders/{order_id}", headers=headers)
    assert r.json()["status"] == "pending"
    assert r.json()["totalAmount"] == "25.00"
    assert r.json()["stripePaymentIntentId"] == "pi_test_1"

    fake_stripe.succeed("pi_test_1")
    r = _confirm(client, headers, order_id, "pi_test_1")
    assert r.status_code == 200, r.text
    assert r.json() == {"success": True, "message": "Payment confirmed", "status": "completed"}

    db.refresh(t1)
    db.refresh(t2)
    assert (t1.downloads, t2.downloads) == (1, 1)

    purchases = client.get("/api/my-purchases", headers=headers).json()
    assert [t["name"] for t in purchases] == ["One", "Two"]


def test_unpaid_intent_is_rejected(client, db, buyer, headers_for, make_template, fake_stripe):
    t1 = make_template()
    headers = headers_for(buyer)
    order_id = _checkout(client, headers, t1.id).json()["orderId"]

    r = _confirm(client, headers, order_id, "pi_test_1")
    assert r.status_code == 400
    assert r.json()["message"] == "Payment not successful"
    assert db.get(Order, order_id).status == OrderStatusEnum.pending


def test_confirming_twice_is_harmless(client, db, buyer, headers_for, make_template, fake_stripe):
    t1 = make_template()
    headers = headers_for(buyer)
    order_id = _checkout(client, headers, t1.id).json()["orderId"]
    fake_stripe.succeed("pi_test_1")

    assert _confirm(client, headers, order_id, "pi_test_1").status_code == 200
    assert _confirm(client, headers, order_id, "pi_test_1").status_code == 200

    db.refresh(t1)
    assert t1.downloads == 1


def test_foreign_order_is_hidden(client, buyer, make_user, headers_for, make_template, fake_stripe):
    other = make_user("other")
    order_id = _checkout(client, headers_for(other), make_template().id).json()["orderId"]
    fake_stripe.succeed("pi_test_1")

    r = _confirm(client, headers_for(buyer), order_id, "pi_test_1")
    assert r.status_code == 404
    assert client.get(f"/api/orders/{order_id}", headers=headers_for(buyer)).status_code == 404


def test_intent_of_another_order_is_rejected(client, db, buyer, headers_for, make_template, fake_stripe):
    headers = headers_for(buyer)
    cheap = _checkout(client, headers, make_template(price="1.00").id).json()["orderId"]
    pricey = _checkout(client, headers, make_template(price="99.00").id).json()["orderId"]
    fake_stripe.succeed("pi_test_1")

    r = _confirm(client, headers, pricey, "pi_test_1")
    assert r.status_code == 400
    assert db.get(Order, pricey).status == OrderStatusEnum.pending
    assert db.get(Order, cheap).status == OrderStatusEnum.pending


def test_unknown_intent_is_rejected(client, buyer, headers_for, make_template, fake_stripe):
    headers = headers_for(buyer)
    order_id = _checkout(client, headers, make_template().id).json()["orderId"]
    assert _confirm(client, headers, order_id, "pi_nope").status_code == 400


def test_stripe_failure_keeps_order_pending(client, db, buyer, headers_for, make_template, fake_stripe):
    fake_stripe.create_error = stripe.APIConnectionError("network down")
    r = _checkout(client, headers_for(buyer), make_template().id)
    assert r.status_code == 500
    assert r.json()["message"].startswith("Error creating payment intent")

    orders = db.query(Order).all()
    assert len(orders) == 1
    assert orders[0].status == OrderStatusEnum.pending
    assert orders[0].stripe_payment_intent_id is None


def test_checkout_validation(client, buyer, headers_for, make_template, fake_stripe):
    headers = headers_for(buyer)
    t1 = make_template()
    assert _checkout(client, headers).status_code == 400
    assert _checkout(client, headers, t1.id, t1.id).status_code == 409
    r = _checkout(client, headers, t1.id, "missing")
    assert r.status_code == 404
    assert r.json()["templateId"] == "missing"
    assert client.post("/api/create-payment-intent", json={"templateIds": [t1.id]}).status_code == 401
    assert fake_stripe.intents == {}


def test_cancel_pending_order(client, db, buyer, headers_for, make_template, fake_stripe):
    headers = headers_for(buyer)
    order_id = _checkout(client, headers, make_template().id).json()["orderId"]

    r = client.post(f"/api/orders/{order_id}/cancel", headers=headers)
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "cancelled"
    assert fake_stripe.intents["pi_test_1"]["status"] == "canceled"

    # a cancelled order cannot be paid afterwards
    fake_stripe.succeed("pi_test_1")
    assert _confirm(client, headers, order_id, "pi_test_1").status_code == 409
    assert client.post(f"/api/orders/{order_id}/cancel", headers=headers).status_code == 409


def test_my_orders(client, buyer, headers_for, make_template, fake_stripe):
    headers = headers_for(buyer)
    t1 = make_template("Landing", price="12.00")
    _checkout(client, headers, t1.id)

    r = client.get("/api/my-orders", headers=headers)
    assert r.status_code == 200
    [order] = r.json()
    assert order["totalAmount"] == "12.00"
    assert order["items"][0]["price"] == "12.00"
    assert order["items"][0]["template"]["name"] == "Landing"


def _webhook(monkeypatch, event):
    monkeypatch.setattr(stripe_client, "construct_webhook_event", lambda payload, sig: event)


def test_webhook_completes_order(client, db, buyer, headers_for, make_template, fake_stripe, monkeypatch):
    t1 = make_template()
    order_id = _checkout(client, headers_for(buyer), t1.id).json()["orderId"]
    event = {
        "type": "payment_intent.succeeded",
        "data": {"object": {"id": "pi_test_1", "status": "succeeded", "metadata": {"orderId": order_id}}},
    }
    _webhook(monkeypatch, event)

    for _ in range(2):
        r = client.post("/api/webhooks/stripe", content=b"{}", headers={"stripe-signature": "t=1,v1=x"})
        assert r.status_code == 200
    assert r.json() == {"status": "completed"}

    db.refresh(t1)
    assert db.get(Order, order_id).status == OrderStatusEnum.completed
    assert t1.downloads == 1


def test_webhook_cancel_and_unknown_events(client, db, buyer, headers_for, make_template, fake_stripe, monkeypatch):
    order_id = _checkout(client, headers_for(buyer), make_template().id).json()["orderId"]

    _webhook(monkeypatch, {"type": "charge.refunded", "data": {"object": {"id": "ch_1"}}})
    assert client.post("/api/webhooks/stripe", content=b"{}").json() == {"status": "ignored"}

    _webhook(monkeypatch, {
        "type": "payment_intent.canceled",
        "data": {"object": {"id": "pi_test_1", "metadata": {"orderId": order_id}}},
    })
    assert client.post("/api/webhooks/stripe", content=b"{}").json() == {"status": "cancelled"}
    assert db.get(Order, order_id).status == OrderStatusEnum.cancelled


def test_webhook_rejects_bad_signature(client, monkeypatch):
    monkeypatch.setattr(stripe_client, "STRIPE_WEBHOOK_SECRET", "whsec_test")
    r = client.post("/api/webhooks/stripe", content=b'{"type": "x"}', headers={"stripe-signature": "t=1,v1=bad"})
    assert r.status_code == 400
    assert r.json()["message"] == "Invalid Stripe signature"


def test_minor_units_rounding():
    assert stripe_client.to_minor_units(Decimal("25.00")) == 2500
    assert stripe_client.to_minor_units(Decimal("0.005")) == 1
    assert stripe_client.to_minor_units(Decimal("19.99")) == 1999


def test_webhook_success_for_cancelled_order_is_acknowledged(
    client, db, buyer, headers_for, make_template, fake_stripe, monkeypatch,
):
    t1 = make_template()
    headers = headers_for(buyer)
    order_id = _checkout(client, headers, t1.id).json()["orderId"]
    assert client.post(f"/api/orders/{order_id}/cancel", headers=headers).status_code == 200

    _webhook(monkeypatch, {
        "type": "payment_intent.succeeded",
        "data": {"object": {"id": "pi_test_1", "status": "succeeded", "metadata": {"orderId": order_id}}},
    })
    r = client.post("/api/webhooks/stripe", content=b"{}")
    assert r.status_code == 200
    assert r.json() == {"status": "ignored - order cancelled"}

    db.refresh(t1)
    assert db.get(Order, order_id).status == OrderStatusEnum.cancelled
    assert t1.downloads == 0
