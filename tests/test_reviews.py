from models import Review


def _post(client, headers, template_id, rating, comment=None):
    return client.post(
        f"/api/templates/{template_id}/reviews",
        json={"rating": rating, "comment": comment},
        headers=headers,
    )


def test_review_requires_purchase(client, db, buyer, headers_for, make_template, completed_order):
    t1 = make_template()
    headers = headers_for(buyer)

    r = _post(client, headers, t1.id, 5)
    assert r.status_code == 403
    assert r.json()["message"] == "You must purchase this template to review it"

    completed_order(buyer, t1)
    r = _post(client, headers, t1.id, 5, "Great")
    assert r.status_code == 201, r.text
    assert r.json()["rating"] == 5
    assert r.json()["userId"] == buyer.id

    r = _post(client, headers, t1.id, 4)
    assert r.status_code == 409
    assert db.query(Review).count() == 1


def test_rating_out_of_range(client, db, buyer, headers_for, make_template, completed_order):
    t1 = make_template()
    completed_order(buyer, t1)
    headers = headers_for(buyer)

    for rating in (0, 6):
        r = _post(client, headers, t1.id, rating)
        assert r.status_code == 400
        assert r.json()["field"] == "rating"
    assert db.query(Review).count() == 0


def test_pending_order_is_not_a_purchase(client, buyer, headers_for, make_template, fake_stripe):
    t1 = make_template()
    headers = headers_for(buyer)
    client.post("/api/create-payment-intent", json={"templateIds": [t1.id]}, headers=headers)
    assert _post(client, headers, t1.id, 3).status_code == 403


def test_reviews_update_rating_and_are_listed(client, make_user, headers_for, make_template, completed_order):
    t1 = make_template()
    alice = make_user("alice", first_name="Alice")
    bob = make_user("bob", first_name="Bob")
    completed_order(alice, t1)
    completed_order(bob, t1)

    assert _post(client, headers_for(alice), t1.id, 5).status_code == 201
    assert _post(client, headers_for(bob), t1.id, 2).status_code == 201

    r = client.get(f"/api/templates/{t1.id}")
    assert r.json()["avgRating"] == 3.5
    assert r.json()["reviewCount"] == 2

    listed = client.get(f"/api/templates/{t1.id}/reviews").json()
    assert {rv["user"]["firstName"] for rv in listed} == {"Alice", "Bob"}


def test_review_requires_login(client, make_template):
    assert _post(client, {}, make_template().id, 5).status_code == 401
