from decimal import Decimal

import pytest

import create_admin
from models import User
from services import admin, orders


def test_revenue_counts_completed_orders_only(db, buyer, make_template, completed_order):
    t1 = make_template(price="10.00")
    t2 = make_template(price="15.00")
    completed_order(buyer, t1, t2)
    orders.create_order(db, buyer, [t1.id])
    cancelled = orders.create_order(db, buyer, [t2.id])
    orders.cancel_order(db, cancelled)

    stats = admin.get_stats(db)
    assert stats["total_revenue"] == Decimal("25.00")
    assert stats["total_orders"] == 3
    assert stats["total_templates"] == 2
    assert stats["total_users"] == 1


def test_empty_marketplace_stats(client, admin_user, headers_for):
    r = client.get("/api/admin/stats", headers=headers_for(admin_user))
    assert r.status_code == 200
    assert r.json() == {"totalRevenue": "0.00", "totalOrders": 0, "totalTemplates": 0, "totalUsers": 1}


def test_admin_routes_require_admin(client, buyer, headers_for):
    assert client.get("/api/admin/stats").status_code == 401
    assert client.get("/api/admin/stats", headers=headers_for(buyer)).status_code == 403
    assert client.get("/api/admin/recent-orders", headers=headers_for(buyer)).status_code == 403


def test_recent_orders(client, db, buyer, admin_user, headers_for, make_template):
    t1 = make_template()
    created = [orders.create_order(db, buyer, [t1.id]) for _ in range(3)]

    r = client.get("/api/admin/recent-orders", params={"limit": 2}, headers=headers_for(admin_user))
    assert r.status_code == 200
    body = r.json()
    assert len(body) == 2
    assert {o["id"] for o in body} <= {o.id for o in created}
    assert body[0]["user"]["email"] == "buyer@example.com"


def test_set_admin_by_email(db, buyer):
    user = create_admin.set_admin(db, "  BUYER@example.com ")
    assert user.is_admin is True
    create_admin.set_admin(db, "buyer@example.com", is_admin=False)
    db.refresh(buyer)
    assert buyer.is_admin is False


def test_set_admin_unknown_email(db):
    with pytest.raises(LookupError):
        create_admin.set_admin(db, "ghost@example.com")


def test_create_admin_cli(db, buyer, capsys):
    assert create_admin.main([]) == 2
    assert create_admin.main(["--revoke"]) == 2
    assert create_admin.main(["ghost@example.com"]) == 1
    assert create_admin.main(["buyer@example.com"]) == 0
    assert "is_admin=True" in capsys.readouterr().out

    db.expire_all()
    assert db.get(User, buyer.id).is_admin is True
