from sqlmodel import select

from app.models import Order, OrderStatus, PaymentStatus
from app.services.order import OrderService


def place_order(session, buyer, lines, payment_method="cop", **kwargs):
    items = [{"product_id": product.id, "quantity": quantity} for product, quantity in lines]
    return OrderService(session).create_orders(buyer.id, items, payment_method, **kwargs).orders


def set_status(session, order, status):
    order.status = status
    session.add(order)
    session.commit()


def test_cancel_restores_stock_and_sold_count(client, session, buyer, buyer_headers, make_seller, make_product):
    seller = make_seller()
    product = make_product(seller, stock=6)
    other = make_product(seller, stock=2)
    order, = place_order(session, buyer, [(product, 4), (other, 2)])
    session.refresh(product)
    assert (product.stock, product.sold_count) == (2, 4)

    response = client.post(f"/api/orders/{order.id}/cancel", headers=buyer_headers)

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "cancelled"
    session.refresh(product)
    session.refresh(other)
    assert (product.stock, product.sold_count) == (6, 0)
    assert (other.stock, other.sold_count) == (2, 0)


def test_processing_orders_can_still_be_cancelled(client, session, buyer, buyer_headers, make_product):
    order, = place_order(session, buyer, [(make_product(), 1)])
    set_status(session, order, OrderStatus.PROCESSING)

    assert client.post(f"/api/orders/{order.id}/cancel", headers=buyer_headers).status_code == 200


def test_cancel_is_refused_once_ready(client, session, buyer, buyer_headers, make_product):
    product = make_product(stock=3)
    order, = place_order(session, buyer, [(product, 1)])
    set_status(session, order, OrderStatus.READY_FOR_PICKUP)

    response = client.post(f"/api/orders/{order.id}/cancel", headers=buyer_headers)

    assert response.status_code == 422
    assert response.json()["message"] == "Order cannot be cancelled at this stage."
    session.refresh(product)
    assert product.stock == 2


def test_cancelling_twice_does_not_restore_stock_twice(client, session, buyer, buyer_headers, make_product):
    product = make_product(stock=3)
    order, = place_order(session, buyer, [(product, 3)])

    assert client.post(f"/api/orders/{order.id}/cancel", headers=buyer_headers).status_code == 200
    assert client.post(f"/api/orders/{order.id}/cancel", headers=buyer_headers).status_code == 422

    session.refresh(product)
    assert product.stock == 3


def test_orders_of_other_buyers_are_not_found(client, session, buyer, make_user, auth_headers, make_product):
    order, = place_order(session, buyer, [(make_product(), 1)])
    stranger = auth_headers(make_user())

    assert client.get(f"/api/orders/{order.id}", headers=stranger).status_code == 404
    response = client.post(f"/api/orders/{order.id}/cancel", headers=stranger)
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Order not found."}


def test_list_orders_is_paginated_and_filtered(client, session, buyer, buyer_headers, make_user, make_product):
    product = make_product(stock=20)
    for _ in range(3):
        place_order(session, buyer, [(product, 1)])
    gcash, = place_order(session, buyer, [(product, 1)], "gcash", payment_receipt_url="https://files.test/r.png")
    place_order(session, make_user(), [(product, 1)])

    page = client.get("/api/orders", params={"limit": 2}, headers=buyer_headers).json()["data"]
    assert page["total"] == 4
    assert page["last_page"] == 2
    assert len(page["items"]) == 2
    assert page["items"][0]["id"] == gcash.id

    pending = client.get("/api/orders", params={"status": "pending"}, headers=buyer_headers).json()["data"]
    assert [o["id"] for o in pending["items"]] == [gcash.id]


def test_confirm_delivery_after_pickup(client, session, buyer, buyer_headers, make_product):
    order, = place_order(session, buyer, [(make_product(), 1)])

    early = client.post(f"/api/orders/{order.id}/confirm-delivery", headers=buyer_headers)
    assert early.status_code == 422
    assert early.json()["message"] == "Delivery can only be confirmed after the order has been picked up."

    set_status(session, order, OrderStatus.PICKED_UP)
    response = client.post(f"/api/orders/{order.id}/confirm-delivery", headers=buyer_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["delivery_confirmed_by_customer"] is True
    assert data["customer_delivery_confirmed_at"] is not None

    again = client.post(f"/api/orders/{order.id}/confirm-delivery", headers=buyer_headers)
    assert again.json()["message"] == "Delivery has already been confirmed for this order."


def test_cancel_keeps_other_orders_untouched(client, session, buyer, buyer_headers, make_seller, make_product):
    first = make_product(make_seller(), stock=5)
    second = make_product(make_seller(), stock=5)
    orders = place_order(session, buyer, [(first, 1), (second, 2)])
    to_cancel = next(o for o in orders if o.seller_id == first.seller_id)

    client.post(f"/api/orders/{to_cancel.id}/cancel", headers=buyer_headers)

    statuses = {o.seller_id: o.status for o in session.exec(select(Order)).all()}
    assert statuses[first.seller_id] == OrderStatus.CANCELLED
    assert statuses[second.seller_id] == OrderStatus.CONFIRMED
    session.refresh(second)
    assert second.stock == 3


def test_cancelled_gcash_order_leaves_payment_review(client, session, buyer, buyer_headers, make_user, auth_headers,
                                                     make_product):
    order, = place_order(session, buyer, [(make_product(), 1)], "gcash", payment_receipt_url="https://files.test/r.png")

    response = client.post(f"/api/orders/{order.id}/cancel", headers=buyer_headers)

    assert response.status_code == 200
    assert response.json()["data"]["payment_status"] == "failed"
    session.refresh(order)
    assert order.payment_status == PaymentStatus.FAILED

    admin_headers = auth_headers(make_user(email="admin@campus.edu", is_admin=True))
    pending = client.get("/api/admin/pending-payments", headers=admin_headers).json()["data"]
    assert pending["items"] == []
    verify = client.post(f"/api/admin/verify-payment/{order.id}", headers=admin_headers)
    assert verify.status_code == 422
    assert verify.json()["message"] == "This payment has already been processed."
