import re

from sqlmodel import select

from app.models import CartItem, Order, OrderItem, OrderStatus, PaymentStatus
from app.services.order import SINGLE_ORDER_MESSAGE, SPLIT_ORDER_MESSAGE, OrderService, generate_order_number

ORDER_NUMBER = re.compile(r"^ORD-\d{8}-[A-Z0-9]{8}$")


def checkout(client, headers, lines, payment_method="cop", **extra):
    payload = {
        "items": [{"product_id": p.id, "quantity": q} for p, q in lines],
        "payment_method": payment_method,
        **extra,
    }
    return client.post("/api/orders", json=payload, headers=headers)


def add_to_cart(session, user, product, quantity):
    session.add(CartItem(user_id=user.id, product_id=product.id, quantity=quantity))
    session.commit()


def test_single_seller_checkout_creates_one_order(client, session, buyer, buyer_headers, make_seller, make_product):
    seller = make_seller()
    mug = make_product(seller, price="120.50", stock=10)
    pen = make_product(seller, price="15.25", stock=10)

    response = checkout(client, buyer_headers, [(mug, 2), (pen, 4)], notes="Pick up after class")

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Orders created successfully."
    data = body["data"]
    assert data["total_orders"] == 1
    assert data["message"] == SINGLE_ORDER_MESSAGE

    order = data["orders"][0]
    assert ORDER_NUMBER.match(order["order_number"])
    assert order["seller_id"] == seller.id
    assert order["subtotal"] == order["total_amount"] == 302.0
    assert order["notes"] == "Pick up after class"
    assert [(i["product_id"], i["quantity"]) for i in order["order_items"]] == [(mug.id, 2), (pen.id, 4)]
    assert order["order_items"][0]["product_name"] == mug.name
    assert order["order_items"][0]["total_price"] == 241.0


def test_cash_on_pickup_starts_confirmed_and_gcash_pending(session, buyer, make_product):
    product = make_product(stock=5)
    service = OrderService(session)

    cop = service.create_orders(buyer.id, [{"product_id": product.id, "quantity": 1}], "cop").orders[0]
    gcash = service.create_orders(
        buyer.id, [{"product_id": product.id, "quantity": 1}], "gcash",
        payment_receipt_url="https://files.test/orders/receipts/1.png",
    ).orders[0]

    assert cop.status == OrderStatus.CONFIRMED
    assert cop.payment_status == PaymentStatus.PENDING
    assert gcash.status == OrderStatus.PENDING
    assert gcash.payment_receipt_url.endswith("1.png")


def test_checkout_splits_orders_per_seller(client, session, buyer, buyer_headers, make_seller, make_product):
    seller_one = make_seller()
    seller_two = make_seller()
    product_a = make_product(seller_one, price="100.00", stock=5)
    product_b = make_product(seller_two, price="50.00", stock=1)
    add_to_cart(session, buyer, product_a, 2)
    add_to_cart(session, buyer, product_b, 1)

    response = checkout(client, buyer_headers, [(product_a, 2), (product_b, 1)])

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["total_orders"] == 2
    assert data["message"] == SPLIT_ORDER_MESSAGE

    by_seller = {o["seller_id"]: o for o in data["orders"]}
    assert by_seller[seller_one.id]["subtotal"] == 200.0
    assert by_seller[seller_two.id]["subtotal"] == 50.0
    assert [i["product_id"] for i in by_seller[seller_one.id]["order_items"]] == [product_a.id]
    assert [i["product_id"] for i in by_seller[seller_two.id]["order_items"]] == [product_b.id]

    session.refresh(product_a)
    session.refresh(product_b)
    assert (product_a.stock, product_a.sold_count) == (3, 2)
    assert (product_b.stock, product_b.sold_count) == (0, 1)
    assert session.exec(select(CartItem).where(CartItem.user_id == buyer.id)).all() == []


def test_checkout_keeps_cart_rows_of_other_products(client, session, buyer, buyer_headers, make_product):
    bought = make_product(stock=5)
    kept = make_product(stock=5)
    add_to_cart(session, buyer, bought, 1)
    add_to_cart(session, buyer, kept, 1)

    assert checkout(client, buyer_headers, [(bought, 1)]).status_code == 201

    remaining = session.exec(select(CartItem).where(CartItem.user_id == buyer.id)).all()
    assert [item.product_id for item in remaining] == [kept.id]


def test_out_of_stock_product_aborts_checkout(client, session, buyer, buyer_headers, make_product):
    product = make_product(name="Graphing Calculator", stock=0)
    add_to_cart(session, buyer, product, 1)

    response = checkout(client, buyer_headers, [(product, 1)])

    assert response.status_code == 422
    assert response.json() == {
        "success": False,
        "message": "Insufficient stock for product: Graphing Calculator",
    }
    assert session.exec(select(Order)).all() == []
    assert len(session.exec(select(CartItem)).all()) == 1


def test_failure_on_one_seller_rolls_back_the_whole_batch(client, session, buyer, buyer_headers, make_seller, make_product):
    fine = make_product(make_seller(), stock=5)
    scarce = make_product(make_seller(), stock=1)

    response = checkout(client, buyer_headers, [(fine, 2), (scarce, 3)])

    assert response.status_code == 422
    assert session.exec(select(Order)).all() == []
    assert session.exec(select(OrderItem)).all() == []
    session.refresh(fine)
    session.refresh(scarce)
    assert (fine.stock, fine.sold_count) == (5, 0)
    assert (scarce.stock, scarce.sold_count) == (1, 0)


def test_repeated_lines_are_checked_against_combined_quantity(client, session, buyer_headers, make_product):
    product = make_product(stock=3)

    response = checkout(client, buyer_headers, [(product, 2), (product, 2)])

    assert response.status_code == 422
    assert response.json()["message"].startswith("Insufficient stock")
    session.refresh(product)
    assert product.stock == 3


def test_inactive_and_unknown_products_are_rejected(client, buyer_headers, make_product):
    hidden = make_product(name="Old Notes", is_active=False)

    response = checkout(client, buyer_headers, [(hidden, 1)])
    assert response.status_code == 422
    assert response.json()["message"] == "Product is inactive: Old Notes"

    response = client.post(
        "/api/orders",
        json={"items": [{"product_id": 9999, "quantity": 1}], "payment_method": "cop"},
        headers=buyer_headers,
    )
    assert response.status_code == 422
    assert response.json()["message"] == "Product not found: 9999"


def test_checkout_payload_is_validated(client, buyer_headers, make_product):
    product = make_product()

    response = client.post("/api/orders", json={"items": [], "payment_method": "cop"}, headers=buyer_headers)
    assert response.status_code == 422
    assert response.json()["message"] == "The given data was invalid."
    assert "items" in response.json()["errors"]

    response = client.post(
        "/api/orders",
        json={"items": [{"product_id": product.id, "quantity": 0}], "payment_method": "cash"},
        headers=buyer_headers,
    )
    errors = response.json()["errors"]
    assert "items.0.quantity" in errors
    assert "payment_method" in errors


def test_gcash_checkout_requires_a_receipt(client, session, buyer_headers, make_product):
    product = make_product()

    response = checkout(client, buyer_headers, [(product, 1)], payment_method="gcash")

    assert response.status_code == 422
    assert response.json()["message"] == "A payment receipt is required for GCash payments."
    assert session.exec(select(Order)).all() == []


def test_multipart_checkout_stores_receipt(client, session, storage, buyer_headers, make_product):
    product = make_product(price="75.00", stock=4)

    response = client.post(
        "/api/orders/with-receipt",
        data={
            "items[0][product_id]": str(product.id),
            "items[0][quantity]": "2",
            "payment_method": "gcash",
        },
        files={"payment_receipt": ("receipt.png", b"\x89PNG fake", "image/png")},
        headers=buyer_headers,
    )

    assert response.status_code == 201
    order = response.json()["data"]["orders"][0]
    assert order["status"] == "pending"
    assert order["total_amount"] == 150.0
    assert order["payment_receipt_url"].startswith("https://files.test/orders/receipts/")
    assert len(storage.objects) == 1


def test_receipt_is_discarded_when_checkout_fails(client, storage, buyer_headers, make_product):
    product = make_product(stock=1)

    response = client.post(
        "/api/orders/with-receipt",
        data={
            "items[0][product_id]": str(product.id),
            "items[0][quantity]": "5",
            "payment_method": "gcash",
        },
        files={"payment_receipt": ("receipt.jpg", b"jpeg bytes", "image/jpeg")},
        headers=buyer_headers,
    )

    assert response.status_code == 422
    assert storage.objects == {}
    assert len(storage.deleted) == 1


def test_receipt_type_and_size_are_checked(client, buyer_headers, make_product):
    product = make_product()
    form = {
        "items[0][product_id]": str(product.id),
        "items[0][quantity]": "1",
        "payment_method": "gcash",
    }

    response = client.post(
        "/api/orders/with-receipt",
        data=form,
        files={"payment_receipt": ("receipt.pdf", b"%PDF", "application/pdf")},
        headers=buyer_headers,
    )
    assert response.status_code == 422

    too_big = b"0" * (2 * 1024 * 1024 + 1)
    response = client.post(
        "/api/orders/with-receipt",
        data=form,
        files={"payment_receipt": ("receipt.png", too_big, "image/png")},
        headers=buyer_headers,
    )
    assert response.status_code == 422
    assert "kilobytes" in response.json()["message"]


def test_created_order_matches_later_fetch(client, buyer_headers, make_product):
    product = make_product(stock=3)

    created = checkout(client, buyer_headers, [(product, 1)]).json()["data"]["orders"][0]
    fetched = client.get(f"/api/orders/{created['id']}", headers=buyer_headers).json()["data"]

    assert fetched == created


def test_checkout_requires_authentication(client, make_product):
    product = make_product()

    response = client.post("/api/orders", json={"items": [{"product_id": product.id, "quantity": 1}], "payment_method": "cop"})

    assert response.status_code == 401
    assert response.json()["success"] is False


def test_generate_order_number_skips_taken_numbers(session, monkeypatch):
    tokens = iter("A" * 8 + "A" * 8 + "B" * 8)
    monkeypatch.setattr("app.services.order.secrets.choice", lambda alphabet: next(tokens))
    first = generate_order_number(session)

    second = generate_order_number(session, taken={first})

    assert first.endswith("-AAAAAAAA")

    assert second.endswith("-BBBBBBBB")
    assert ORDER_NUMBER.match(second)
