from app.models import VerificationStatus

ID_IMAGE = ("student-id.jpg", b"jpeg", "image/jpeg")


def apply(client, headers, slug="org-merch-hub", **files):
    return client.post(
        "/api/sellers",
        data={"shop_name": "Org Merch Hub", "slug": slug, "contact_email": "merch@campus.edu"},
        files={"id_image": ID_IMAGE, **files},
        headers=headers,
    )


def test_apply_creates_unverified_seller(client, storage, buyer, buyer_headers):
    response = apply(client, buyer_headers, logo=("logo.png", b"png", "image/png"))

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["user_id"] == buyer.id
    assert data["verification_status"] == "unverified"
    assert data["logo_url"].startswith("https://files.test/sellers/")
    assert len(storage.objects) == 2


def test_apply_requires_id_image(client, buyer_headers):
    response = client.post(
        "/api/sellers", data={"shop_name": "Org Merch Hub", "slug": "org-merch-hub"}, headers=buyer_headers
    )

    assert response.status_code == 422
    assert "id_image" in response.json()["errors"]


def test_second_application_is_refused(client, storage, buyer_headers):
    apply(client, buyer_headers)

    response = apply(client, buyer_headers, slug="another-slug")

    assert response.status_code == 422
    assert response.json()["message"] == "You already have a seller profile with status: unverified."
    assert len(storage.deleted) == 1


def test_taken_slug_is_refused(client, buyer_headers, make_seller):
    make_seller(slug="org-merch-hub")

    response = apply(client, buyer_headers)

    assert response.status_code == 422
    assert response.json()["message"] == "The slug has already been taken."


def test_rejected_application_is_resubmitted_in_place(client, buyer, buyer_headers, make_seller):
    rejected = make_seller(user=buyer, status=VerificationStatus.REJECTED, slug="old-slug")

    response = apply(client, buyer_headers)

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["id"] == rejected.id
    assert data["slug"] == "org-merch-hub"
    assert data["verification_status"] == "unverified"


def test_seller_profile_with_counts(client, session, buyer, buyer_headers, make_seller, make_product):
    seller = make_seller(user=buyer)
    make_product(seller)
    make_product(seller, is_active=False)

    me = client.get("/api/sellers/me", headers=buyer_headers).json()["data"]
    public = client.get(f"/api/sellers/{seller.id}").json()["data"]

    assert me["products_count"] == 2
    assert me["orders_count"] == 0
    assert public["id"] == seller.id
    assert "id_image_path" not in public


def test_update_own_profile(client, buyer, buyer_headers, make_seller):
    make_seller(user=buyer)
    make_seller(slug="taken")

    response = client.put(
        "/api/sellers/me", json={"description": "Hoodies and lanyards", "shop_name": None}, headers=buyer_headers
    )
    assert response.status_code == 200
    assert response.json()["data"]["description"] == "Hoodies and lanyards"
    assert response.json()["data"]["shop_name"]

    clash = client.put("/api/sellers/me", json={"slug": "taken"}, headers=buyer_headers)
    assert clash.status_code == 422


def test_unknown_seller_is_not_found(client):
    response = client.get("/api/sellers/999")

    assert response.status_code == 404
    assert response.json()["message"] == "Seller not found."


def test_seller_products_lists_active_only(client, make_seller, make_product):
    seller = make_seller()
    visible = make_product(seller)
    make_product(seller, is_active=False)
    make_product()

    page = client.get(f"/api/sellers/{seller.id}/products").json()["data"]

    assert [p["id"] for p in page["items"]] == [visible.id]
