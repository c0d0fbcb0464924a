"""
Integration tests for categories, artwork CRUD and image delivery.
"""

import io
import json

from PIL import Image

from picx.db.models import Notification, Product
from conftest import auth_headers, create_product, make_image_bytes


def upload(name="art.png", fmt="PNG"):
    return (name, make_image_bytes(fmt), f"image/{fmt.lower()}")


class TestCategories:
    def test_list_and_create(self, client, admin, category):
        response = client.post(
            "/api/product/categories",
            json={"name": "Photography"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 201

        names = [c["name"] for c in client.get("/api/product/categories").json()]
        assert names == ["Digital Art", "Photography"]

    def test_duplicate_category(self, client, admin, category):
        response = client.post(
            "/api/product/categories", json={"name": "Digital Art"}, headers=auth_headers(admin)
        )
        assert response.status_code == 409

    def test_only_admin_creates(self, client, artist):
        response = client.post(
            "/api/product/categories", json={"name": "Sculpture"}, headers=auth_headers(artist)
        )
        assert response.status_code == 403


class TestAddProduct:
    def test_artist_uploads_artwork(self, client, db, storage, artist, category):
        response = client.post(
            "/api/product/add",
            data={
                "title": "Harbour Lights",
                "price": "250.50",
                "category_name": "digital art",
                "tags": "night,sea",
            },
            files=[
                ("image", upload("harbour.png")),
                ("additional_images", upload("detail.jpg", "JPEG")),
            ],
            headers=auth_headers(artist),
        )

        assert response.status_code == 201
        product = response.json()["product"]
        assert product["title"] == "Harbour Lights"
        assert product["price"] == 250.5
        assert product["tags"] == ["night", "sea"]
        assert product["category_name"] == "Digital Art"
        assert product["image_url"].startswith("/api/product/image/")
        assert len(product["additional_image_urls"]) == 1

        stored = db.query(Product).filter(Product.product_id == product["product_id"]).one()
        assert stored.image_key.endswith(".png")
        assert stored.image_key in storage.objects
        assert json.loads(stored.additional_images)[0].endswith(".jpg")

    def test_bad_extension(self, client, artist, category):
        response = client.post(
            "/api/product/add",
            data={"title": "Doc", "price": "10", "category_name": "Digital Art"},
            files=[("image", ("notes.pdf", b"%PDF-1.4", "application/pdf"))],
            headers=auth_headers(artist),
        )
        assert response.status_code == 400

    def test_unknown_category(self, client, artist):
        response = client.post(
            "/api/product/add",
            data={"title": "Lost", "price": "10", "category_name": "Nope"},
            files=[("image", upload())],
            headers=auth_headers(artist),
        )
        assert response.status_code == 400

    def test_buyer_cannot_upload(self, client, buyer, category):
        response = client.post(
            "/api/product/add",
            data={"title": "Mine", "price": "10", "category_name": "Digital Art"},
            files=[("image", upload())],
            headers=auth_headers(buyer),
        )
        assert response.status_code == 403


class TestListings:
    def test_pagination(self, client, db, storage, artist, category):
        for i in range(5):
            create_product(db, storage, artist, category, title=f"Piece {i}")
        create_product(db, storage, artist, category, title="Hidden", is_available=False)

        first = client.get("/api/product/all", params={"page": 1, "limit": 2}).json()
        last = client.get("/api/product/all", params={"page": 3, "limit": 2}).json()

        assert first["total_pages"] == 3
        assert first["has_more"] is True
        assert len(first["products"]) == 2
        assert last["has_more"] is False
        assert len(last["products"]) == 1
        titles = {p["title"] for p in first["products"] + last["products"]}
        assert "Hidden" not in titles

    def test_own_products_include_unavailable(self, client, db, storage, artist, category):
        create_product(db, storage, artist, category, title="Shown")
        create_product(db, storage, artist, category, title="Locked", is_available=False)

        response = client.get("/api/product", headers=auth_headers(artist))

        assert response.status_code == 200
        assert {p["title"] for p in response.json()} == {"Shown", "Locked"}

    def test_artist_public_listing(self, client, db, storage, artist, other_artist, category):
        create_product(db, storage, artist, category, title="Mine")
        create_product(db, storage, other_artist, category, title="Theirs")

        response = client.get(f"/api/product/artist/{artist.user_id}")

        assert [p["title"] for p in response.json()["products"]] == ["Mine"]


class TestProductDetail:
    def test_anonymous_permissions(self, client, product):
        body = client.get(f"/api/product/{product.product_id}").json()

        assert body["permissions"] == {
            "can_view": True,
            "can_like": False,
            "can_comment": False,
            "can_add_to_cart": False,
            "can_edit": False,
        }

    def test_owner_permissions(self, client, product, artist):
        body = client.get(
            f"/api/product/{product.product_id}", headers=auth_headers(artist)
        ).json()

        assert body["permissions"]["can_edit"] is True
        assert body["permissions"]["can_add_to_cart"] is True
        assert body["artist_email"] == artist.email

    def test_buyer_permissions(self, client, product, buyer):
        body = client.get(f"/api/product/{product.product_id}", headers=auth_headers(buyer)).json()

        assert body["permissions"]["can_like"] is True
        assert body["permissions"]["can_edit"] is False

    def test_missing(self, client):
        response = client.get("/api/product/9999")

        assert response.status_code == 404
        assert response.json()["error"]["type"] == "ResourceNotFoundError"


class TestWatermarkedImage:
    def test_serves_watermarked_copy(self, client, product, storage):
        response = client.get(f"/api/product/image/{product.image_key}")

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.headers["cache-control"] == "public,max-age=86400"
        assert response.content != storage.objects[product.image_key]
        assert Image.open(io.BytesIO(response.content)).size == (64, 48)

    def test_unknown_key(self, client):
        assert client.get("/api/product/image/unknown.png").status_code == 404

    def test_additional_image_key_is_matched_literally(self, client, db, product, storage):
        product.additional_images = json.dumps(["detail-1.png"])
        db.commit()
        storage.objects["detail-1.png"] = make_image_bytes()
        storage.objects["detail_1.png"] = make_image_bytes()
        storage.objects["%.png"] = make_image_bytes()

        assert client.get("/api/product/image/detail-1.png").status_code == 200
        assert client.get("/api/product/image/detail_1.png").status_code == 404
        assert client.get("/api/product/image/%25.png").status_code == 404


class TestEditAndLock:
    def test_edit_fields_and_replace_image(self, client, product, storage, artist):
        old_key = product.image_key

        response = client.put(
            f"/api/product/edit/{product.product_id}",
            data={"title": "Sunset Revisited", "price": "175"},
            files=[("image", upload("new.png"))],
            headers=auth_headers(artist),
        )

        assert response.status_code == 200
        body = response.json()["product"]
        assert body["title"] == "Sunset Revisited"
        assert body["price"] == 175.0
        assert old_key in storage.deleted
        assert old_key not in body["image_url"]

    def test_other_artist_cannot_edit(self, client, product, other_artist):
        response = client.put(
            f"/api/product/edit/{product.product_id}",
            data={"title": "Stolen"},
            headers=auth_headers(other_artist),
        )
        assert response.status_code == 403

    def test_admin_lock_notifies_artist(self, client, db, product, admin, artist):
        response = client.put(
            f"/api/product/set-unavailable/{product.product_id}", headers=auth_headers(admin)
        )

        assert response.status_code == 200
        notes = db.query(Notification).filter(Notification.user_id == artist.user_id).all()
        assert [n.title for n in notes] == ["Artwork Locked"]

        again = client.put(
            f"/api/product/set-unavailable/{product.product_id}", headers=auth_headers(admin)
        )
        assert again.status_code == 400

    def test_artist_lock_does_not_notify_self(self, client, db, product, artist):
        client.put(f"/api/product/set-unavailable/{product.product_id}", headers=auth_headers(artist))

        assert db.query(Notification).count() == 0


class TestDeleteProduct:
    def test_delete_removes_images(self, client, db, product, storage, artist):
        key = product.image_key

        response = client.delete(f"/api/product/{product.product_id}", headers=auth_headers(artist))

        assert response.status_code == 200
        assert key in storage.deleted
        assert db.query(Product).count() == 0

    def test_ordered_product_cannot_be_deleted(self, client, product, buyer, artist):
        client.post(
            "/api/orders",
            json={"items": [{"product_id": product.product_id}]},
            headers=auth_headers(buyer),
        )

        response = client.delete(f"/api/product/{product.product_id}", headers=auth_headers(artist))

        assert response.status_code == 409
