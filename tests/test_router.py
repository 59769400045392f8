import io
import uuid
from collections import defaultdict
from datetime import timedelta

import pytest

from labelplatform.handler import ImageHandler
from labelplatform.repository import ImageNotFoundError, ImageRepository
from labelplatform.router import ALLOW_HEADERS, ALLOW_METHODS, PREFLIGHT_MAX_AGE, setup_router
from labelplatform.storage import StorageError
from labelplatform.usecase import ImageUseCase

ORIGIN = "http://app.example.com"


class MemoryRepo(ImageRepository):
    def __init__(self):
        self.images = {}

    def create(self, image):
        self.images[image.id] = image

    def get_by_id(self, image_id):
        try:
            return self.images[image_id]
        except KeyError:
            raise ImageNotFoundError(image_id) from None

    def get_all(self):
        return list(self.images.values())

    def update(self, image):
        self.images[image.id] = image

    def delete(self, image_id):
        self.images.pop(image_id, None)


class FakeStorage:
    def __init__(self):
        self.objects = {}

    def put_object(self, key, data, content_type="application/octet-stream"):
        self.objects[key] = data

    def get_object(self, key):
        try:
            return self.objects[key]
        except KeyError:
            raise StorageError(key) from None

    def remove_object(self, key):
        self.objects.pop(key, None)

    def presigned_get_object(self, key, expiry):
        return f"http://storage.example.com/{key}?expires={int(expiry.total_seconds())}"


class FakeRedis:
    def __init__(self):
        self.values = {}
        self.lists = defaultdict(list)

    def ttl(self, key):
        return -2

    def set(self, key, value, ex=None, nx=False):
        if nx and key in self.values:
            return None
        self.values[key] = value
        return True

    def rpush(self, key, *values):
        self.lists[key].extend(values)
        return len(self.lists[key])


@pytest.fixture
def repo():
    return MemoryRepo()


@pytest.fixture
def client(repo):
    handler = ImageHandler(ImageUseCase(repo, FakeStorage()), FakeRedis(), webhook_url="")
    return setup_router(handler).test_client()


def upload(client, data=b"\x89PNG-bytes"):
    return client.post(
        "/api/v1/images/upload",
        data={"image": (io.BytesIO(data), "shot.png", "image/png"), "ground_truth": '{"label": "button"}'},
        content_type="multipart/form-data",
    )


def test_all_routes_registered(repo):
    app = setup_router(ImageHandler(ImageUseCase(repo, FakeStorage()), FakeRedis()))
    routes = {(rule.rule, method) for rule in app.url_map.iter_rules() for method in rule.methods}
    expected = {
        ("/api/v1/images/upload", "POST"),
        ("/api/v1/images/", "GET"),
        ("/api/v1/images/<image_id>", "GET"),
        ("/api/v1/images/<image_id>/url", "GET"),
        ("/api/v1/images/<image_id>", "PUT"),
        ("/api/v1/images/<image_id>/ground-truth", "PUT"),
        ("/api/v1/images/<image_id>", "DELETE"),
        ("/api/v1/images/<image_id>/predict", "GET"),
        ("/api/v1/images/<image_id>/predict/model", "GET"),
        ("/api/v1/predict/notify", "POST"),
    }
    assert expected <= routes


def test_upload_then_fetch(client, repo):
    created = upload(client)
    assert created.status_code == 201
    image_id = created.get_json()["id"]
    fetched = client.get(f"/api/v1/images/{image_id}")
    assert fetched.status_code == 200
    assert fetched.get_json()["ground_truth"] == {"label": "button"}
    assert uuid.UUID(image_id) in repo.images


def test_list_images(client):
    assert client.get("/api/v1/images/").get_json() is None
    upload(client)
    listing = client.get("/api/v1/images/")
    assert listing.status_code == 200
    assert len(listing.get_json()) == 1


def test_invalid_id_routed_to_handler(client):
    response = client.get("/api/v1/images/not-a-uuid")
    assert response.status_code == 400
    assert response.get_json() == {"error": "Invalid ID format"}


def test_update_ground_truth_route(client):
    image_id = upload(client).get_json()["id"]
    response = client.put(f"/api/v1/images/{image_id}/ground-truth", json={"ground_truth": {"label": "icon"}})
    assert response.status_code == 200
    assert response.get_json()["ground_truth"] == {"label": "icon"}


def test_delete_route(client, repo):
    image_id = upload(client).get_json()["id"]
    response = client.delete(f"/api/v1/images/{image_id}")
    assert response.status_code == 200
    assert repo.images == {}


def test_predict_routes(client):
    image_id = upload(client).get_json()["id"]
    assert client.get(f"/api/v1/images/{image_id}/predict").status_code == 200
    assert client.get(f"/api/v1/images/{image_id}/predict").status_code == 429
    models = client.get(f"/api/v1/images/{image_id}/predict/model")
    assert models.get_json() == {"image_id": image_id, "predicted_labels": None}


def test_notify_route(client):
    response = client.post("/api/v1/predict/notify", json={"image_id": "abc", "model": "gpt"})
    assert response.get_json() == {"status": "received", "image_id": "abc", "model": "gpt"}


def test_url_route(client):
    image_id = upload(client).get_json()["id"]
    response = client.get(f"/api/v1/images/{image_id}/url")
    assert response.get_json()["expires_in"] == "1 hour"


def test_preflight_answered(client):
    response = client.options(
        "/api/v1/images/upload", headers={"Origin": ORIGIN, "Access-Control-Request-Method": "POST"}
    )
    assert response.status_code == 204
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert response.headers["Access-Control-Allow-Methods"].split(",") == list(ALLOW_METHODS)
    assert response.headers["Access-Control-Allow-Headers"].split(",") == list(ALLOW_HEADERS)
    assert int(response.headers["Access-Control-Max-Age"]) == PREFLIGHT_MAX_AGE // timedelta(seconds=1)


def test_cross_origin_request_allowed(client):
    response = client.get("/api/v1/images/", headers={"Origin": ORIGIN})
    assert response.headers["Access-Control-Allow-Origin"] == "*"


def test_same_origin_request_has_no_cors_headers(client):
    response = client.get("/api/v1/images/")
    assert "Access-Control-Allow-Origin" not in response.headers
    same = client.get("/api/v1/images/", headers={"Origin": "http://localhost"})
    assert "Access-Control-Allow-Origin" not in same.headers