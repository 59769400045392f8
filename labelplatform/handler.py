"""HTTP handlers for the image endpoints."""

from __future__ import annotations

import base64
import functools
import json
import os
import uuid
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

import httpx
import redis
from flask import Response, jsonify, request

from .entity import Image
from .queues import QUEUE_CLAUDE, QUEUE_GEMINI, QUEUE_GPT
from .storage import StorageError
from .usecase import ImageService, UploadedFile
from .webhook import notify_predict_result

MAX_UPLOAD_SIZE = 10 * 1024 * 1024
URL_EXPIRY = timedelta(hours=1)
PREDICT_LOCK_TTL = timedelta(minutes=5)
PREDICT_QUEUES = (QUEUE_GPT, QUEUE_CLAUDE, QUEUE_GEMINI)

Reply = tuple[Response, int]


class _Abort(Exception):
    """Ends a handler early with the given status and JSON body."""

    def __init__(self, status: int, body: Any) -> None:
        super().__init__(status)
        self.status = status
        self.body = body


def _responds(method: Callable[..., Reply]) -> Callable[..., Reply]:
    @functools.wraps(method)
    def wrapper(*args: Any, **kwargs: Any) -> Reply:
        try:
            return method(*args, **kwargs)
        except _Abort as exc:
            return jsonify(exc.body), exc.status

    return wrapper


@dataclass
class PredictNotifyRequest:
    """A prediction result reported by a model worker."""

    image_id: str = ""
    model: str = ""
    result: str = ""


def _parse_id(raw: str) -> uuid.UUID:
    try:
        return uuid.UUID(raw)
    except ValueError:
        raise _Abort(400, {"error": "Invalid ID format"}) from None


def _as_map(raw: str | None) -> dict[str, Any] | None:
    """Decode JSON text that must hold an object or null."""
    if raw is None:
        return None
    value = json.loads(raw)
    if value is not None and not isinstance(value, dict):
        raise ValueError("expected a JSON object")
    return value


def _lenient_map(raw: str | None) -> dict[str, Any] | None:
    try:
        return _as_map(raw)
    except ValueError:
        return None


def _image_view(image: Image, url: str) -> dict[str, Any]:
    view = image.to_dict()
    view.update(
        image_url=url,
        ground_truth=_lenient_map(image.ground_truth),
        predicted_labels=_lenient_map(image.predicted_labels),
        evaluation_scores=_lenient_map(image.evaluation_scores),
    )
    return view


def _request_object() -> dict[str, Any]:
    """Decode the request body, which must be a JSON object or null."""
    body = json.loads(request.get_data(as_text=True))
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValueError("expected a JSON object")
    return body


def _map_field(body: dict[str, Any], name: str) -> dict[str, Any] | None:
    value = body.get(name)
    if value is not None and not isinstance(value, dict):
        raise ValueError(f"field {name} must be a JSON object")
    return value


def _str_field(body: dict[str, Any], name: str) -> str:
    value = body.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {name} must be a string")
    return value


def _bad_format() -> _Abort:
    return _Abort(400, {"error": "Invalid request format"})


class ImageHandler:
    """Serves the image API using the current Flask request."""

    def __init__(self, image_use_case: ImageService, redis_client: Any, webhook_url: str | None = None) -> None:
        self.image_use_case = image_use_case
        self.redis = redis_client
        self.webhook_url = webhook_url

    def _find(self, image_id: uuid.UUID) -> Image:
        try:
            return self.image_use_case.get_image_by_id(image_id)
        except Exception:
            raise _Abort(404, {"error": "Image not found"}) from None

    def _signed_url(self, image: Image) -> str:
        try:
            return self.image_use_case.get_image_url(image.minio_path, URL_EXPIRY)
        except Exception as exc:
            raise _Abort(500, {"error": "Failed to generate image URL", "details": str(exc)}) from exc

    def _lock_ttl(self, key: str) -> int | None:
        with suppress(redis.exceptions.RedisError):
            return int(self.redis.ttl(key))
        return None

    @_responds
    def upload_image(self) -> Reply:
        file = request.files.get("image")
        if file is None:
            raise _Abort(
                400,
                {
                    "error": "No image file provided. Please include a file with field name 'image'",
                    "details": "Expected multipart/form-data with field 'image' containing the image file",
                },
            )
        content_type = file.content_type or ""
        if not content_type.startswith("image/"):
            raise _Abort(
                400,
                {
                    "error": "Invalid file type. Please upload an image file (PNG, JPG, JPEG, etc.)",
                    "received_type": content_type,
                },
            )
        data = file.read()
        if len(data) > MAX_UPLOAD_SIZE:
            raise _Abort(
                400,
                {
                    "error": "File too large. Maximum size is 10MB",
                    "file_size": len(data),
                    "max_size": MAX_UPLOAD_SIZE,
                },
            )

        ground_truth = None
        raw_ground_truth = request.form.get("ground_truth", "")
        if raw_ground_truth:
            try:
                ground_truth = _as_map(raw_ground_truth)
            except ValueError as exc:
                raise _Abort(
                    400,
                    {"error": "Invalid ground truth format. Please provide valid JSON", "details": str(exc)},
                ) from exc

        upload = UploadedFile(filename=file.filename or "", data=data, content_type=content_type)
        try:
            image = self.image_use_case.upload_image(upload, ground_truth)
        except Exception as exc:
            raise _Abort(500, {"error": "Failed to upload image", "details": str(exc)}) from exc

        view = _image_view(image, self._signed_url(image))
        view["file_info"] = {"size": len(data), "content_type": content_type}
        return jsonify(view), 201

    @_responds
    def get_image_by_id(self, image_id: str) -> Reply:
        image = self._find(_parse_id(image_id))
        return jsonify(_image_view(image, self._signed_url(image))), 200

    @_responds
    def get_all_images(self) -> Reply:
        try:
            images = self.image_use_case.get_all_images()
        except Exception as exc:
            raise _Abort(500, {"error": str(exc)}) from exc

        views = []
        for image in images:
            try:
                url = self.image_use_case.get_image_url(image.minio_path, URL_EXPIRY)
            except Exception:
                continue
            views.append(_image_view(image, url))
        return jsonify(views or None), 200

    @_responds
    def update_image(self, image_id: str) -> Reply:
        parsed = _parse_id(image_id)
        try:
            body = _request_object()
            predicted_labels = _map_field(body, "predicted_labels")
            evaluation_scores = _map_field(body, "evaluation_scores")
        except ValueError:
            raise _bad_format() from None
        try:
            image = self.image_use_case.update_image(parsed, predicted_labels, evaluation_scores)
        except Exception as exc:
            raise _Abort(500, {"error": str(exc)}) from exc
        return jsonify(image.to_dict()), 200

    @_responds
    def delete_image(self, image_id: str) -> Reply:
        parsed = _parse_id(image_id)
        try:
            self.image_use_case.delete_image(parsed)
        except Exception as exc:
            raise _Abort(500, {"error": str(exc)}) from exc
        return jsonify({"message": "Image deleted successfully"}), 200

    @_responds
    def get_image_url(self, image_id: str) -> Reply:
        image = self._find(_parse_id(image_id))
        try:
            url = self.image_use_case.get_image_url(image.minio_path, URL_EXPIRY)
        except Exception:
            raise _Abort(500, {"error": "Failed to generate signed URL"}) from None
        return jsonify({"image_url": url, "expires_in": "1 hour"}), 200

    @_responds
    def update_ground_truth(self, image_id: str) -> Reply:
        parsed = _parse_id(image_id)
        try:
            ground_truth = _map_field(_request_object(), "ground_truth")
        except ValueError:
            raise _bad_format() from None
        try:
            image = self.image_use_case.update_ground_truth(parsed, ground_truth)
        except Exception as exc:
            raise _Abort(500, {"error": str(exc)}) from exc
        return jsonify(_image_view(image, self._signed_url(image))), 200

    @_responds
    def predict_image(self, image_id: str) -> Reply:
        parsed = _parse_id(image_id)

        # Each image may be sent for prediction once per lock period.
        lock_key = f"predict-lock:{parsed}"
        ttl = self._lock_ttl(lock_key)
        if ttl is not None and ttl > 0:
            raise self._rate_limited(ttl)
        try:
            acquired = self.redis.set(lock_key, "1", ex=PREDICT_LOCK_TTL, nx=True)
        except redis.exceptions.RedisError as exc:
            raise _Abort(500, {"error": "Redis error", "details": str(exc)}) from exc
        if not acquired:
            raise self._rate_limited(self._lock_ttl(lock_key) or 0)

        image = self._find(parsed)
        try:
            content = self.image_use_case.storage.get_object(image.minio_path)
        except StorageError:
            raise _Abort(500, {"error": "Failed to get image from MinIO"}) from None

        payload = json.dumps(
            {"id": str(image.id), "image_base64": base64.b64encode(content).decode("ascii")},
            separators=(",", ":"),
        )
        for queue in PREDICT_QUEUES:
            with suppress(redis.exceptions.RedisError):
                self.redis.rpush(queue, payload)

        return jsonify({"message": "Image pushed to model queues", "id": str(image.id)}), 200

    @staticmethod
    def _rate_limited(ttl: int) -> _Abort:
        return _Abort(
            429,
            {"error": "Rate limited. Please wait before retrying.", "retry_after_seconds": max(ttl, 0)},
        )

    @_responds
    def predict_notify(self) -> Reply:
        try:
            body = _request_object()
            notice = PredictNotifyRequest(
                image_id=_str_field(body, "image_id"),
                model=_str_field(body, "model"),
                result=_str_field(body, "result"),
            )
        except ValueError as exc:
            raise _Abort(400, {"error": "invalid body", "details": str(exc)}) from exc

        webhook_url = self.webhook_url if self.webhook_url is not None else os.environ.get("WEBHOOK_URL", "")
        if webhook_url:
            payload = {"image_id": notice.image_id, "model": notice.model, "result": notice.result}
            try:
                notify_predict_result(webhook_url, payload)
            except httpx.HTTPError as exc:
                raise _Abort(500, {"error": "webhook failed", "details": str(exc)}) from exc

        return jsonify({"status": "received", "image_id": notice.image_id, "model": notice.model}), 200

    @_responds
    def get_predict_models(self, image_id: str) -> Reply:
        parsed = _parse_id(image_id)
        image = self._find(parsed)
        try:
            predicted_labels = _as_map(image.predicted_labels)
        except ValueError as exc:
            raise _Abort(500, {"error": "Failed to parse predicted_labels", "details": str(exc)}) from exc
        return jsonify({"image_id": str(parsed), "predicted_labels": predicted_labels}), 200