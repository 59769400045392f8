"""Business operations on images: upload, lookup, labelling and removal."""

from __future__ import annotations

import json
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from .entity import Image
from .repository import ImageRepository
from .storage import MinioClient, StorageError

_OBJECT_PREFIX = "screenshots"


@dataclass(frozen=True)
class UploadedFile:
    """A file received from a client, held in memory."""

    filename: str
    data: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        """Size of the file in bytes."""
        return len(self.data)


def _to_json(value: dict[str, Any], what: str) -> str:
    """Serialise a mapping the way the stored records expect: compact, keys sorted."""
    try:
        return json.dumps(value, sort_keys=True, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        raise ValueError(f"failed to marshal {what}: {exc}") from exc


class ImageService(ABC):
    """Business logic available for images."""

    @abstractmethod
    def upload_image(self, file: UploadedFile, ground_truth: dict[str, Any] | None) -> Image:
        """Store the file and record a new image for it."""

    @abstractmethod
    def get_image_by_id(self, image_id: uuid.UUID) -> Image:
        """Return the image with this id."""

    @abstractmethod
    def get_all_images(self) -> list[Image]:
        """Return every image."""

    @abstractmethod
    def update_image(
        self,
        image_id: uuid.UUID,
        predicted_labels: dict[str, Any] | None,
        evaluation_scores: dict[str, Any] | None,
    ) -> Image:
        """Set predicted labels and evaluation scores of an image."""

    @abstractmethod
    def update_ground_truth(self, image_id: uuid.UUID, ground_truth: dict[str, Any] | None) -> Image:
        """Replace the ground truth of an image."""

    @abstractmethod
    def delete_image(self, image_id: uuid.UUID) -> None:
        """Remove an image and its stored file."""

    @abstractmethod
    def get_image_url(self, minio_path: str, expiry: timedelta) -> str:
        """Return a time-limited URL for the stored file."""


class ImageUseCase(ImageService):
    """ImageService over a repository and an object store."""

    def __init__(self, repository: ImageRepository, storage: MinioClient) -> None:
        self.repository = repository
        self.storage = storage

    def upload_image(self, file: UploadedFile, ground_truth: dict[str, Any] | None) -> Image:
        image_id = uuid.uuid4()
        object_path = f"{_OBJECT_PREFIX}/{image_id}-{file.filename}"

        try:
            self.storage.put_object(object_path, file.data)
        except StorageError as exc:
            raise StorageError(f"failed to upload file to MinIO: {exc}") from exc

        ground_truth_json = None if ground_truth is None else _to_json(ground_truth, "ground truth")
        now = datetime.now()
        image = Image(
            id=image_id,
            name=file.filename,
            minio_path=object_path,
            ground_truth=ground_truth_json,
            created_at=now,
            updated_at=now,
        )
        self.repository.create(image)
        return image

    def get_image_by_id(self, image_id: uuid.UUID) -> Image:
        return self.repository.get_by_id(image_id)

    def get_all_images(self) -> list[Image]:
        return self.repository.get_all()

    def update_image(
        self,
        image_id: uuid.UUID,
        predicted_labels: dict[str, Any] | None,
        evaluation_scores: dict[str, Any] | None,
    ) -> Image:
        image = self.repository.get_by_id(image_id)
        if predicted_labels is not None:
            image.predicted_labels = _to_json(predicted_labels, "predicted labels")
        if evaluation_scores is not None:
            image.evaluation_scores = _to_json(evaluation_scores, "evaluation scores")
        image.updated_at = datetime.now()
        self.repository.update(image)
        return image

    def update_ground_truth(self, image_id: uuid.UUID, ground_truth: dict[str, Any] | None) -> Image:
        image = self.repository.get_by_id(image_id)
        image.ground_truth = None if ground_truth is None else _to_json(ground_truth, "ground truth")
        image.updated_at = datetime.now()
        self.repository.update(image)
        return image

    def delete_image(self, image_id: uuid.UUID) -> None:
        image = self.repository.get_by_id(image_id)
        try:
            self.storage.remove_object(image.minio_path)
        except StorageError as exc:
            raise StorageError(f"failed to delete file from MinIO: {exc}") from exc
        self.repository.delete(image_id)

    def get_image_url(self, minio_path: str, expiry: timedelta) -> str:
        try:
            return self.storage.presigned_get_object(minio_path, expiry)
        except (StorageError, ValueError) as exc:
            raise StorageError(f"failed to generate signed URL: {exc}") from exc