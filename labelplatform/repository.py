"""Abstract storage of image records."""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod

from .entity import Image


class ImageNotFoundError(LookupError):
    """Raised when no image has the requested id."""

    def __init__(self, image_id: uuid.UUID) -> None:
        super().__init__(f"image {image_id} not found")
        self.image_id = image_id


class ImageRepository(ABC):
    """Operations on stored images."""

    @abstractmethod
    def create(self, image: Image) -> None:
        """Store a new image."""

    @abstractmethod
    def get_by_id(self, image_id: uuid.UUID) -> Image:
        """Return the image with this id or raise ImageNotFoundError."""

    @abstractmethod
    def get_all(self) -> list[Image]:
        """Return every stored image."""

    @abstractmethod
    def update(self, image: Image) -> None:
        """Save all fields of the image."""

    @abstractmethod
    def delete(self, image_id: uuid.UUID) -> None:
        """Remove the image with this id."""