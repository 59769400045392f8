"""The image entity stored by the platform."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


def _now() -> datetime:
    return datetime.now()


def _decode(raw: str | None) -> Any:
    return None if raw is None else json.loads(raw)


@dataclass
class Image:
    """An uploaded image with its labels and scores held as raw JSON text."""

    name: str
    minio_path: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    ground_truth: str | None = None
    predicted_labels: str | None = None
    evaluation_scores: str | None = None
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    def table_name(self) -> str:
        """Name of the database table holding images."""
        return "images"

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation of the image."""
        return {
            "id": str(self.id),
            "name": self.name,
            "minio_path": self.minio_path,
            "ground_truth": _decode(self.ground_truth),
            "predicted_labels": _decode(self.predicted_labels),
            "evaluation_scores": _decode(self.evaluation_scores),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }