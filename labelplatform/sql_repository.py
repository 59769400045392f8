"""Image repository backed by a SQL database."""

from __future__ import annotations

import json
import uuid
from typing import Any

from sqlalchemy import JSON, Column, DateTime, MetaData, Table, Text, Uuid, delete, insert, select, update
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Engine
from sqlalchemy.types import TypeDecorator

from .entity import Image
from .repository import ImageNotFoundError, ImageRepository


class _RawJSON(TypeDecorator):
    """Stores raw JSON text in a JSON (JSONB on PostgreSQL) column."""

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())

    def process_bind_param(self, value: Any, dialect) -> Any:
        return None if value is None else json.loads(value)

    def process_result_value(self, value: Any, dialect) -> Any:
        return None if value is None else json.dumps(value)


metadata = MetaData()

images = Table(
    "images",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("name", Text, nullable=False),
    Column("minio_path", Text, nullable=False),
    Column("ground_truth", _RawJSON(none_as_null=True)),
    Column("predicted_labels", _RawJSON(none_as_null=True)),
    Column("evaluation_scores", _RawJSON(none_as_null=True)),
    Column("created_at", DateTime),
    Column("updated_at", DateTime),
)


def create_schema(engine: Engine) -> None:
    """Create the images table if it is missing."""
    metadata.create_all(engine)


def _values(image: Image) -> dict[str, Any]:
    return {
        "id": image.id,
        "name": image.name,
        "minio_path": image.minio_path,
        "ground_truth": image.ground_truth,
        "predicted_labels": image.predicted_labels,
        "evaluation_scores": image.evaluation_scores,
        "created_at": image.created_at,
        "updated_at": image.updated_at,
    }


def _image(row: Any) -> Image:
    return Image(**row._mapping)


class SqlImageRepository(ImageRepository):
    """ImageRepository over a SQLAlchemy engine."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create(self, image: Image) -> None:
        with self.engine.begin() as conn:
            conn.execute(insert(images).values(**_values(image)))

    def get_by_id(self, image_id: uuid.UUID) -> Image:
        with self.engine.connect() as conn:
            row = conn.execute(select(images).where(images.c.id == image_id)).first()
        if row is None:
            raise ImageNotFoundError(image_id)
        return _image(row)

    def get_all(self) -> list[Image]:
        with self.engine.connect() as conn:
            return [_image(row) for row in conn.execute(select(images))]

    def update(self, image: Image) -> None:
        values = _values(image)
        with self.engine.begin() as conn:
            result = conn.execute(update(images).where(images.c.id == image.id).values(**values))
            if result.rowcount == 0:
                conn.execute(insert(images).values(**values))

    def delete(self, image_id: uuid.UUID) -> None:
        with self.engine.begin() as conn:
            conn.execute(delete(images).where(images.c.id == image_id))