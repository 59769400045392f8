import json
import uuid
from datetime import datetime

import pytest
from sqlalchemy import create_engine

from labelplatform.entity import Image
from labelplatform.repository import ImageNotFoundError
from labelplatform.sql_repository import SqlImageRepository, create_schema


@pytest.fixture
def repo():
    engine = create_engine("sqlite://")
    create_schema(engine)
    return SqlImageRepository(engine)


def make_image(**kw):
    now = datetime(2024, 1, 1, 12, 0, 0)
    return Image(name="a.png", minio_path="screenshots/a.png", created_at=now, updated_at=now, **kw)


def test_create_and_get(repo):
    image = make_image(ground_truth=json.dumps({"label": "button"}))
    repo.create(image)
    assert repo.get_by_id(image.id) == image


def test_get_missing_raises(repo):
    with pytest.raises(ImageNotFoundError):
        repo.get_by_id(uuid.uuid4())


def test_get_all(repo):
    first, second = make_image(), make_image()
    repo.create(first)
    repo.create(second)
    assert {i.id for i in repo.get_all()} == {first.id, second.id}


def test_update_saves_fields(repo):
    image = make_image()
    repo.create(image)
    image.predicted_labels = json.dumps({"gpt": {"label": "button"}})
    repo.update(image)
    stored = repo.get_by_id(image.id)
    assert json.loads(stored.predicted_labels) == {"gpt": {"label": "button"}}
    assert stored.ground_truth is None


def test_update_inserts_when_missing(repo):
    image = make_image()
    repo.update(image)
    assert repo.get_by_id(image.id) == image


def test_delete(repo):
    image = make_image()
    repo.create(image)
    repo.delete(image.id)
    repo.delete(image.id)
    assert repo.get_all() == []