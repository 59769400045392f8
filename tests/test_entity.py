import json
import uuid
from datetime import datetime

from labelplatform.entity import Image


def test_table_name():
    assert Image(name="", minio_path="").table_name() == "images"


def test_creation():
    image_id = uuid.uuid4()
    now = datetime.now()
    gt = json.dumps({"label": "button"})
    pl = json.dumps({"model1": {"label": "button", "confidence": 0.95}})
    ev = json.dumps({"accuracy": 0.92})
    image = Image(
        id=image_id,
        name="test-image.png",
        minio_path="test-path.png",
        ground_truth=gt,
        predicted_labels=pl,
        evaluation_scores=ev,
        created_at=now,
        updated_at=now,
    )
    assert image.id == image_id
    assert image.name == "test-image.png"
    assert image.minio_path == "test-path.png"
    assert image.ground_truth == gt
    assert image.predicted_labels == pl
    assert image.evaluation_scores == ev
    assert image.created_at == now
    assert image.updated_at == now


def test_to_dict_decodes_json():
    now = datetime.now()
    image = Image(
        name="test-image.png",
        minio_path="test-path.png",
        ground_truth=json.dumps({"label": "button"}),
        created_at=now,
        updated_at=now,
    )
    data = image.to_dict()
    assert data["id"] == str(image.id)
    assert data["ground_truth"] == {"label": "button"}
    assert data["predicted_labels"] is None
    assert data["created_at"] == now.isoformat()