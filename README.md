# labelplatform

Building blocks for the HTTP API of an image labelling platform. Screenshots
are kept in S3-compatible object storage (such as MinIO). Their metadata,
ground truth, predicted labels and evaluation scores are kept in a SQL
database (PostgreSQL, or SQLite for local use). Prediction requests are fanned
out to model worker queues in Redis, and worker results are forwarded to a
webhook.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `labelplatform.entity`: the `Image` dataclass. It has `id`, `name`,
  `minio_path`, `ground_truth`, `predicted_labels`, `evaluation_scores`
  (raw JSON text), `created_at` and `updated_at`. It also has
  `table_name()`, which returns `"images"`, and `to_dict()`.
- `labelplatform.repository`: the abstract `ImageRepository` and
  `ImageNotFoundError`.
- `labelplatform.sql_repository`: `SqlImageRepository`, which works over a
  SQLAlchemy engine, and `create_schema(engine)`, which creates the `images`
  table if it is missing.
- `labelplatform.database`: `build_database_url(env)` builds the URL from
  `DB_HOST`, `DB_PORT`, `DB_USER`, `DB_PASSWORD`, `DB_NAME` and
  `DB_SSL_MODE`. `new_postgres_connection(env)` returns an engine after it has
  checked that the database answers. If it cannot connect, it raises
  `ConnectionError`.
- `labelplatform.storage`: `MinioClient`, a client for a single bucket that
  signs its requests with AWS signature v4. Its methods are `bucket_exists`,
  `make_bucket`, `ensure_bucket`, `put_object`, `get_object`,
  `remove_object` and `presigned_get_object`. The expiry given to
  `presigned_get_object` must be between 1 second and 7 days.
  `new_minio_client(env)` builds a client from `MINIO_ENDPOINT`,
  `MINIO_ACCESS_KEY`, `MINIO_SECRET_KEY`, `MINIO_BUCKET_NAME` and
  `MINIO_USE_SSL`, and creates the bucket if it is missing. Rejected requests
  raise `StorageError`.
- `labelplatform.queues`: the queue names `label-platform-queue-gpt`,
  `-claude`, `-gemini` and `-result`. `new_redis_connection(client=None)`
  pings Redis and makes sure every queue exists. When no client is given, it
  builds one from `REDIS_HOST` (`host:port`, default `localhost:6379`) and
  `REDIS_PASSWORD`.
- `labelplatform.webhook`: `notify_predict_result(webhook_url, payload)`
  POSTs the payload as JSON.
- `labelplatform.usecase`: `UploadedFile`, the abstract `ImageService`, and
  `ImageUseCase`, which implements `ImageService` over a repository and a
  storage client. An uploaded file is stored under
  `screenshots/<uuid>-<original name>`, and the image's id is that same UUID.
- `labelplatform.handler`: `ImageHandler`, the Flask view methods, and
  `PredictNotifyRequest`.
- `labelplatform.router`: `setup_router(image_handler)` returns a Flask
  application with every route registered and CORS open to every origin.

## HTTP API

All routes are under `/api/v1`.

| Method | Path | Purpose |
|---|---|---|
| `POST` | `/images/upload` | Multipart upload. Field `image` holds an `image/*` file of at most 10 MB. The optional field `ground_truth` holds a JSON object. |
| `GET` | `/images/` | Lists all images, each with a signed URL. Returns `null` when there are none. |
| `GET` | `/images/<id>` | Returns one image with its signed URL. |
| `GET` | `/images/<id>/url` | Returns the signed URL alone, valid for one hour. |
| `PUT` | `/images/<id>` | Takes a JSON body with `predicted_labels` and/or `evaluation_scores`. |
| `PUT` | `/images/<id>/ground-truth` | Takes a JSON body with `ground_truth`. |
| `DELETE` | `/images/<id>` | Removes the image and its stored file. |
| `GET` | `/images/<id>/predict` | Pushes the image, base64-encoded, to the GPT, Claude and Gemini queues. This is allowed once per image every five minutes; otherwise it returns 429 with `retry_after_seconds`. |
| `GET` | `/images/<id>/predict/model` | Returns the image's predicted labels. |
| `POST` | `/predict/notify` | Worker callback with `image_id`, `model` and `result`. It is forwarded to the handler's `webhook_url`, or to `WEBHOOK_URL` if none was given. |

## Putting it together

```python
import redis
from sqlalchemy import create_engine

from labelplatform.handler import ImageHandler
from labelplatform.queues import new_redis_connection
from labelplatform.router import setup_router
from labelplatform.sql_repository import SqlImageRepository, create_schema
from labelplatform.storage import MinioClient
from labelplatform.usecase import ImageUseCase

engine = create_engine("sqlite://")
create_schema(engine)

storage = MinioClient(
    "localhost:9000",
    access_key="placeholder",
    secret_key="secret",
    bucket="images",
)
storage.ensure_bucket()

use_case = ImageUseCase(SqlImageRepository(engine), storage)
redis_client = new_redis_connection(redis.Redis())
app = setup_router(ImageHandler(use_case, redis_client))
app.run(port=8080)
```

## What it does not do

The package has no command-line entry point. It does not read a `.env` file
and does not assemble the application from the environment on its own. You
wire the pieces together yourself, as in the example above, and serve the
Flask application returned by `setup_router` with Flask's development server
or any WSGI server.