"""HTTP routes and cross-origin policy of the API."""

from __future__ import annotations

from datetime import timedelta

from flask import Flask, Response, request

from .handler import ImageHandler

ALLOW_METHODS = ("GET", "POST", "PUT", "DELETE", "OPTIONS")
ALLOW_HEADERS = ("Origin", "Content-Type", "Accept", "Authorization")
PREFLIGHT_MAX_AGE = timedelta(hours=12)


def _is_cross_origin() -> bool:
    origin = request.headers.get("Origin", "")
    if not origin:
        return False
    return origin not in (f"http://{request.host}", f"https://{request.host}")


def _install_cors(app: Flask) -> None:
    @app.before_request
    def answer_preflight() -> Response | None:
        if request.method != "OPTIONS" or not _is_cross_origin():
            return None
        response = app.make_response(("", 204))
        response.headers["Access-Control-Allow-Methods"] = ",".join(ALLOW_METHODS)
        response.headers["Access-Control-Allow-Headers"] = ",".join(ALLOW_HEADERS)
        response.headers["Access-Control-Max-Age"] = str(int(PREFLIGHT_MAX_AGE.total_seconds()))
        return response

    @app.after_request
    def allow_origin(response: Response) -> Response:
        if _is_cross_origin():
            response.headers["Access-Control-Allow-Origin"] = "*"
        return response


def setup_router(image_handler: ImageHandler) -> Flask:
    """Build the application with every API route wired to the handler."""
    app = Flask(__name__)
    _install_cors(app)

    images = "/api/v1/images"
    routes = [
        (f"{images}/upload", "POST", image_handler.upload_image),
        (f"{images}/", "GET", image_handler.get_all_images),
        (f"{images}/<image_id>", "GET", image_handler.get_image_by_id),
        (f"{images}/<image_id>/url", "GET", image_handler.get_image_url),
        (f"{images}/<image_id>", "PUT", image_handler.update_image),
        (f"{images}/<image_id>/ground-truth", "PUT", image_handler.update_ground_truth),
        (f"{images}/<image_id>", "DELETE", image_handler.delete_image),
        (f"{images}/<image_id>/predict", "GET", image_handler.predict_image),
        (f"{images}/<image_id>/predict/model", "GET", image_handler.get_predict_models),
        ("/api/v1/predict/notify", "POST", image_handler.predict_notify),
    ]
    for path, method, view in routes:
        app.add_url_rule(path, endpoint=view.__name__, view_func=view, methods=[method])
    return app