"""Forwarding of prediction results to a webhook."""

from __future__ import annotations

import json
from typing import Any

import httpx


def notify_predict_result(webhook_url: str, payload: Any) -> None:
    """POST the payload as JSON; raises on transport failure."""
    body = json.dumps(payload).encode()
    httpx.post(webhook_url, content=body, headers={"Content-Type": "application/json"})