"""Post-deploy smoke checks executed from the app container."""

from __future__ import annotations

import json
import urllib.error
import urllib.request
from datetime import UTC, datetime, timedelta
from uuid import uuid4

BASE_URL = "http://localhost:8000"


def request(
    path: str,
    *,
    method: str = "GET",
    body: dict[str, object] | None = None,
    headers: dict[str, str] | None = None,
    expected: int = 200,
) -> bytes:
    payload = None
    req_headers = {"Accept": "application/json"}
    if headers:
        req_headers.update(headers)
    if body is not None:
        payload = json.dumps(body).encode("utf-8")
        req_headers["Content-Type"] = "application/json"

    request_obj = urllib.request.Request(
        f"{BASE_URL}{path}",
        data=payload,
        method=method,
        headers=req_headers,
    )
    try:
        with urllib.request.urlopen(request_obj, timeout=30) as response:
            content = response.read()
            status = response.getcode()
    except urllib.error.HTTPError as exc:  # pragma: no cover - runtime smoke script
        body_text = exc.read().decode("utf-8", errors="ignore")
        if exc.code == expected:
            return body_text.encode("utf-8")
        raise RuntimeError(f"{method} {path} -> {exc.code}: {body_text}") from exc

    if status != expected:
        raise RuntimeError(f"{method} {path} -> {status}, expected {expected}")
    return content


def _lesson_body(classroom: str, scheduled_time: datetime, duration_minutes: int) -> dict[str, object]:
    return {
        "subject": "Smoke check",
        "teacher": "Deploy bot",
        "classroom": classroom,
        "scheduled_time": scheduled_time.isoformat(),
        "duration_minutes": duration_minutes,
    }


def main() -> None:
    for endpoint in ["/health", "/ready", "/docs", "/metrics"]:
        request(endpoint, expected=200)

    classroom = f"deploy-smoke-{uuid4().hex[:10]}"
    start = datetime(2099, 1, 1, 9, 0, tzinfo=UTC)

    first = json.loads(
        request(
            "/api/v1/lessons",
            method="POST",
            body=_lesson_body(classroom, start, 60),
            expected=201,
        ).decode("utf-8")
    )
    request(
        "/api/v1/lessons",
        method="POST",
        body=_lesson_body(classroom, start + timedelta(minutes=30), 60),
        expected=409,
    )
    touching = json.loads(
        request(
            "/api/v1/lessons",
            method="POST",
            body=_lesson_body(classroom, start + timedelta(hours=1), 60),
            expected=201,
        ).decode("utf-8")
    )

    listed = json.loads(request(f"/api/v1/lessons?classroom={classroom}").decode("utf-8"))
    if [item["id"] for item in listed] != [first["id"], touching["id"]]:
        raise RuntimeError(f"Unexpected lesson listing for {classroom}: {listed}")

    for lesson in (first, touching):
        request(f"/api/v1/lessons/{lesson['id']}", method="DELETE", expected=200)

    print("Smoke checks passed.")


if __name__ == "__main__":
    main()
