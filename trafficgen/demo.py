"""Stand-in Bookinfo target for running the generator locally.

    uvicorn trafficgen.demo:app --port 8000
    TARGET_URLS=east=http://127.0.0.1:8000 trafficgen --target east
"""
from __future__ import annotations

import random
import time
from collections import Counter

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse

from .config import APP_NAME

VALID_ID = 0

app = FastAPI(title=f"{APP_NAME} demo target")


class HitCounter:
    """Per-path hit counts, kept in memory for the life of the process."""

    def __init__(self):
        self.hits: Counter[str] = Counter()

    def record(self, path: str) -> None:
        self.hits[path] += 1

    def snapshot(self) -> dict[str, int]:
        return dict(self.hits)

    def reset(self) -> None:
        self.hits.clear()


hits = HitCounter()


@app.middleware("http")
async def count_hits(request: Request, call_next):
    # Health and counters stay out of the numbers.
    if not request.url.path.startswith("/api/") or request.url.path.startswith("/api/v1/"):
        hits.record(request.url.path)
    return await call_next(request)


def _check_id(item_id: int) -> None:
    if item_id != VALID_ID:
        raise HTTPException(status_code=404, detail=f"item {item_id} not found")


# --- Bookinfo-like routes ---
@app.get("/productpage", response_class=HTMLResponse)
def productpage():
    time.sleep(random.uniform(0.005, 0.02))
    return "<html><head><title>Simple Bookstore App</title></head><body>The Comedy of Errors</body></html>"


@app.get("/api/v1/products/{product_id}")
def product(product_id: int):
    _check_id(product_id)
    return {"id": product_id, "title": "The Comedy of Errors"}


@app.get("/details/{item_id}")
def details(item_id: int):
    _check_id(item_id)
    return {"id": item_id, "author": "William Shakespeare", "type": "paperback", "pages": 200}


@app.get("/reviews/{item_id}")
def reviews(item_id: int):
    _check_id(item_id)
    return {"id": item_id, "reviews": [{"reviewer": "Reviewer1"}, {"reviewer": "Reviewer2"}]}


@app.get("/ratings/{item_id}")
def ratings(item_id: int):
    _check_id(item_id)
    return {"id": item_id, "ratings": {"Reviewer1": 5, "Reviewer2": 4}}


@app.get("/login")
def login():
    return {"ok": True, "message": "login page"}


# --- API routes ---
@app.get("/api/health")
def health():
    return {"ok": True}


@app.get("/api/hits")
def api_hits():
    data = hits.snapshot()
    return {"total": sum(data.values()), "paths": data}


@app.post("/api/hits/reset")
def reset_hits():
    hits.reset()
    return {"ok": True, "message": "hits reset"}
