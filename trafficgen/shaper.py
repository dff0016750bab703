from __future__ import annotations

import random

from .models import RequestShape

USER_AGENTS = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0 Safari/537.36",
    "curl/8.7.1",
    "k6/0.49 (demo)",
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_3 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1",
)

# Weighted path distribution, in percent. Heavier on the product page and its
# API, plus direct service calls, a little login and a rare cache-buster.
PATH_WEIGHTS = (
    ("productpage", 40),
    ("products_api", 22),
    ("details", 14),
    ("reviews", 12),
    ("ratings", 8),
    ("login", 2),
    ("cache_buster", 2),
)

VALID_PRODUCT_ID = 0
PRODUCT_ID_RANGE = 20

# Think time
DISTRACTED_ODDS = 20  # 1 in 20 requests is followed by a long pause
DISTRACTED_SLEEP = 1.0
JITTER_MIN = 0.020
JITTER_MAX = 0.250

# Burst mode
BURST_EVERY = 50
BURST_MIN = 10
BURST_MAX = 34


class RequestShaper:
    """Randomized request shaping.

    Every decision is drawn from the instance's own ``random.Random`` so a
    seeded shaper replays the same traffic. Passing ``fixed_path`` disables
    path selection (identity and request id are still randomized).
    """

    def __init__(self, rng: random.Random | None = None, fixed_path: str | None = None):
        self.rng = rng or random.Random()
        self.fixed_path = fixed_path
        self._kinds = [kind for kind, _ in PATH_WEIGHTS]
        self._weights = [weight for _, weight in PATH_WEIGHTS]

    def request_id(self) -> str:
        # 96 random bits as 24 hex chars
        return f"{self.rng.getrandbits(96):024x}"

    def pick_user_agent(self) -> str:
        return self.rng.choice(USER_AGENTS)

    def pick_kind(self) -> str:
        return self.rng.choices(self._kinds, weights=self._weights, k=1)[0]

    def pick_path(self) -> str:
        if self.fixed_path is not None:
            return self.fixed_path
        kind = self.pick_kind()
        if kind == "productpage":
            return "/productpage"
        if kind == "products_api":
            # Mostly the valid product; sprinkle some invalid ids for real noise.
            if self.rng.randrange(10) == 0:
                return f"/api/v1/products/{self.rng.randrange(PRODUCT_ID_RANGE)}"
            return f"/api/v1/products/{VALID_PRODUCT_ID}"
        if kind == "details":
            return "/details/0"
        if kind == "reviews":
            return "/reviews/0"
        if kind == "ratings":
            return "/ratings/0"
        if kind == "login":
            return "/login"
        return f"/static/nonexistent.css?cb={self.request_id()}"

    def shape(self) -> RequestShape:
        return RequestShape(
            path=self.pick_path(),
            user_agent=self.pick_user_agent(),
            request_id=self.request_id(),
        )

    def think_time(self) -> float:
        """Seconds to pause after a request: mostly short, sometimes a full second."""
        if self.rng.randrange(DISTRACTED_ODDS) == 0:
            return DISTRACTED_SLEEP
        return self.rng.uniform(JITTER_MIN, JITTER_MAX)

    def burst_size(self, iteration: int) -> int:
        """Number of back-to-back extra requests after ``iteration`` (0 when no burst)."""
        if iteration <= 0 or iteration % BURST_EVERY != 0:
            return 0
        return self.rng.randint(BURST_MIN, BURST_MAX)
