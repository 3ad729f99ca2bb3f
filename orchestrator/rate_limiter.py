"""
Token bucket rate limiting, per user and global.

Every check consults the global bucket first and then the caller's bucket. A
caller throttled by its own bucket gives its global token back, so one noisy
user cannot drain the shared pool.
"""
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional


@dataclass
class BucketConfig:
    capacity: int
    refill_rate: int  # tokens per interval
    refill_interval: float = 60.0  # seconds


@dataclass
class TokenBucket:
    capacity: int
    tokens: float
    refill_rate: int
    refill_interval: float
    last_refill: float


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: int  # epoch seconds
    retry_after: Optional[int] = None


@dataclass
class RateLimitMetrics:
    total_requests: int = 0
    throttled_requests: int = 0


@dataclass
class RateLimiter:
    per_user: BucketConfig
    global_: BucketConfig
    clock: Callable[[], float] = time.time
    user_buckets: Dict[str, TokenBucket] = field(default_factory=dict)
    global_bucket: Optional[TokenBucket] = None
    metrics: RateLimitMetrics = field(default_factory=RateLimitMetrics)

    def _new_bucket(self, config: BucketConfig) -> TokenBucket:
        return TokenBucket(
            capacity=config.capacity,
            tokens=config.capacity,
            refill_rate=config.refill_rate,
            refill_interval=config.refill_interval,
            last_refill=self.clock(),
        )

    def _global(self) -> TokenBucket:
        if self.global_bucket is None:
            self.global_bucket = self._new_bucket(self.global_)
        return self.global_bucket

    def _user(self, user_id: str) -> TokenBucket:
        bucket = self.user_buckets.get(user_id)
        if bucket is None:
            bucket = self._new_bucket(self.per_user)
            self.user_buckets[user_id] = bucket
        return bucket

    def _refill(self, bucket: TokenBucket) -> None:
        now = self.clock()
        intervals = math.floor((now - bucket.last_refill) / bucket.refill_interval)
        if intervals > 0:
            bucket.tokens = min(bucket.capacity, bucket.tokens + intervals * bucket.refill_rate)
            bucket.last_refill = now

    def _reset_time(self, bucket: TokenBucket) -> float:
        if bucket.tokens >= 1:
            return self.clock()
        if bucket.refill_rate <= 0:
            return bucket.last_refill + bucket.refill_interval
        intervals_needed = math.ceil((1 - bucket.tokens) / bucket.refill_rate)
        return bucket.last_refill + intervals_needed * bucket.refill_interval

    def _throttled(self, bucket: TokenBucket) -> RateLimitResult:
        self.metrics.throttled_requests += 1
        reset_at = self._reset_time(bucket)
        retry_after = max(1, math.ceil(reset_at - self.clock()))
        return RateLimitResult(allowed=False, remaining=0, reset_at=math.ceil(reset_at), retry_after=retry_after)

    def check_rate_limit(self, user_id: str) -> RateLimitResult:
        self.metrics.total_requests += 1
        global_bucket = self._global()
        user_bucket = self._user(user_id)
        self._refill(global_bucket)
        self._refill(user_bucket)

        if global_bucket.tokens < 1:
            logging.warning("Global rate limit exhausted (user=%s)", user_id)
            return self._throttled(global_bucket)
        global_bucket.tokens -= 1

        if user_bucket.tokens < 1:
            global_bucket.tokens = min(global_bucket.capacity, global_bucket.tokens + 1)
            logging.info("Per-user rate limit hit (user=%s)", user_id)
            return self._throttled(user_bucket)
        user_bucket.tokens -= 1

        return RateLimitResult(
            allowed=True,
            remaining=int(user_bucket.tokens),
            reset_at=math.ceil(self._reset_time(user_bucket)),
        )

    def get_remaining_tokens(self, user_id: str) -> int:
        bucket = self._user(user_id)
        self._refill(bucket)
        return int(bucket.tokens)

    def get_global_remaining(self) -> int:
        bucket = self._global()
        self._refill(bucket)
        return int(bucket.tokens)

    def get_metrics(self) -> Dict[str, int]:
        return {
            "totalRequests": self.metrics.total_requests,
            "throttledRequests": self.metrics.throttled_requests,
        }

    def reset_metrics(self) -> None:
        self.metrics = RateLimitMetrics()

    def clear_buckets(self) -> None:
        self.user_buckets.clear()
        self.global_bucket = None


def rate_limiter_from_config(cfg, clock: Callable[[], float] = time.time) -> RateLimiter:
    interval = cfg.rate_limit_refill_interval_sec
    return RateLimiter(
        per_user=BucketConfig(cfg.rate_limit_per_user_capacity, cfg.rate_limit_per_user_refill_rate, interval),
        global_=BucketConfig(cfg.rate_limit_global_capacity, cfg.rate_limit_global_refill_rate, interval),
        clock=clock,
    )


def rate_limit_headers(result: RateLimitResult, limit: int) -> Dict[str, str]:
    headers = {
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset_at),
    }
    if not result.allowed:
        headers["Retry-After"] = str(result.retry_after or 60)
    return headers
