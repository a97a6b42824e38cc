import time
import uuid

import redis

from ...application.ports.rate_limiter import RateLimiter


class RedisRateLimiter(RateLimiter):
    """Sliding window shared by every worker, one sorted set per key.

    Members are request timestamps; a request over the limit is removed
    again so rejected calls do not extend the block, the same as the
    in-memory limiter.
    """

    def __init__(self, url: str, prefix: str = "rl:") -> None:
        self.client = redis.Redis.from_url(url)
        self.prefix = prefix

    def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        rk = f"{self.prefix}{key}:{window_seconds}"
        now = time.time()
        member = f"{now}:{uuid.uuid4().hex}"

        pipe = self.client.pipeline()
        # scores at or before the window start have expired
        pipe.zremrangebyscore(rk, "-inf", now - window_seconds)
        pipe.zadd(rk, {member: now})
        pipe.zcard(rk)
        pipe.expire(rk, window_seconds)
        _, _, count, _ = pipe.execute()

        if int(count) > int(max_requests):
            self.client.zrem(rk, member)
            return False
        return True
