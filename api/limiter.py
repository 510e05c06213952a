"""
api/limiter.py -- The process-wide slowapi Limiter.

api/main.py attaches it to app.state and mounts SlowAPIMiddleware;
api/routes/auth.py decorates /login and /register with
@limiter.limit(Settings.login_rate_limit).

Counters live in memory and are keyed by client IP, so limits are per
process. One shared instance is required: a second Limiter would keep its
own counters and never see the first one's hits.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://", strategy="fixed-window")
