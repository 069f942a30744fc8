"""Rate limiter instance for SlowAPI.

Shared so both main (app.state.limiter) and route modules can use the same
instance without circular imports. Join attempts are limited tightly so
join codes cannot be guessed by brute force.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)

# Single source of truth for rate limit strings and decorators.
CREATE_SCHOOL_LIMIT = "5/minute"
JOIN_SCHOOL_LIMIT = "10/minute"
ONBOARDING_WRITE_LIMIT = "30/minute"
MESSAGE_SEND_LIMIT = "60/minute"

limit_create_school = limiter.limit(CREATE_SCHOOL_LIMIT)
limit_join_school = limiter.limit(JOIN_SCHOOL_LIMIT)
limit_onboarding_writes = limiter.limit(ONBOARDING_WRITE_LIMIT)
limit_message_send = limiter.limit(MESSAGE_SEND_LIMIT)
