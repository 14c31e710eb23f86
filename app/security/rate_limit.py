"""
Per-IP request limits for the admin API.

Each limit is a shared slowapi limit: every route decorated with the same
limit draws from one bucket per client IP. Rejections raise slowapi's
RateLimitExceeded, which app.errors renders as a RATE_LIMITED envelope.
"""
from slowapi import Limiter

from app.config import settings
from app.security.rbac import client_ip


def per_window(count: int, seconds: int) -> str:
    return f"{count} per {seconds} seconds"


# Keyed by X-Forwarded-For, then X-Real-IP, then the peer address
limiter = Limiter(key_func=client_ip, strategy="fixed-window")

auth_rate_limit = limiter.shared_limit(
    per_window(settings.auth_rate_limit, settings.auth_rate_window_seconds),
    scope="auth",
    error_message="Too many authentication attempts, please try again later.",
)

ai_rate_limit = limiter.shared_limit(
    per_window(settings.ai_rate_limit, settings.ai_rate_window_seconds),
    scope="ai",
    error_message="AI generation rate limit exceeded, please slow down.",
)

export_rate_limit = limiter.shared_limit(
    per_window(settings.export_rate_limit, settings.export_rate_window_seconds),
    scope="export",
    error_message="Export rate limit exceeded, please try again later.",
)
