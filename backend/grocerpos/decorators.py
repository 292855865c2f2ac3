# Overview: Request, permission and rate-limit decorators for API routes.

from functools import wraps
from flask import current_app, g, jsonify, request

from .services import session_service, permission_service


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def client_ip() -> str:
    """Rate-limit key. Client-supplied proxy headers count only when TRUST_PROXY_HEADERS is set."""
    if current_app.config.get("TRUST_PROXY_HEADERS"):
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip.strip()
    return request.remote_addr or "unknown"


def require_auth(f):
    """
    Require a live bearer token.

    Sets g.current_user (the authenticated User) and g.bearer_token.
    Returns 401 for a missing, unknown, expired or revoked token or a
    deactivated user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        user = session_service.validate_session(token)
        if user is None:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = user
        g.bearer_token = token
        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require the authenticated user's role to grant permission_code."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not hasattr(g, "current_user"):
                return jsonify({"error": "Authentication required"}), 401

            if not permission_service.has_permission(g.current_user.role, permission_code):
                current_app.logger.info(
                    "Permission denied: user=%s role=%s permission=%s path=%s",
                    g.current_user.id, g.current_user.role, permission_code, request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def rate_limited(bucket: str):
    """
    Count the request against the app's RateLimiter bucket for the client IP.

    429 with Retry-After when the window is exhausted; X-RateLimit-* headers
    on every response.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            limiter = current_app.extensions["rate_limiter"]
            result = limiter.check(bucket, client_ip())
            headers = {
                "X-RateLimit-Limit": str(result.limit),
                "X-RateLimit-Remaining": str(result.remaining),
            }

            if not result.allowed:
                retry_after = result.retry_after(limiter.now())
                headers["Retry-After"] = str(retry_after)
                return jsonify({
                    "error": "Too many requests. Please try again later.",
                    "retry_after": retry_after,
                }), 429, headers

            response = current_app.make_response(f(*args, **kwargs))
            response.headers.update(headers)
            return response

        return decorated_function
    return decorator
