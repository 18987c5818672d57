from bounce.api.middleware.preflight import PreflightMiddleware
from bounce.api.middleware.request_id import RequestIdMiddleware

__all__ = ["PreflightMiddleware", "RequestIdMiddleware"]
