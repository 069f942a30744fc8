"""ASGI middleware."""

from schoolhub.middleware.request_id import RequestIDMiddleware

__all__ = ["RequestIDMiddleware"]
