"""
Domain services. Importing the package registers the outbox handlers.
"""
from garage_api.services import outbox, status_sync, goods_requests  # noqa: F401
