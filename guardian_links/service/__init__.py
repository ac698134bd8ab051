"""Link service orchestration helpers."""

from .factory import create_link_service, create_sql_link_service
from .link_service import LinkService

__all__ = ["LinkService", "create_link_service", "create_sql_link_service"]
