"""Mail source connectors."""

from .base import MailSource
from .graph import GraphMailClient, build_mail_source

__all__ = ["MailSource", "GraphMailClient", "build_mail_source"]
