"""Email service layer.

- EmailService: Send, read, search and manage email
- EmailServiceFactory: Builds a service and guarantees cleanup
"""

from .email_service import EmailService, build_search_criteria
from .factory import EmailServiceFactory

__all__ = [
    "EmailService",
    "EmailServiceFactory",
    "build_search_criteria",
]
