# Models package init
"""
FormRelay Backend — ORM Models
================================

Importing this package registers every table with Base.metadata, which
Alembic and the test fixtures rely on.
"""

from formrelay.models.user import ActivationCode, User, UserRole
from formrelay.models.form import Assignment, Form, FormPrivacy, FormResponse
from formrelay.models.template import Template
from formrelay.models.notification import Notification, NotificationType

__all__ = [
    "ActivationCode",
    "Assignment",
    "Form",
    "FormPrivacy",
    "FormResponse",
    "Notification",
    "NotificationType",
    "Template",
    "User",
    "UserRole",
]
