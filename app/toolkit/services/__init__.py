"""
Service classes for toolkit app.

This package contains service classes for delivery operations:
- EmailService: Email sending through Django's email backend

Usage:
    from toolkit.services import EmailService
    from toolkit.services.email import EmailService  # Alternative import
"""

from toolkit.services.email import EmailService

__all__ = ["EmailService"]
