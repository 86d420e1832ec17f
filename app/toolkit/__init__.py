"""
Toolkit - Delivery-side services and collaborator interfaces.

This app provides the pieces the notification core talks to but doesn't own:
- EmailService: Email sending through Django's email backend
- Protocols: EmailSender, UserDirectory and TemplateStore interfaces

Key components:
    - services/email.py: EmailService class
    - protocols.py: Collaborator interfaces

Usage:
    from toolkit.services.email import EmailService
    from toolkit.protocols import EmailSender, UserDirectory

Note:
    - This app has no models.
    - For generic infrastructure (BaseModel, ServiceResult), see core/
"""
