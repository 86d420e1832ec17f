"""
Notifications app: multi-channel dispatch and delivery outbox.

This app provides:
- Notification, BroadcastRecord, DeliveryOutbox and NotificationTemplate models
- NotificationDispatcher for fanning a send out into per-user, per-channel records
- TemplateRenderer for {{token}} placeholder rendering
- OutboxWorker and a Celery beat task for asynchronous delivery with
  exponential-backoff retry

Usage:
    from notifications.services import build_dispatcher

    result = build_dispatcher().send_direct(
        target_user_ids=[user_id],
        channels=["in_app", "email"],
        title="Hello {{name}}",
        body="Your results are out.",
    )

    if result.success:
        broadcast_id = result.data
"""
