from freelancedash.models.notification import Notification
from freelancedash.utils.exceptions import NotFound, PermissionDenied
from freelancedash.utils.transactions import atomic


def notify_user(session, user_id, title, message, notif_type="info", details=None, sender_id=None):
    """Queue an in-app notification on the caller's transaction."""
    notif = Notification(
        user_id=user_id,
        sender_id=sender_id,
        type=notif_type,
        title=title,
        message=message,
        details=details,
    )
    session.add(notif)
    return notif


def get_user_notifications(session, user_id, is_read=None):
    q = session.query(Notification).filter_by(user_id=user_id)
    if is_read is not None:
        q = q.filter_by(is_read=is_read)
    return q.order_by(Notification.created_at.desc())


def mark_notification_read(session, notification_id, user_id):
    notif = session.get(Notification, notification_id)
    if not notif:
        raise NotFound("Notification not found", details={"notificationId": notification_id})
    if notif.user_id != user_id:
        raise PermissionDenied("Not your notification")

    with atomic(session):
        notif.is_read = True
    return notif


def mark_all_read_for_user(session, user_id):
    with atomic(session):
        updated = (
            session.query(Notification)
            .filter_by(user_id=user_id, is_read=False)
            .update({"is_read": True}, synchronize_session=False)
        )
    return updated
