import pytest
from pydantic import ValidationError

from pitstop.core.errors import ApiError, ErrorKind
from pitstop.routes.notification_routes import (
    NotificationCreateRequest,
    NotificationUpdateRequest,
    create_notification,
    delete_notification,
    get_notification,
    list_notifications,
    update_notification,
)


def notify(db, admin_user, user=None, **overrides):
    values = {
        'title': 'Service reminder',
        'message': 'Your car is due for an oil change.',
        'type': 'reminder',
        'user_id': user.id if user else None,
    }
    values.update(overrides)
    return create_notification(data=NotificationCreateRequest(**values), current_user=admin_user, db=db)


def inbox(db, current_user, **filters):
    params = {'page': 1, 'limit': 10, 'notification_type': None, 'is_read': None, 'user_id': None}
    params.update(filters)
    return list_notifications(**params, current_user=current_user, db=db)


def test_notification_needs_recipient_or_public_flag() -> None:
    with pytest.raises(ValidationError):
        NotificationCreateRequest(title='Hi', message='Hello', type='info')
    with pytest.raises(ValidationError):
        NotificationCreateRequest(title='  ', message='Hello', type='info', is_public=True)


def test_create_notification_requires_existing_user(db, admin_user) -> None:
    with pytest.raises(ApiError) as exception_info:
        notify(db, admin_user, user_id=999)

    assert exception_info.value.kind is ErrorKind.NOT_FOUND
    assert exception_info.value.message == 'User not found'


def test_inbox_holds_own_and_public_notifications(db, admin_user, customer_user, other_customer) -> None:
    own = notify(db, admin_user, customer_user)
    broadcast = notify(db, admin_user, title='Holiday hours', type='announcement', is_public=True)
    notify(db, admin_user, other_customer)

    listed = inbox(db, customer_user)
    announcements = inbox(db, customer_user, notification_type='announcement')
    admin_view = inbox(db, admin_user, user_id=other_customer.id)

    assert sorted(item.id for item in listed.notifications) == sorted([own.id, broadcast.id])
    assert [item.id for item in announcements.notifications] == [broadcast.id]
    assert [item.user_id for item in admin_view.notifications] == [other_customer.id]
    assert own.created_by == admin_user.id


def test_recipient_marks_notification_read(db, admin_user, customer_user) -> None:
    notification = notify(db, admin_user, customer_user)

    updated = update_notification(
        notification_id=notification.id,
        data=NotificationUpdateRequest(is_read=True),
        current_user=customer_user,
        db=db,
    )
    unread = inbox(db, customer_user, is_read=False)

    assert updated.is_read is True
    assert unread.notifications == []


def test_recipient_cannot_rewrite_notification(db, admin_user, customer_user) -> None:
    notification = notify(db, admin_user, customer_user)

    with pytest.raises(ApiError) as exception_info:
        update_notification(
            notification_id=notification.id,
            data=NotificationUpdateRequest(title='Free service'),
            current_user=customer_user,
            db=db,
        )

    assert exception_info.value.kind is ErrorKind.FORBIDDEN
    assert exception_info.value.message == 'Access denied'


def test_private_notification_hidden_from_other_users(db, admin_user, customer_user, other_customer) -> None:
    private = notify(db, admin_user, customer_user)
    public = notify(db, admin_user, is_public=True)

    with pytest.raises(ApiError) as exception_info:
        get_notification(notification_id=private.id, current_user=other_customer, db=db)

    assert exception_info.value.kind is ErrorKind.FORBIDDEN
    assert get_notification(notification_id=public.id, current_user=other_customer, db=db).id == public.id


def test_delete_notification_by_recipient(db, admin_user, customer_user, other_customer) -> None:
    notification = notify(db, admin_user, customer_user)

    with pytest.raises(ApiError) as stranger:
        delete_notification(notification_id=notification.id, current_user=other_customer, db=db)
    response = delete_notification(notification_id=notification.id, current_user=customer_user, db=db)

    assert stranger.value.kind is ErrorKind.FORBIDDEN
    assert response.message == 'Notification deleted successfully'
    with pytest.raises(ApiError) as missing:
        get_notification(notification_id=notification.id, current_user=customer_user, db=db)
    assert missing.value.kind is ErrorKind.NOT_FOUND
