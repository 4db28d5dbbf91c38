import pytest

from pitstop.core.errors import ApiError, ErrorKind
from pitstop.models.group import Group, GroupMessage
from pitstop.routes.group_routes import (
    GroupCreateRequest,
    GroupMessageCreateRequest,
    GroupUpdateRequest,
    create_group,
    delete_group,
    delete_group_message,
    get_group,
    list_group_messages,
    list_groups,
    post_group_message,
    update_group,
)


@pytest.fixture
def garage_group(db, customer_user, other_customer) -> Group:
    return create_group(
        data=GroupCreateRequest(name='Weekend mechanics', member_ids=[other_customer.id]),
        current_user=customer_user,
        db=db,
    )


def test_create_group_makes_creator_admin(garage_group, customer_user, other_customer) -> None:
    roles = {member.user_id: member.role for member in garage_group.members}

    assert roles == {customer_user.id: 'ADMIN', other_customer.id: 'MEMBER'}


def test_create_group_requires_name(db, customer_user) -> None:
    with pytest.raises(ApiError) as exception_info:
        create_group(data=GroupCreateRequest(name='  '), current_user=customer_user, db=db)

    assert exception_info.value.kind is ErrorKind.INVALID_ARGUMENT
    assert exception_info.value.message == 'Name is required'


def test_create_group_rejects_unknown_members(db, customer_user) -> None:
    with pytest.raises(ApiError) as exception_info:
        create_group(data=GroupCreateRequest(name='Solo', member_ids=[999]), current_user=customer_user, db=db)

    assert exception_info.value.kind is ErrorKind.INVALID_ARGUMENT


def test_list_groups_only_returns_memberships(db, garage_group, admin_user, other_customer) -> None:
    assert [group.id for group in list_groups(search=None, current_user=other_customer, db=db)] == [garage_group.id]
    assert list_groups(search=None, current_user=admin_user, db=db) == []
    assert list_groups(search='nothing', current_user=other_customer, db=db) == []


def test_get_group_hidden_from_non_members(db, garage_group, admin_user) -> None:
    with pytest.raises(ApiError) as exception_info:
        get_group(group_id=garage_group.id, current_user=admin_user, db=db)

    assert exception_info.value.kind is ErrorKind.NOT_FOUND
    assert exception_info.value.message == 'Group not found'


def test_update_group_requires_group_admin(db, garage_group, customer_user, other_customer) -> None:
    with pytest.raises(ApiError) as exception_info:
        update_group(
            group_id=garage_group.id,
            data=GroupUpdateRequest(name='Renamed'),
            current_user=other_customer,
            db=db,
        )
    assert exception_info.value.kind is ErrorKind.FORBIDDEN

    updated = update_group(
        group_id=garage_group.id,
        data=GroupUpdateRequest(name='Renamed'),
        current_user=customer_user,
        db=db,
    )
    assert updated.name == 'Renamed'


def test_update_group_requires_name(db, garage_group, customer_user) -> None:
    with pytest.raises(ApiError) as exception_info:
        update_group(group_id=garage_group.id, data=GroupUpdateRequest(), current_user=customer_user, db=db)

    assert exception_info.value.kind is ErrorKind.INVALID_ARGUMENT


def test_delete_group_removes_messages(db, garage_group, customer_user) -> None:
    post_group_message(
        group_id=garage_group.id,
        data=GroupMessageCreateRequest(content='Anyone have a torque wrench?'),
        current_user=customer_user,
        db=db,
    )

    delete_group(group_id=garage_group.id, current_user=customer_user, db=db)

    assert db.query(Group).count() == 0
    assert db.query(GroupMessage).count() == 0


def test_group_messages_page_with_cursor(db, garage_group, customer_user, other_customer) -> None:
    for index in range(5):
        post_group_message(
            group_id=garage_group.id,
            data=GroupMessageCreateRequest(content=f'message {index}'),
            current_user=customer_user,
            db=db,
        )

    first_page = list_group_messages(
        group_id=garage_group.id, limit=2, cursor=None, current_user=other_customer, db=db
    )
    second_page = list_group_messages(
        group_id=garage_group.id, limit=2, cursor=first_page.next_cursor, current_user=other_customer, db=db
    )
    last_page = list_group_messages(
        group_id=garage_group.id, limit=2, cursor=second_page.next_cursor, current_user=other_customer, db=db
    )

    assert [message.content for message in first_page.messages] == ['message 4', 'message 3']
    assert [message.content for message in second_page.messages] == ['message 2', 'message 1']
    assert [message.content for message in last_page.messages] == ['message 0']
    assert last_page.next_cursor is None


def test_group_messages_require_membership(db, garage_group, admin_user) -> None:
    with pytest.raises(ApiError) as exception_info:
        post_group_message(
            group_id=garage_group.id,
            data=GroupMessageCreateRequest(content='hello'),
            current_user=admin_user,
            db=db,
        )

    assert exception_info.value.kind is ErrorKind.FORBIDDEN


def test_delete_group_message_by_sender_or_group_admin(db, garage_group, customer_user, other_customer) -> None:
    own = post_group_message(
        group_id=garage_group.id,
        data=GroupMessageCreateRequest(content='mine'),
        current_user=other_customer,
        db=db,
    )
    admins = post_group_message(
        group_id=garage_group.id,
        data=GroupMessageCreateRequest(content='admin note'),
        current_user=customer_user,
        db=db,
    )

    with pytest.raises(ApiError):
        delete_group_message(group_id=garage_group.id, message_id=admins.id, current_user=other_customer, db=db)

    delete_group_message(group_id=garage_group.id, message_id=own.id, current_user=customer_user, db=db)
    assert db.query(GroupMessage).count() == 1
