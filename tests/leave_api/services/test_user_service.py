import pytest

from leave_api.core.errors import DuplicateEmail, Forbidden, NotFound, ValidationError
from leave_api.models.leave import Leave
from leave_api.models.user import Role, User
from leave_api.services import leave_service, user_service


@pytest.fixture
def admin(make_user):
    return make_user('admin@x.com', role=Role.ADMIN)


@pytest.fixture
def employee(make_user):
    return make_user('employee@x.com', name='Employee')


def test_list_users_requires_admin(db, employee, identity_for) -> None:
    with pytest.raises(Forbidden):
        user_service.list_users(db, identity_for(employee))


def test_list_users_returns_everyone_for_admin(db, admin, employee, identity_for) -> None:
    users = user_service.list_users(db, identity_for(admin))

    assert [user.email for user in users] == ['admin@x.com', 'employee@x.com']


def test_get_user_raises_not_found(db, admin, identity_for) -> None:
    with pytest.raises(NotFound):
        user_service.get_user(db, 999, identity_for(admin))


def test_update_user_changes_only_given_fields(db, admin, employee, identity_for) -> None:
    updated = user_service.update_user(db, employee.id, identity_for(admin), name='Renamed')

    assert updated.name == 'Renamed'
    assert updated.email == 'employee@x.com'
    assert updated.role is Role.USER


def test_admin_can_promote_another_user(db, admin, employee, identity_for) -> None:
    updated = user_service.update_user(db, employee.id, identity_for(admin), role=Role.ADMIN)

    assert updated.role is Role.ADMIN


def test_admin_cannot_change_own_role(db, admin, identity_for) -> None:
    with pytest.raises(Forbidden):
        user_service.update_user(db, admin.id, identity_for(admin), role=Role.USER)


def test_update_user_rejects_taken_email(db, admin, employee, identity_for) -> None:
    with pytest.raises(DuplicateEmail):
        user_service.update_user(db, employee.id, identity_for(admin), email='admin@x.com')


def test_update_user_rejects_malformed_email(db, admin, employee, identity_for) -> None:
    with pytest.raises(ValidationError):
        user_service.update_user(db, employee.id, identity_for(admin), email='bad-email')


def test_delete_user_cascades_to_leaves(db, admin, employee, identity_for) -> None:
    leave_service.create_leave(db, identity_for(employee), 'SICK', '2024-02-01', '2024-02-02')
    employee_id = employee.id

    user_service.delete_user(db, employee_id, identity_for(admin))

    assert db.get(User, employee_id) is None
    assert db.query(Leave).filter(Leave.user_id == employee_id).count() == 0


def test_delete_user_raises_not_found(db, admin, identity_for) -> None:
    with pytest.raises(NotFound):
        user_service.delete_user(db, 999, identity_for(admin))
