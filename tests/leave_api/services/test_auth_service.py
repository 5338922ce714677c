import threading

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from leave_api.auth.jwt_handler import decode_access_token
from leave_api.core.errors import DuplicateEmail, InvalidCredentials, ValidationError
from leave_api.database import Base, enable_sqlite_foreign_keys
from leave_api.models.user import Role, User
from leave_api.services import auth_service


def test_register_stores_hashed_password_and_defaults_to_user_role(db) -> None:
    user = auth_service.register(db, 'a@x.com', 'secret1', name='A')

    assert user.id is not None
    assert user.email == 'a@x.com'
    assert user.name == 'A'
    assert user.role is Role.USER
    assert user.hashed_password != 'secret1'
    assert user.created_at is not None


def test_register_normalizes_email(db) -> None:
    user = auth_service.register(db, '  Mixed.Case@Example.COM ', 'secret1')

    assert user.email == 'mixed.case@example.com'


@pytest.mark.parametrize('email', ['bad-email', '', 'missing-at.example.com', 'two@@x.com'])
def test_register_rejects_malformed_email(db, email: str) -> None:
    with pytest.raises(ValidationError):
        auth_service.register(db, email, 'secret1')

    assert db.query(User).count() == 0


def test_register_rejects_short_password(db) -> None:
    with pytest.raises(ValidationError) as exception_info:
        auth_service.register(db, 'a@x.com', '12345')

    assert exception_info.value.message == 'Password must be at least 6 characters'


def test_register_rejects_duplicate_email(db) -> None:
    auth_service.register(db, 'a@x.com', 'secret1')

    with pytest.raises(DuplicateEmail):
        auth_service.register(db, 'A@X.com', 'another1')

    assert db.query(User).count() == 1


def test_concurrent_registrations_for_same_email_create_one_user(tmp_path) -> None:
    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={'check_same_thread': False, 'timeout': 30},
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    barrier = threading.Barrier(2)
    outcomes: list[object] = []
    outcomes_lock = threading.Lock()

    def attempt() -> None:
        session = session_factory()
        try:
            barrier.wait()
            try:
                result: object = auth_service.register(session, 'race@x.com', 'secret1')
            except DuplicateEmail as exc:
                result = exc
            with outcomes_lock:
                outcomes.append(result)
        finally:
            session.close()

    threads = [threading.Thread(target=attempt) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    try:
        assert len(outcomes) == 2
        assert sum(isinstance(outcome, User) for outcome in outcomes) == 1
        assert sum(isinstance(outcome, DuplicateEmail) for outcome in outcomes) == 1

        check = session_factory()
        try:
            assert check.query(User).filter(User.email == 'race@x.com').count() == 1
        finally:
            check.close()
    finally:
        engine.dispose()


def test_login_returns_token_with_registered_identity(db) -> None:
    user = auth_service.register(db, 'a@x.com', 'secret1', role=Role.ADMIN)

    token = auth_service.login(db, 'a@x.com', 'secret1')
    claims = decode_access_token(token)

    assert claims.subject_id == user.id
    assert claims.role is Role.ADMIN


def test_login_is_case_insensitive_on_email(db) -> None:
    auth_service.register(db, 'a@x.com', 'secret1')

    assert auth_service.login(db, 'A@X.COM', 'secret1')


def test_login_errors_do_not_reveal_whether_email_exists(db) -> None:
    auth_service.register(db, 'a@x.com', 'secret1')

    with pytest.raises(InvalidCredentials) as wrong_password:
        auth_service.login(db, 'a@x.com', 'wrongpass')
    with pytest.raises(InvalidCredentials) as unknown_email:
        auth_service.login(db, 'nobody@x.com', 'secret1')

    assert wrong_password.value.message == unknown_email.value.message


def test_authenticate_user_returns_none_for_wrong_password(db) -> None:
    auth_service.register(db, 'a@x.com', 'secret1')

    assert auth_service.authenticate_user(db, 'a@x.com', 'nope123') is None


def test_login_with_corrupted_stored_hash_is_rejected(db) -> None:
    user = auth_service.register(db, 'a@x.com', 'secret1')
    user.hashed_password = 'not-a-bcrypt-digest'
    db.commit()

    with pytest.raises(InvalidCredentials):
        auth_service.login(db, 'a@x.com', 'secret1')


def test_unknown_email_login_runs_one_password_check(db, monkeypatch) -> None:
    checked: list[str] = []
    real_verify = auth_service.verify_password

    def counting_verify(password: str, digest: str) -> bool:
        checked.append(digest)
        return real_verify(password, digest)

    monkeypatch.setattr(auth_service, 'verify_password', counting_verify)

    with pytest.raises(InvalidCredentials):
        auth_service.login(db, 'nobody@x.com', 'secret1')

    assert checked == [auth_service._DUMMY_DIGEST]
    assert checked[0].startswith('$2')
