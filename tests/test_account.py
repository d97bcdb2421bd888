from datetime import date

import pytest

from cornerstone.exceptions import ValidationError
from cornerstone.models import User, Transaction, WasteReport, AuditLog
from cornerstone.services.account_service import AccountService
from cornerstone.services.inventory_service import TransactionEngine
from cornerstone.services.waste_service import WasteService
from cornerstone.utils.audit import log_action
from cornerstone.utils.context import Operator


@pytest.fixture
def accounts(session):
    return AccountService(session)


def test_register_hashes_password(accounts):
    user = accounts.register('site_mgr', 'mgr@example.com', 'longenough', 'Site Manager')

    assert user.role == User.ROLE_END_USER
    assert user.password_hash != 'longenough'
    assert user.verify_password('longenough')
    assert not user.verify_password('wrong')


def test_register_rejects_short_password(accounts):
    with pytest.raises(ValidationError):
        accounts.register('short', 'short@example.com', 'abc', 'Short')


def test_register_rejects_duplicates(accounts):
    accounts.register('taken', 'taken@example.com', 'password123', 'Taken')

    with pytest.raises(ValidationError, match='Username'):
        accounts.register('taken', 'other@example.com', 'password123', 'Other')
    with pytest.raises(ValidationError, match='Email'):
        accounts.register('other', 'taken@example.com', 'password123', 'Other')


def test_find_for_login_accepts_username_or_email(accounts, admin):
    assert accounts.find_for_login('admin') == admin
    assert accounts.find_for_login('admin@example.com') == admin
    assert accounts.find_for_login('nobody') is None


def test_lockout_after_repeated_failures(admin):
    for _ in range(User.MAX_FAILED_ATTEMPTS):
        admin.record_failed_login()
    assert admin.is_locked()
    assert not admin.is_active

    admin.reset_failed_attempts()
    assert not admin.is_locked()


@pytest.mark.parametrize('password, confirm', [
    ('wrong-password', 'DELETE'),
    ('password123', 'delete me'),
    ('', 'DELETE'),
])
def test_delete_requires_password_and_confirmation(session, accounts, admin, password, confirm):
    with pytest.raises(ValidationError):
        accounts.delete_account(admin.id, password, confirm)
    assert session.get(User, admin.id) is not None


def test_delete_keeps_history_with_anonymous_operator(app, session, accounts, admin, sites, cement):
    operator = Operator.from_user(admin)
    TransactionEngine(session).record_in(sites[0].id, cement.id, 10, operator)
    WasteService(session).record(sites[0].id, cement.id, date(2024, 5, 1), 1, 2, operator)
    with app.test_request_context():
        log_action('auth', 'login_success', operator=operator)

    anonymized = accounts.delete_account(admin.id, 'password123', 'DELETE')

    assert anonymized == 1
    session.expire_all()
    assert session.get(User, admin.id) is None
    txn = session.query(Transaction).one()
    assert txn.user_id is None
    assert txn.performed_by == 'Deleted user'
    assert session.query(WasteReport).one().recorded_by is None
    assert session.query(AuditLog).one().user_id is None


def test_email_is_case_insensitive(accounts):
    user = accounts.register('ama', 'Ama@Example.com', 'password123', 'Ama Mensah')

    assert user.email == 'ama@example.com'
    assert accounts.find_for_login('AMA@example.COM') == user
    with pytest.raises(ValidationError, match='Email'):
        accounts.register('ama2', 'ama@EXAMPLE.com', 'password123', 'Ama Again')
