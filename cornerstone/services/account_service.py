"""账号服务 - 注册与注销"""
import logging

from flask import current_app, has_app_context
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from cornerstone.exceptions import ValidationError, PersistenceError, ResourceNotFoundError
from cornerstone.models import User, WasteReport, AuditLog
from cornerstone.repositories import TransactionRepository

logger = logging.getLogger(__name__)


class AccountService:

    def __init__(self, session):
        self.session = session
        self.transactions = TransactionRepository(session)

    def register(self, username, email, password, full_name, role=User.ROLE_END_USER) -> User:
        """创建账号 (用户名和邮箱均唯一，邮箱统一存为小写)"""
        email = (email or '').strip().lower()
        min_length = current_app.config.get('MIN_PASSWORD_LENGTH', 8) if has_app_context() else 8
        if not password or len(password) < min_length:
            raise ValidationError(f'Password must be at least {min_length} characters long.')
        if role not in User.ROLES:
            raise ValidationError(f'Invalid role: {role}')

        existing = self.session.query(User).filter(
            or_(User.username == username, User.email == email)
        ).first()
        if existing is not None:
            if existing.username == username:
                raise ValidationError('Username already taken. Please choose another.')
            raise ValidationError('Email already registered. Please log in instead.')

        user = User(username=username, email=email, full_name=full_name, role=role)
        user.password = password
        self.session.add(user)
        self.session.commit()
        logger.info("Account registered: %s (%s)", username, role)
        return user

    def find_for_login(self, login):
        """按用户名或邮箱查找 (邮箱不区分大小写)"""
        login = (login or '').strip()
        return self.session.query(User).filter(
            or_(User.username == login, User.email == login.lower())
        ).first()

    def delete_account(self, user_id, password, confirm_text):
        """
        永久删除账号
        流水与损耗记录中的操作人置空 (保留历史)，然后删除用户，整体原子提交
        """
        user = self.session.get(User, user_id)
        if user is None:
            raise ResourceNotFoundError("User not found.")
        if not password:
            raise ValidationError('Please enter your password to confirm deletion.')
        if (confirm_text or '').strip().upper() != 'DELETE':
            raise ValidationError('Please type DELETE to confirm account deletion.')
        if not user.verify_password(password):
            raise ValidationError('Incorrect password. Please try again.')

        username = user.username
        try:
            anonymized = self.transactions.anonymize_user(user.id)
            self.session.query(WasteReport).filter(WasteReport.recorded_by == user.id).update(
                {WasteReport.recorded_by: None}, synchronize_session=False
            )
            self.session.query(AuditLog).filter(AuditLog.user_id == user.id).update(
                {AuditLog.user_id: None}, synchronize_session=False
            )
            self.session.delete(user)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Account deletion failed for %s: %s", username, e, exc_info=True)
            raise PersistenceError('Failed to delete account.') from e

        logger.info("Account deleted: %s (%d transactions anonymized)", username, anonymized)
        return anonymized
