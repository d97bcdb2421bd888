from datetime import datetime, timedelta
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from cornerstone.extensions import db
from .base import BaseModel

class User(UserMixin, BaseModel):
    """用户 (admin: 工头/承包商；end_user: 项目经理/财务/管理层，只读)"""
    __tablename__ = 'users'

    ROLE_ADMIN = 'admin'
    ROLE_END_USER = 'end_user'
    ROLES = (ROLE_ADMIN, ROLE_END_USER)

    # 连续失败多少次后锁定，以及锁定时长
    MAX_FAILED_ATTEMPTS = 5
    LOCK_MINUTES = 30

    username = db.Column(db.String(64), unique=True, index=True, nullable=False)
    email = db.Column(db.String(128), unique=True, index=True, nullable=False)
    full_name = db.Column(db.String(128))
    password_hash = db.Column(db.String(256))
    role = db.Column(db.String(20), default=ROLE_END_USER, nullable=False)

    is_active_user = db.Column(db.Boolean, default=True)  # 封号开关
    last_login = db.Column(db.DateTime)

    # 安全字段
    failed_login_attempts = db.Column(db.Integer, default=0)
    locked_until = db.Column(db.DateTime, nullable=True)

    @property
    def password(self):
        raise AttributeError('password is not a readable attribute')

    @password.setter
    def password(self, password):
        self.password_hash = generate_password_hash(password)

    def verify_password(self, password):
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self):
        return self.role == self.ROLE_ADMIN

    @property
    def display_name(self):
        return self.full_name or self.username

    def is_locked(self):
        """检查账号是否被锁定"""
        return bool(self.locked_until and datetime.utcnow() < self.locked_until)

    def record_failed_login(self):
        """记录登录失败"""
        self.failed_login_attempts = (self.failed_login_attempts or 0) + 1
        if self.failed_login_attempts >= self.MAX_FAILED_ATTEMPTS:
            self.locked_until = datetime.utcnow() + timedelta(minutes=self.LOCK_MINUTES)
        db.session.commit()

    def reset_failed_attempts(self):
        """重置失败次数"""
        self.failed_login_attempts = 0
        self.locked_until = None
        self.last_login = datetime.utcnow()
        db.session.commit()

    # Flask-Login 必须属性覆盖
    @property
    def is_active(self):
        return bool(self.is_active_user) and not self.is_deleted and not self.is_locked()

    def __repr__(self):
        return f'<User {self.username}>'
