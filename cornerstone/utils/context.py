"""
请求级操作人上下文
由视图函数在请求入口处构造，并显式传入服务层，
服务层不读取 current_user 等全局对象。
"""
from dataclasses import dataclass
from typing import Optional

from flask import request, has_request_context
from flask_login import current_user


@dataclass(frozen=True)
class Operator:
    user_id: Optional[int]
    username: str = ''
    role: str = ''
    ip_address: Optional[str] = None

    @classmethod
    def from_user(cls, user, ip_address=None):
        return cls(user_id=user.id, username=user.username, role=user.role, ip_address=ip_address)


def current_operator() -> Operator:
    """从当前请求构造 Operator (仅在视图中调用)"""
    ip_address = request.remote_addr if has_request_context() else None
    if current_user.is_authenticated:
        return Operator.from_user(current_user, ip_address=ip_address)
    return Operator(user_id=None, ip_address=ip_address)
