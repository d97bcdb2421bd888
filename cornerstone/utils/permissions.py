"""
权限控制工具
admin: 可登记出入库、维护站点与材料、处理预警
end_user: 只读 (仪表盘、报表、导出)
"""
from functools import wraps
from flask import abort, flash, redirect, url_for, request
from flask_login import current_user


def admin_required(f):
    """
    管理员权限装饰器
    未登录跳转登录页；已登录但非管理员返回 403
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            flash('Please log in to access this page.', 'warning')
            return redirect(url_for('auth.login', next=request.url))

        if not is_admin():
            flash('Only administrators can perform this action.', 'danger')
            abort(403)

        return f(*args, **kwargs)
    return decorated_function


def is_admin():
    """检查当前用户是否是管理员"""
    if not current_user.is_authenticated:
        return False
    return current_user.is_admin
