"""
审计日志工具模块
记录登录、出入库、导出等重要操作
"""
import json
from functools import wraps

from flask import request, has_request_context

from cornerstone.extensions import db
from cornerstone.models import AuditLog
from cornerstone.utils.context import Operator, current_operator


def log_action(module, action, details=None, operator: Operator = None):
    """
    记录审计日志
    :param module: 模块名称 (如 'auth', 'inventory', 'reports')
    :param action: 操作名称 (如 'login', 'record_out', 'export')
    :param details: 详细信息 (dict)
    :param operator: 操作人，缺省时取当前请求的登录用户
    """
    operator = operator or current_operator()
    if operator.user_id is None:
        return None

    log = AuditLog(
        user_id=operator.user_id,
        module=module,
        action=action,
        ip_address=operator.ip_address,
        details=json.dumps(details, ensure_ascii=False, default=str) if details else None
    )
    db.session.add(log)
    db.session.commit()
    return log


def audit_log(module, action):
    """
    审计日志装饰器 (视图执行后记录路由参数与查询参数)
    使用方法:
    @audit_log('reports', 'export')
    def export_view(fmt):
        pass
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            result = f(*args, **kwargs)
            details = dict(kwargs)
            if has_request_context() and request.args:
                details['query'] = request.args.to_dict()
            log_action(module, action, details or None)
            return result
        return decorated_function
    return decorator
