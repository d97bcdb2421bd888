from flask import Blueprint

# 注意：url_prefix 在 cornerstone/__init__.py 注册时设置，这里不重复设置
auth_bp = Blueprint('auth', __name__)

from . import routes
