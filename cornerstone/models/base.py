from datetime import datetime
from cornerstone.extensions import db

class BaseModel(db.Model):
    """
    Cornerstone 模型基类
    包含：ID主键, 创建时间, 更新时间, 软删除标记
    """
    __abstract__ = True

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # 软删除标记
    is_deleted = db.Column(db.Boolean, default=False, index=True)
