from cornerstone.extensions import db
from .base import BaseModel

class AuditLog(BaseModel):
    """系统操作审计"""
    __tablename__ = 'audit_logs'

    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'))
    module = db.Column(db.String(32))  # e.g., 'auth', 'inventory'
    action = db.Column(db.String(64))  # e.g., 'login', 'export'
    ip_address = db.Column(db.String(64))
    details = db.Column(db.Text)  # JSON 详情

    user = db.relationship('User')
