"""预警与损耗报告模型"""
from cornerstone.extensions import db
from .base import BaseModel


class Alert(BaseModel):
    """库存预警记录"""
    __tablename__ = 'alerts'

    TYPE_LOW_STOCK = 'low_stock'                    # 低于补货阈值
    TYPE_PREDICTIVE_REORDER = 'predictive_reorder'  # 按用量预测即将不足
    TYPE_OTHER = 'other'
    TYPES = (TYPE_LOW_STOCK, TYPE_PREDICTIVE_REORDER, TYPE_OTHER)

    alert_type = db.Column(db.String(32), nullable=False, index=True)
    site_id = db.Column(db.Integer, db.ForeignKey('sites.id'), nullable=False)
    material_id = db.Column(db.Integer, db.ForeignKey('materials.id'), nullable=False)
    message = db.Column(db.Text)

    is_resolved = db.Column(db.Boolean, default=False, index=True)
    resolved_at = db.Column(db.DateTime)

    site = db.relationship('Site')
    material = db.relationship('Material')

    @property
    def type_label(self):
        return self.alert_type.replace('_', ' ').title()


class WasteReport(BaseModel):
    """损耗/差异盘点记录 (独立审计记录，不由流水自动生成)"""
    __tablename__ = 'waste_reports'

    site_id = db.Column(db.Integer, db.ForeignKey('sites.id'), nullable=False)
    material_id = db.Column(db.Integer, db.ForeignKey('materials.id'), nullable=False)
    report_date = db.Column(db.Date, nullable=False, index=True)

    expected_quantity = db.Column(db.Float, nullable=False)
    actual_quantity = db.Column(db.Float, nullable=False)
    variance = db.Column(db.Float, nullable=False)              # actual - expected
    variance_percentage = db.Column(db.Float, nullable=False)   # variance / expected * 100
    notes = db.Column(db.Text)

    recorded_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)

    site = db.relationship('Site')
    material = db.relationship('Material')
    recorder = db.relationship('User')
