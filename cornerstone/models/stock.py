from cornerstone.extensions import db
from .base import BaseModel

class InventoryLine(BaseModel):
    """
    实时库存表 (站点 <-> 材料)
    每个 (site, material) 组合仅一行，数量只能通过增量修改
    """
    __tablename__ = 'inventory'

    site_id = db.Column(db.Integer, db.ForeignKey('sites.id'), nullable=False)
    material_id = db.Column(db.Integer, db.ForeignKey('materials.id'), nullable=False)
    quantity = db.Column(db.Float, default=0.0, nullable=False)

    site = db.relationship('Site', backref=db.backref('inventory_lines', lazy='dynamic'))
    material = db.relationship('Material', backref=db.backref('inventory_lines', lazy='dynamic'))

    __table_args__ = (
        db.UniqueConstraint('site_id', 'material_id', name='uq_inventory_site_material'),
        db.CheckConstraint('quantity >= 0', name='ck_inventory_quantity_non_negative'),
    )

    @property
    def last_updated(self):
        return self.updated_at


class Transaction(BaseModel):
    """
    库存事务流水 (核心表，只追加)
    每一次库存变动对应一行；调拨对应成对的 TRANSFER_OUT / TRANSFER_IN
    """
    __tablename__ = 'transactions'

    TYPE_IN = 'IN'
    TYPE_OUT = 'OUT'
    TYPE_TRANSFER_IN = 'TRANSFER_IN'
    TYPE_TRANSFER_OUT = 'TRANSFER_OUT'
    TYPES = (TYPE_IN, TYPE_OUT, TYPE_TRANSFER_IN, TYPE_TRANSFER_OUT)

    # 计入"消耗"的类型，用于预测性预警
    USAGE_TYPES = (TYPE_OUT, TYPE_TRANSFER_OUT)

    site_id = db.Column(db.Integer, db.ForeignKey('sites.id'), nullable=False, index=True)
    material_id = db.Column(db.Integer, db.ForeignKey('materials.id'), nullable=False, index=True)
    transaction_type = db.Column(db.String(20), nullable=False, index=True)
    quantity = db.Column(db.Float, nullable=False)

    # 调拨对端站点
    related_site_id = db.Column(db.Integer, db.ForeignKey('sites.id'), nullable=True)
    # 删除账号时置空，保留历史
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    notes = db.Column(db.Text)

    site = db.relationship('Site', foreign_keys=[site_id])
    related_site = db.relationship('Site', foreign_keys=[related_site_id])
    material = db.relationship('Material')
    user = db.relationship('User')

    __table_args__ = (
        db.CheckConstraint('quantity > 0', name='ck_transactions_quantity_positive'),
    )

    @property
    def transaction_date(self):
        return self.created_at

    @property
    def performed_by(self):
        return self.user.display_name if self.user else 'Deleted user'
