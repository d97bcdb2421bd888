"""站点与材料 (参考数据，由管理员维护)"""
from cornerstone.extensions import db
from .base import BaseModel


class Site(BaseModel):
    """施工站点"""
    __tablename__ = 'sites'

    STATUS_ACTIVE = 'active'
    STATUS_INACTIVE = 'inactive'
    STATUS_FINISHED = 'finished'
    STATUS_HALTED = 'halted_insufficient_materials'  # 因材料不足停工
    STATUSES = (STATUS_ACTIVE, STATUS_INACTIVE, STATUS_FINISHED, STATUS_HALTED)

    # 仍在消耗材料、可以登记出入库的状态
    OPERATIONAL_STATUSES = (STATUS_ACTIVE, STATUS_HALTED)

    name = db.Column(db.String(128), nullable=False, index=True)
    location = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(40), default=STATUS_ACTIVE, nullable=False, index=True)
    completion_percentage = db.Column(db.Float, default=0.0)
    start_date = db.Column(db.Date, nullable=False)
    estimated_completion = db.Column(db.Date, nullable=True)

    __table_args__ = (
        db.CheckConstraint('completion_percentage >= 0 AND completion_percentage <= 100',
                           name='ck_sites_completion_range'),
    )

    @property
    def status_label(self):
        return self.status.replace('_', ' ').title()

    def __repr__(self):
        return f'<Site {self.name}>'


class Material(BaseModel):
    """建筑材料"""
    __tablename__ = 'materials'

    name = db.Column(db.String(128), nullable=False, index=True)
    category = db.Column(db.String(64), nullable=False, index=True)
    unit_of_measure = db.Column(db.String(32), nullable=False)
    unit_cost = db.Column(db.Float, default=0.0, nullable=False)
    reorder_threshold = db.Column(db.Float, default=0.0, nullable=False)

    __table_args__ = (
        db.CheckConstraint('unit_cost >= 0', name='ck_materials_unit_cost'),
        db.CheckConstraint('reorder_threshold >= 0', name='ck_materials_reorder_threshold'),
    )

    def __repr__(self):
        return f'<Material {self.name}>'
