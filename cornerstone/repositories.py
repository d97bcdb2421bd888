"""
数据访问层 (Repository)
每个实体一个仓储类，通过构造函数注入 SQLAlchemy session，
服务层不直接拼接 SQL，也不依赖全局连接。
"""
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, and_

from cornerstone.models import Site, Material, InventoryLine, Transaction


class SiteRepository:
    def __init__(self, session):
        self.session = session

    def get(self, site_id) -> Optional[Site]:
        if site_id is None:
            return None
        site = self.session.get(Site, site_id)
        if site is None or site.is_deleted:
            return None
        return site

    def list(self, statuses=None) -> List[Site]:
        query = self.session.query(Site).filter(Site.is_deleted.is_(False))
        if statuses:
            query = query.filter(Site.status.in_(statuses))
        return query.order_by(Site.name.asc()).all()

    def list_operational(self) -> List[Site]:
        """可以登记出入库的站点 (进行中 + 材料不足停工)"""
        return self.list(statuses=Site.OPERATIONAL_STATUSES)

    def add(self, site: Site) -> Site:
        self.session.add(site)
        self.session.flush()
        return site

    def summaries(self) -> List[Tuple[Site, int, float]]:
        """站点列表，附带材料种类数与库存总值"""
        rows = self.session.query(
            Site,
            func.count(func.distinct(InventoryLine.material_id)).label('material_count'),
            func.coalesce(func.sum(InventoryLine.quantity * Material.unit_cost), 0).label('total_value')
        ).outerjoin(
            InventoryLine, InventoryLine.site_id == Site.id
        ).outerjoin(
            Material, InventoryLine.material_id == Material.id
        ).filter(
            Site.is_deleted.is_(False)
        ).group_by(Site.id).order_by(Site.created_at.desc(), Site.id.desc()).all()
        return [(site, int(count or 0), float(value or 0)) for site, count, value in rows]


class MaterialRepository:
    def __init__(self, session):
        self.session = session

    def get(self, material_id) -> Optional[Material]:
        if material_id is None:
            return None
        material = self.session.get(Material, material_id)
        if material is None or material.is_deleted:
            return None
        return material

    def list(self, category=None) -> List[Material]:
        query = self.session.query(Material).filter(Material.is_deleted.is_(False))
        if category:
            query = query.filter(Material.category == category)
        return query.order_by(Material.category.asc(), Material.name.asc()).all()

    def categories(self) -> List[str]:
        rows = self.session.query(Material.category).filter(
            Material.is_deleted.is_(False)
        ).distinct().order_by(Material.category.asc()).all()
        return [r[0] for r in rows]

    def add(self, material: Material) -> Material:
        self.session.add(material)
        self.session.flush()
        return material


class LedgerRepository:
    """库存行 (site, material) 的读写；扣减使用带条件的原子 UPDATE"""

    def __init__(self, session):
        self.session = session

    def _key_filter(self, site_id, material_id):
        return and_(InventoryLine.site_id == site_id, InventoryLine.material_id == material_id)

    def get_line(self, site_id, material_id, for_update=False) -> Optional[InventoryLine]:
        query = self.session.query(InventoryLine).filter(self._key_filter(site_id, material_id))
        if for_update:
            # PostgreSQL/MySQL 行锁；SQLite 会忽略 (写操作本身串行)
            query = query.with_for_update()
        return query.first()

    def quantity(self, site_id, material_id) -> float:
        value = self.session.query(InventoryLine.quantity).filter(
            self._key_filter(site_id, material_id)
        ).scalar()
        return float(value) if value is not None else 0.0

    def create_line(self, site_id, material_id) -> InventoryLine:
        line = InventoryLine(site_id=site_id, material_id=material_id, quantity=0.0)
        self.session.add(line)
        self.session.flush()
        return line

    def credit(self, site_id, material_id, amount) -> int:
        return self.session.query(InventoryLine).filter(
            self._key_filter(site_id, material_id)
        ).update({
            InventoryLine.quantity: InventoryLine.quantity + amount,
            InventoryLine.updated_at: datetime.utcnow(),
        }, synchronize_session=False)

    def debit(self, site_id, material_id, amount) -> int:
        """
        条件扣减：仅当 quantity >= amount 时生效
        :return: 受影响行数 (0 表示库存不足)
        """
        return self.session.query(InventoryLine).filter(
            self._key_filter(site_id, material_id),
            InventoryLine.quantity >= amount
        ).update({
            InventoryLine.quantity: InventoryLine.quantity - amount,
            InventoryLine.updated_at: datetime.utcnow(),
        }, synchronize_session=False)

    def quantities_for_site(self, site_id) -> Dict[int, float]:
        rows = self.session.query(InventoryLine.material_id, InventoryLine.quantity).filter(
            InventoryLine.site_id == site_id
        ).all()
        return {material_id: float(qty) for material_id, qty in rows}


class TransactionRepository:
    def __init__(self, session):
        self.session = session

    def add(self, site_id, material_id, transaction_type, quantity, user_id=None,
            related_site_id=None, notes=None, created_at=None) -> Transaction:
        txn = Transaction(
            site_id=site_id,
            material_id=material_id,
            transaction_type=transaction_type,
            quantity=quantity,
            user_id=user_id,
            related_site_id=related_site_id,
            notes=notes or None,
            created_at=created_at or datetime.utcnow(),
        )
        self.session.add(txn)
        return txn

    def for_site(self, site_id):
        """按站点查询流水 (返回 Query，便于分页)"""
        return self.session.query(Transaction).filter(
            Transaction.site_id == site_id
        ).order_by(Transaction.created_at.desc(), Transaction.id.desc())

    def recent(self, site_id, limit=20) -> List[Transaction]:
        return self.for_site(site_id).limit(limit).all()

    def usage_since(self, site_id, material_id, since) -> float:
        """统计时间窗口内的消耗量 (OUT + TRANSFER_OUT)"""
        value = self.session.query(func.sum(Transaction.quantity)).filter(
            Transaction.site_id == site_id,
            Transaction.material_id == material_id,
            Transaction.transaction_type.in_(Transaction.USAGE_TYPES),
            Transaction.created_at >= since
        ).scalar()
        return float(value or 0)

    def anonymize_user(self, user_id) -> int:
        """删除账号时将流水中的操作人置空"""
        return self.session.query(Transaction).filter(
            Transaction.user_id == user_id
        ).update({Transaction.user_id: None}, synchronize_session=False)
