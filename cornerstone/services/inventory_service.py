"""库存事务引擎 - IN / OUT / TRANSFER"""
import logging
import math
from contextlib import contextmanager
from datetime import datetime
from typing import List, Tuple

from sqlalchemy.exc import SQLAlchemyError

from cornerstone.exceptions import (
    CornerstoneException, InvalidQuantityError, InvalidTransferError,
    InsufficientStockError, PersistenceError, ResourceNotFoundError
)
from cornerstone.models import Transaction
from cornerstone.repositories import (
    SiteRepository, MaterialRepository, LedgerRepository, TransactionRepository
)
from cornerstone.services.ledger_service import InventoryLedger
from cornerstone.utils.context import Operator

logger = logging.getLogger(__name__)


class TransactionEngine:
    """
    原子化库存变动
    每个操作在同一个数据库事务内完成：读取数量 -> 校验 -> 增减台账 -> 记录流水，
    任何一步失败都会整体回滚，不会出现只扣不增的半个调拨。
    """

    def __init__(self, session, ledger: InventoryLedger = None,
                 transactions: TransactionRepository = None,
                 sites: SiteRepository = None, materials: MaterialRepository = None):
        self.session = session
        self.ledger = ledger or InventoryLedger(session, LedgerRepository(session))
        self.transactions = transactions or TransactionRepository(session)
        self.sites = sites or SiteRepository(session)
        self.materials = materials or MaterialRepository(session)

    # ---------- 校验 ----------

    @staticmethod
    def validate_quantity(quantity) -> float:
        """数量必须是有限正数"""
        if isinstance(quantity, bool):
            raise InvalidQuantityError()
        try:
            value = float(quantity)
        except (TypeError, ValueError):
            raise InvalidQuantityError()
        if not math.isfinite(value) or value <= 0:
            raise InvalidQuantityError()
        return value

    def _resolve(self, site_id, material_id):
        site = self.sites.get(site_id)
        if site is None:
            raise ResourceNotFoundError("Site not found.")
        material = self.materials.get(material_id)
        if material is None:
            raise ResourceNotFoundError("Material not found.")
        return site, material

    @contextmanager
    def _atomic(self):
        """提交或整体回滚；数据库异常统一转换为 PersistenceError"""
        try:
            yield
            self.session.commit()
        except CornerstoneException:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Inventory transaction rolled back: %s", e, exc_info=True)
            raise PersistenceError() from e

    # ---------- 业务操作 ----------

    def record_in(self, site_id: int, material_id: int, quantity, operator: Operator,
                  notes: str = None) -> Transaction:
        """入库：台账 +qty，记录 IN 流水"""
        qty = self.validate_quantity(quantity)

        with self._atomic():
            site, material = self._resolve(site_id, material_id)
            balance = self.ledger.apply_delta(site.id, material.id, qty)
            txn = self.transactions.add(
                site_id=site.id, material_id=material.id,
                transaction_type=Transaction.TYPE_IN, quantity=qty,
                user_id=operator.user_id, notes=notes
            )

        logger.info("IN %.2f %s @ %s by %s (balance %.2f)",
                    qty, material.name, site.name, operator.username, balance)
        return txn

    def record_out(self, site_id: int, material_id: int, quantity, operator: Operator,
                   notes: str = None) -> Transaction:
        """出库：先检查可用量，台账 -qty，记录 OUT 流水"""
        qty = self.validate_quantity(quantity)

        try:
            with self._atomic():
                site, material = self._resolve(site_id, material_id)
                available = self.ledger.get_quantity(site.id, material.id, for_update=True)
                if available < qty:
                    raise InsufficientStockError(
                        "Insufficient inventory. Cannot remove more than available.",
                        payload={'available': available, 'requested': qty}
                    )
                balance = self.ledger.apply_delta(site.id, material.id, -qty)
                txn = self.transactions.add(
                    site_id=site.id, material_id=material.id,
                    transaction_type=Transaction.TYPE_OUT, quantity=qty,
                    user_id=operator.user_id, notes=notes
                )
        except InsufficientStockError:
            logger.warning("OUT rejected: %.2f of material %s at site %s exceeds stock", qty, material_id, site_id)
            raise

        logger.info("OUT %.2f %s @ %s by %s (balance %.2f)",
                    qty, material.name, site.name, operator.username, balance)
        return txn

    def record_transfer(self, source_site_id: int, destination_site_id: int, material_id: int,
                        quantity, operator: Operator, notes: str = None) -> Tuple[Transaction, Transaction]:
        """
        调拨：源站点 -qty，目标站点 +qty
        生成成对流水 (TRANSFER_OUT @源 -> 目标, TRANSFER_IN @目标 -> 源)，数量与时间一致
        :return: (transfer_out, transfer_in)
        """
        qty = self.validate_quantity(quantity)
        if not destination_site_id or destination_site_id == source_site_id:
            raise InvalidTransferError()

        try:
            with self._atomic():
                source, material = self._resolve(source_site_id, material_id)
                destination = self.sites.get(destination_site_id)
                if destination is None:
                    raise InvalidTransferError()
                available = self.ledger.get_quantity(source.id, material.id, for_update=True)
                if available < qty:
                    raise InsufficientStockError(
                        "Insufficient inventory at source site.",
                        payload={'available': available, 'requested': qty}
                    )
                self.ledger.apply_delta(source.id, material.id, -qty)
                self.ledger.apply_delta(destination.id, material.id, qty)

                now = datetime.utcnow()
                out_txn = self.transactions.add(
                    site_id=source.id, material_id=material.id,
                    transaction_type=Transaction.TYPE_TRANSFER_OUT, quantity=qty,
                    related_site_id=destination.id, user_id=operator.user_id,
                    notes=notes, created_at=now
                )
                in_txn = self.transactions.add(
                    site_id=destination.id, material_id=material.id,
                    transaction_type=Transaction.TYPE_TRANSFER_IN, quantity=qty,
                    related_site_id=source.id, user_id=operator.user_id,
                    notes=notes, created_at=now
                )
        except InsufficientStockError:
            logger.warning("TRANSFER rejected: %.2f of material %s from site %s exceeds stock",
                           qty, material_id, source_site_id)
            raise

        logger.info("TRANSFER %.2f %s %s -> %s by %s",
                    qty, material.name, source.name, destination.name, operator.username)
        return out_txn, in_txn

    def record(self, action: str, site_id: int, material_id: int, quantity, operator: Operator,
               notes: str = None, destination_site_id: int = None) -> List[Transaction]:
        """按表单动作分发 (IN / OUT / TRANSFER)"""
        action = (action or '').upper()
        if action == 'IN':
            return [self.record_in(site_id, material_id, quantity, operator, notes)]
        if action == 'OUT':
            return [self.record_out(site_id, material_id, quantity, operator, notes)]
        if action == 'TRANSFER':
            return list(self.record_transfer(site_id, destination_site_id, material_id,
                                             quantity, operator, notes))
        raise CornerstoneException(f"Unknown transaction type: {action}", code=400)
