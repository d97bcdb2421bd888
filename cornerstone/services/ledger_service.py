"""库存台账服务 - 每个 (站点, 材料) 的当前数量"""
from cornerstone.exceptions import InsufficientStockError
from cornerstone.repositories import LedgerRepository


class InventoryLedger:
    """
    库存台账
    数量只能通过 apply_delta 增减，不提供直接赋值接口，保证每次变动都可审计。
    本类不提交事务，由调用方 (TransactionEngine) 控制提交/回滚。
    """

    def __init__(self, session, lines: LedgerRepository = None):
        self.session = session
        self.lines = lines or LedgerRepository(session)

    def get_quantity(self, site_id: int, material_id: int, for_update: bool = False) -> float:
        """
        读取当前数量，不存在的库存行返回 0
        :param for_update: 是否加行锁 (检查-扣减 序列中使用)
        """
        if for_update:
            line = self.lines.get_line(site_id, material_id, for_update=True)
            return float(line.quantity) if line is not None else 0.0
        return self.lines.quantity(site_id, material_id)

    def apply_delta(self, site_id: int, material_id: int, signed_quantity: float) -> float:
        """
        增量更新库存行 (不存在则以 0 为初始值创建)
        :param signed_quantity: 正数入库，负数扣减
        :return: 变动后的数量
        """
        line = self.lines.get_line(site_id, material_id, for_update=True)

        if signed_quantity < 0:
            amount = -signed_quantity
            prior = float(line.quantity) if line is not None else 0.0
            if line is None or prior < amount:
                raise InsufficientStockError(payload={'available': prior, 'requested': amount})
            # 条件 UPDATE：并发扣减时只有满足 quantity >= amount 的一方生效
            if self.lines.debit(site_id, material_id, amount) != 1:
                raise InsufficientStockError(payload={'requested': amount})
        else:
            if line is None:
                line = self.lines.create_line(site_id, material_id)
            self.lines.credit(site_id, material_id, signed_quantity)

        # UPDATE 绕过了 ORM，让已加载的对象失效以免读到旧值
        self.session.expire(line)
        return self.lines.quantity(site_id, material_id)
