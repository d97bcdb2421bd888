"""库存预警服务"""
import logging
from datetime import datetime, timedelta

from flask import current_app, has_app_context

from cornerstone.exceptions import ResourceNotFoundError
from cornerstone.models import Alert, Site
from cornerstone.repositories import (
    SiteRepository, MaterialRepository, LedgerRepository, TransactionRepository
)

logger = logging.getLogger(__name__)


class AlertEvaluator:
    """
    预警评估
    - low_stock: 当前数量 < 补货阈值
    - predictive_reorder: 未低于阈值，但按近期日均用量推算，
      预测视野结束时的数量 < 阈值 × (1 + 预警百分比)
    评估是幂等的：同类未解决预警只更新不重复创建，条件消失的预警自动解决。
    """

    def __init__(self, session, analysis_days=None, horizon_days=None, alert_percentage=None):
        self.session = session
        self.sites = SiteRepository(session)
        self.materials = MaterialRepository(session)
        self.lines = LedgerRepository(session)
        self.transactions = TransactionRepository(session)

        config = current_app.config if has_app_context() else {}
        self.analysis_days = analysis_days or config.get('USAGE_ANALYSIS_DAYS', 30)
        self.horizon_days = horizon_days or config.get('ALERT_HORIZON_DAYS', 7)
        self.alert_percentage = alert_percentage if alert_percentage is not None \
            else config.get('PREDICTIVE_ALERT_PERCENTAGE', 20)

    # ---------- 计算 ----------

    def average_daily_usage(self, site_id, material_id, now=None) -> float:
        """分析窗口内 OUT + TRANSFER_OUT 的日均量"""
        now = now or datetime.utcnow()
        since = now - timedelta(days=self.analysis_days)
        used = self.transactions.usage_since(site_id, material_id, since)
        return used / self.analysis_days

    def classify(self, quantity, threshold, avg_daily_usage):
        """
        判断预警类型
        :return: (alert_type, message) 或 (None, None)
        """
        if quantity < threshold:
            return Alert.TYPE_LOW_STOCK, (
                f"Stock is below reorder threshold: {quantity:.2f} on hand, "
                f"threshold {threshold:.2f}."
            )
        if threshold > 0 and avg_daily_usage > 0:
            projected = quantity - avg_daily_usage * self.horizon_days
            trigger_level = threshold * (1 + self.alert_percentage / 100.0)
            if projected < trigger_level:
                days_left = (quantity - threshold) / avg_daily_usage
                return Alert.TYPE_PREDICTIVE_REORDER, (
                    f"Projected to reach reorder threshold in {days_left:.1f} days "
                    f"at {avg_daily_usage:.2f} per day."
                )
        return None, None

    # ---------- 评估 ----------

    def evaluate_line(self, site, material, now=None):
        """
        评估单个 (站点, 材料)，不提交事务
        :return: 新建的 Alert 或 None
        """
        quantity = self.lines.quantity(site.id, material.id)
        usage = self.average_daily_usage(site.id, material.id, now=now)
        alert_type, message = self.classify(quantity, float(material.reorder_threshold or 0), usage)

        open_alerts = self.session.query(Alert).filter(
            Alert.site_id == site.id,
            Alert.material_id == material.id,
            Alert.alert_type.in_([Alert.TYPE_LOW_STOCK, Alert.TYPE_PREDICTIVE_REORDER]),
            Alert.is_resolved.is_(False)
        ).all()

        full_message = f"{material.name} at {site.name}: {message}" if alert_type else None
        existing = None
        for alert in open_alerts:
            if alert.alert_type == alert_type and existing is None:
                alert.message = full_message
                existing = alert
            else:
                self._mark_resolved(alert)

        if alert_type is None or existing is not None:
            return None

        created = Alert(
            alert_type=alert_type,
            site_id=site.id,
            material_id=material.id,
            message=full_message,
        )
        self.session.add(created)
        logger.info("Alert raised: %s for %s @ %s", alert_type, material.name, site.name)
        return created

    def evaluate_pair(self, site_id, material_id):
        """事务完成后对受影响的库存行重新评估并提交"""
        site = self.sites.get(site_id)
        material = self.materials.get(material_id)
        if site is None or material is None:
            return None
        if site.status not in Site.OPERATIONAL_STATUSES:
            return None
        created = self.evaluate_line(site, material)
        self.session.commit()
        return created

    def evaluate_all(self, now=None) -> int:
        """全量扫描 (供定时任务调用)，返回新建预警数"""
        created = 0
        materials = self.materials.list()
        operational_ids = set()
        for site in self.sites.list_operational():
            operational_ids.add(site.id)
            for material in materials:
                if self.evaluate_line(site, material, now=now) is not None:
                    created += 1

        # 已完工/停用站点的遗留预警一并关闭
        stale = self.session.query(Alert).filter(Alert.is_resolved.is_(False)).all()
        for alert in stale:
            if alert.site_id not in operational_ids:
                self._mark_resolved(alert)

        self.session.commit()
        logger.info("Alert evaluation finished: %d new alerts", created)
        return created

    # ---------- 查询与处理 ----------

    @staticmethod
    def _mark_resolved(alert):
        alert.is_resolved = True
        alert.resolved_at = datetime.utcnow()

    def resolve(self, alert_id):
        """手动解决预警"""
        alert = self.session.get(Alert, alert_id)
        if alert is None:
            raise ResourceNotFoundError("Alert not found.")
        if not alert.is_resolved:
            self._mark_resolved(alert)
            self.session.commit()
        return alert

    def active_alerts_query(self, site_id=None):
        query = self.session.query(Alert).filter(Alert.is_resolved.is_(False))
        if site_id:
            query = query.filter(Alert.site_id == site_id)
        return query.order_by(Alert.created_at.desc(), Alert.id.desc())

    def active_alerts(self, site_id=None):
        return self.active_alerts_query(site_id).all()

    def statistics(self):
        """预警统计"""
        base = self.session.query(Alert).filter(Alert.is_resolved.is_(False))
        total = base.count()
        low = base.filter(Alert.alert_type == Alert.TYPE_LOW_STOCK).count()
        predictive = base.filter(Alert.alert_type == Alert.TYPE_PREDICTIVE_REORDER).count()
        return {
            'total': total,
            'low_stock': low,
            'predictive_reorder': predictive,
            'other': total - low - predictive,
        }
