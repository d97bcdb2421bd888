"""报表服务 - 成本 / 损耗差异 / 补货 (只读聚合)"""
from collections import OrderedDict
from datetime import date

from flask import current_app, has_app_context
from sqlalchemy import func, and_, true

from cornerstone.exceptions import ValidationError
from cornerstone.models import Site, Material, InventoryLine, WasteReport, Alert


class ReportService:
    """报表服务：只读，不修改任何状态"""

    # 可用报表类型
    REPORT_TYPES = OrderedDict([
        ('cost', {
            'name': 'Cost Report',
            'description': 'Inventory value per site and material, grouped by site and category',
        }),
        ('waste', {
            'name': 'Waste & Variance Report',
            'description': 'Expected vs actual usage audits with variance flags',
        }),
        ('reorder', {
            'name': 'Reorder Report',
            'description': 'Materials below their reorder threshold and the cost to restock',
        }),
    ])

    # CSV / Excel 列定义 (format=number 的列保留两位小数)
    COLUMNS = {
        'cost': [
            {'field': 'site_name', 'header': 'Site', 'width': 24},
            {'field': 'material_name', 'header': 'Material', 'width': 24},
            {'field': 'category', 'header': 'Category', 'width': 16},
            {'field': 'quantity', 'header': 'Quantity', 'width': 12, 'format': 'number'},
            {'field': 'unit_of_measure', 'header': 'Unit', 'width': 10},
            {'field': 'unit_cost', 'header': 'Unit Cost', 'width': 12, 'format': 'number'},
            {'field': 'total_value', 'header': 'Total Value', 'width': 14, 'format': 'number'},
        ],
        'waste': [
            {'field': 'report_date', 'header': 'Date', 'width': 12},
            {'field': 'site_name', 'header': 'Site', 'width': 24},
            {'field': 'material_name', 'header': 'Material', 'width': 24},
            {'field': 'expected_quantity', 'header': 'Expected Qty', 'width': 14, 'format': 'number'},
            {'field': 'actual_quantity', 'header': 'Actual Qty', 'width': 14, 'format': 'number'},
            {'field': 'variance', 'header': 'Variance', 'width': 12, 'format': 'number'},
            {'field': 'variance_percentage', 'header': 'Variance %', 'width': 12, 'format': 'percent'},
            {'field': 'value_lost', 'header': 'Value Lost', 'width': 14, 'format': 'number'},
            {'field': 'notes', 'header': 'Notes', 'width': 30, 'default': 'N/A'},
        ],
        'reorder': [
            {'field': 'site_name', 'header': 'Site', 'width': 24},
            {'field': 'material_name', 'header': 'Material', 'width': 24},
            {'field': 'category', 'header': 'Category', 'width': 16},
            {'field': 'current_quantity', 'header': 'Current Qty', 'width': 14, 'format': 'number'},
            {'field': 'reorder_threshold', 'header': 'Reorder Threshold', 'width': 18, 'format': 'number'},
            {'field': 'shortage', 'header': 'Shortage', 'width': 12, 'format': 'number'},
            {'field': 'reorder_cost', 'header': 'Reorder Cost', 'width': 14, 'format': 'number'},
        ],
    }

    def __init__(self, session, variance_threshold=None):
        self.session = session
        if variance_threshold is None:
            config = current_app.config if has_app_context() else {}
            variance_threshold = config.get('WASTE_VARIANCE_THRESHOLD', 10.0)
        self.variance_threshold = float(variance_threshold)

    # ---------- 公共查询 ----------

    def _site_material_grid(self, site_id=None):
        """站点 × 材料 全组合，缺失的库存行按 0 计"""
        quantity = func.coalesce(InventoryLine.quantity, 0.0)
        query = self.session.query(
            Site.id.label('site_id'),
            Site.name.label('site_name'),
            Material.id.label('material_id'),
            Material.name.label('material_name'),
            Material.category,
            Material.unit_of_measure,
            Material.unit_cost,
            Material.reorder_threshold,
            quantity.label('quantity'),
        ).select_from(Site).join(
            Material, true()
        ).outerjoin(
            InventoryLine,
            and_(InventoryLine.site_id == Site.id, InventoryLine.material_id == Material.id)
        ).filter(
            Site.is_deleted.is_(False),
            Material.is_deleted.is_(False)
        )
        if site_id:
            query = query.filter(Site.id == site_id)
        return query, quantity

    # ---------- 成本报表 ----------

    def cost_report(self, site_id=None):
        """
        成本报表
        :return: {'rows': [...], 'summary': {'total_cost', 'by_site', 'by_category'}}
        """
        query, _ = self._site_material_grid(site_id)
        rows = []
        summary = {'total_cost': 0.0, 'by_site': OrderedDict(), 'by_category': OrderedDict()}

        for r in query.order_by(Site.name, Material.category, Material.name).all():
            quantity = float(r.quantity or 0)
            unit_cost = float(r.unit_cost or 0)
            total_value = quantity * unit_cost
            rows.append({
                'site_id': r.site_id,
                'site_name': r.site_name,
                'material_id': r.material_id,
                'material_name': r.material_name,
                'category': r.category,
                'unit_of_measure': r.unit_of_measure,
                'unit_cost': unit_cost,
                'quantity': quantity,
                'total_value': total_value,
            })
            summary['total_cost'] += total_value
            summary['by_site'][r.site_name] = summary['by_site'].get(r.site_name, 0.0) + total_value
            summary['by_category'][r.category] = summary['by_category'].get(r.category, 0.0) + total_value

        return {'rows': rows, 'summary': summary}

    # ---------- 损耗/差异报表 ----------

    def waste_report(self, date_from: date, date_to: date, site_id=None):
        """
        损耗差异报表 (日期区间含首尾)
        差异率绝对值超过阈值的行标记 flagged=True
        """
        query = self.session.query(WasteReport, Site.name, Material).join(
            Site, WasteReport.site_id == Site.id
        ).join(
            Material, WasteReport.material_id == Material.id
        ).filter(
            WasteReport.report_date >= date_from,
            WasteReport.report_date <= date_to,
            WasteReport.is_deleted.is_(False)
        )
        if site_id:
            query = query.filter(WasteReport.site_id == site_id)
        query = query.order_by(WasteReport.report_date.desc(), WasteReport.variance_percentage.desc())

        rows = []
        summary = {'total_variance': 0.0, 'total_variance_value': 0.0, 'high_variance_count': 0}
        for report, site_name, material in query.all():
            variance = float(report.variance)
            value_lost = abs(variance * float(material.unit_cost or 0))
            flagged = abs(report.variance_percentage) > self.variance_threshold
            rows.append({
                'id': report.id,
                'report_date': report.report_date,
                'site_name': site_name,
                'material_name': material.name,
                'unit_of_measure': material.unit_of_measure,
                'expected_quantity': float(report.expected_quantity),
                'actual_quantity': float(report.actual_quantity),
                'variance': variance,
                'variance_percentage': float(report.variance_percentage),
                'value_lost': value_lost,
                'notes': report.notes,
                'flagged': flagged,
            })
            summary['total_variance'] += abs(variance)
            summary['total_variance_value'] += value_lost
            if flagged:
                summary['high_variance_count'] += 1

        return {'rows': rows, 'summary': summary}

    # ---------- 补货报表 ----------

    def reorder_report(self, site_id=None):
        """数量低于补货阈值的 (站点, 材料)：缺口与补货成本"""
        query, quantity = self._site_material_grid(site_id)
        query = query.filter(quantity < Material.reorder_threshold)

        rows = []
        total = 0.0
        for r in query.order_by(Site.name, Material.category, Material.name).all():
            current = float(r.quantity or 0)
            threshold = float(r.reorder_threshold or 0)
            shortage = threshold - current
            reorder_cost = shortage * float(r.unit_cost or 0)
            rows.append({
                'site_id': r.site_id,
                'site_name': r.site_name,
                'material_id': r.material_id,
                'material_name': r.material_name,
                'category': r.category,
                'unit_of_measure': r.unit_of_measure,
                'unit_cost': float(r.unit_cost or 0),
                'current_quantity': current,
                'reorder_threshold': threshold,
                'shortage': shortage,
                'reorder_cost': reorder_cost,
            })
            total += reorder_cost

        return {'rows': rows, 'summary': {'total_reorder_cost': total, 'count': len(rows)}}

    # ---------- 仪表盘 ----------

    def dashboard_summary(self):
        """仪表盘：站点数、在建站点数、库存总值、按站点分组的库存明细"""
        sites = self.session.query(Site).filter(Site.is_deleted.is_(False)).order_by(Site.name).all()
        cost = self.cost_report()

        by_site = OrderedDict()
        for site in sites:
            by_site[site.id] = {'site': site, 'materials': []}
        for row in cost['rows']:
            if row['site_id'] in by_site:
                by_site[row['site_id']]['materials'].append(row)

        open_alerts = self.session.query(func.count(Alert.id)).filter(
            Alert.is_resolved.is_(False)
        ).scalar() or 0

        return {
            'total_sites': len(sites),
            'active_sites': len([s for s in sites if s.status == Site.STATUS_ACTIVE]),
            'total_alerts': int(open_alerts),
            'total_inventory_value': cost['summary']['total_cost'],
            'inventory_by_site': list(by_site.values()),
        }

    def generate(self, report_type, site_id=None, date_from=None, date_to=None):
        """按类型生成报表"""
        if report_type == 'cost':
            return self.cost_report(site_id)
        if report_type == 'waste':
            return self.waste_report(date_from, date_to, site_id)
        if report_type == 'reorder':
            return self.reorder_report(site_id)
        raise ValidationError(f"Unknown report type: {report_type}")
