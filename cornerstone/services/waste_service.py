"""损耗差异登记服务"""
import logging
import math
from datetime import date

from sqlalchemy.exc import SQLAlchemyError

from cornerstone.exceptions import ValidationError, ResourceNotFoundError, PersistenceError
from cornerstone.models import WasteReport
from cornerstone.repositories import SiteRepository, MaterialRepository
from cornerstone.utils.context import Operator

logger = logging.getLogger(__name__)


class WasteService:

    def __init__(self, session):
        self.session = session
        self.sites = SiteRepository(session)
        self.materials = MaterialRepository(session)

    @staticmethod
    def compute_variance(expected: float, actual: float):
        """
        差异 = 实际 - 预期；差异率 = 差异 / 预期 × 100
        预期为 0 时差异率按 0 处理 (不参与超阈值标记)
        """
        variance = round(actual - expected, 2)
        if expected == 0:
            return variance, 0.0
        return variance, round(variance / expected * 100, 2)

    def record(self, site_id, material_id, report_date: date, expected_quantity, actual_quantity,
               operator: Operator, notes=None) -> WasteReport:
        site = self.sites.get(site_id)
        if site is None:
            raise ResourceNotFoundError("Site not found.")
        material = self.materials.get(material_id)
        if material is None:
            raise ResourceNotFoundError("Material not found.")
        if report_date is None:
            raise ValidationError("Report date is required.")

        try:
            expected = float(expected_quantity)
            actual = float(actual_quantity)
        except (TypeError, ValueError):
            raise ValidationError("Expected and actual quantities must be numbers.")
        if not (math.isfinite(expected) and math.isfinite(actual)):
            raise ValidationError("Expected and actual quantities must be numbers.")
        if expected < 0 or actual < 0:
            raise ValidationError("Quantities cannot be negative.")

        variance, percentage = self.compute_variance(expected, actual)
        report = WasteReport(
            site_id=site.id,
            material_id=material.id,
            report_date=report_date,
            expected_quantity=expected,
            actual_quantity=actual,
            variance=variance,
            variance_percentage=percentage,
            notes=notes or None,
            recorded_by=operator.user_id,
        )
        try:
            self.session.add(report)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Waste audit rolled back: %s", e, exc_info=True)
            raise PersistenceError() from e
        return report
