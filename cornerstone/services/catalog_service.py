"""站点与材料维护服务"""
import logging
from datetime import date

from cornerstone.exceptions import ValidationError, ResourceNotFoundError
from cornerstone.extensions import db, cache
from cornerstone.models import Site, Material
from cornerstone.repositories import SiteRepository, MaterialRepository

logger = logging.getLogger(__name__)


@cache.memoize(timeout=300)
def material_categories():
    """材料分类列表 (缓存，材料变更时失效)"""
    return MaterialRepository(db.session).categories()


class CatalogService:
    """站点/材料的新增与编辑 (仅管理员)"""

    def __init__(self, session):
        self.session = session
        self.sites = SiteRepository(session)
        self.materials = MaterialRepository(session)

    # ---------- 站点 ----------

    @staticmethod
    def _apply_site_fields(site, name, location, status, completion_percentage,
                           start_date, estimated_completion):
        name = (name or '').strip()
        location = (location or '').strip()
        if not name or not location or not start_date:
            raise ValidationError('Please fill in all required fields (Site Name, Location, Start Date).')
        if status not in Site.STATUSES:
            raise ValidationError(f'Invalid site status: {status}')
        completion = float(completion_percentage or 0)
        if completion < 0 or completion > 100:
            raise ValidationError('Completion percentage must be between 0 and 100.')
        if not isinstance(start_date, date):
            raise ValidationError('Invalid start date.')

        site.name = name
        site.location = location
        site.status = status
        site.completion_percentage = completion
        site.start_date = start_date
        site.estimated_completion = estimated_completion

    def create_site(self, name, location, start_date, status=Site.STATUS_ACTIVE,
                    completion_percentage=0, estimated_completion=None) -> Site:
        site = Site()
        self._apply_site_fields(site, name, location, status, completion_percentage,
                                start_date, estimated_completion)
        self.sites.add(site)
        self.session.commit()
        logger.info("Site created: %s", site.name)
        return site

    def update_site(self, site_id, name, location, start_date, status,
                    completion_percentage=0, estimated_completion=None) -> Site:
        site = self.sites.get(site_id)
        if site is None:
            raise ResourceNotFoundError("Site not found.")
        self._apply_site_fields(site, name, location, status, completion_percentage,
                                start_date, estimated_completion)
        self.session.commit()
        logger.info("Site updated: %s (%s)", site.name, site.status)
        return site

    # ---------- 材料 ----------

    @staticmethod
    def _apply_material_fields(material, name, category, unit_of_measure, unit_cost, reorder_threshold):
        name = (name or '').strip()
        category = (category or '').strip()
        unit_of_measure = (unit_of_measure or '').strip()
        if not name or not category or not unit_of_measure:
            raise ValidationError('Please fill in all required fields (Name, Category, Unit).')
        try:
            unit_cost = float(unit_cost or 0)
            reorder_threshold = float(reorder_threshold or 0)
        except (TypeError, ValueError):
            raise ValidationError('Unit cost and reorder threshold must be numbers.')
        if unit_cost < 0 or reorder_threshold < 0:
            raise ValidationError('Unit cost and reorder threshold cannot be negative.')

        material.name = name
        material.category = category
        material.unit_of_measure = unit_of_measure
        material.unit_cost = unit_cost
        material.reorder_threshold = reorder_threshold

    def create_material(self, name, category, unit_of_measure, unit_cost=0, reorder_threshold=0) -> Material:
        material = Material()
        self._apply_material_fields(material, name, category, unit_of_measure, unit_cost, reorder_threshold)
        self.materials.add(material)
        self.session.commit()
        cache.delete_memoized(material_categories)
        logger.info("Material created: %s", material.name)
        return material

    def update_material(self, material_id, name, category, unit_of_measure,
                        unit_cost=0, reorder_threshold=0) -> Material:
        material = self.materials.get(material_id)
        if material is None:
            raise ResourceNotFoundError("Material not found.")
        self._apply_material_fields(material, name, category, unit_of_measure, unit_cost, reorder_threshold)
        self.session.commit()
        cache.delete_memoized(material_categories)
        return material
