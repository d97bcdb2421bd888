import random
from faker import Faker
from faker.providers import BaseProvider

class ConstructionProvider(BaseProvider):
    """
    施工场景数据生成器
    生成站点名、材料目录等演示数据
    """

    # 站点名后缀
    site_suffixes = [
        'Residences', 'Plaza', 'Office Park', 'Bridge', 'Mall', 'Estate',
        'Warehouse', 'Hospital Annex', 'School Block', 'Towers', 'Apartments'
    ]

    # 材料目录 (名称, 分类, 单位, 单价下限, 单价上限)
    material_catalog = [
        ('Portland Cement', 'Cement', 'bag', 8, 14),
        ('White Cement', 'Cement', 'bag', 12, 20),
        ('Sharp Sand', 'Aggregates', 'ton', 20, 40),
        ('Granite Chippings', 'Aggregates', 'ton', 35, 60),
        ('Laterite', 'Aggregates', 'trip', 90, 150),
        ('Iron Rod 12mm', 'Steel', 'length', 7, 12),
        ('Iron Rod 16mm', 'Steel', 'length', 11, 18),
        ('Binding Wire', 'Steel', 'roll', 15, 25),
        ('Sandcrete Block 6"', 'Blocks', 'piece', 1, 3),
        ('Sandcrete Block 9"', 'Blocks', 'piece', 2, 4),
        ('Roofing Sheet', 'Roofing', 'sheet', 18, 35),
        ('Hardwood Plank', 'Timber', 'plank', 6, 15),
        ('Plywood 18mm', 'Timber', 'sheet', 25, 45),
        ('PVC Pipe 4"', 'Plumbing', 'length', 9, 16),
        ('Electrical Cable 2.5mm', 'Electrical', 'roll', 40, 75),
        ('Emulsion Paint', 'Finishing', 'bucket', 30, 60),
        ('Floor Tiles', 'Finishing', 'box', 14, 28),
    ]

    def site_name(self):
        """生成站点名"""
        return f"{self.generator.street_name()} {self.random_element(self.site_suffixes)}"

    def construction_materials(self):
        """完整材料目录，单价在区间内随机：[(名称, 分类, 单位, 单价), ...]"""
        return [
            (name, category, unit, round(random.uniform(low, high), 2))
            for name, category, unit, low, high in self.material_catalog
        ]

# 初始化 Faker 并添加自定义 Provider
fake = Faker('en_US')
fake.add_provider(ConstructionProvider)
