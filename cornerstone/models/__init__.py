# 按照依赖顺序导入
from .base import BaseModel
from .auth import User
from .catalog import Site, Material
from .stock import InventoryLine, Transaction
from .alert import Alert, WasteReport
from .audit import AuditLog
