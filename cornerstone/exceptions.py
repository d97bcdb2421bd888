class CornerstoneException(Exception):
    """Cornerstone 系统基础异常类"""
    def __init__(self, message, code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['code'] = self.code
        rv['success'] = False
        return rv

class ValidationError(CornerstoneException):
    """表单/数据验证错误"""
    def __init__(self, message="Invalid data", payload=None):
        super().__init__(message, code=400, payload=payload)

class PermissionDenied(CornerstoneException):
    """权限不足"""
    def __init__(self, message="Access denied", payload=None):
        super().__init__(message, code=403, payload=payload)

class ResourceNotFoundError(CornerstoneException):
    """站点/材料/预警等对象不存在"""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, code=404, payload=payload)


# ---- 库存事务异常 ----

class InvalidQuantityError(ValidationError):
    """数量非法 (<= 0、非数字或非有限值)"""
    def __init__(self, message="Quantity must be a number greater than zero.", payload=None):
        super().__init__(message, payload=payload)

class InvalidTransferError(ValidationError):
    """调拨目标非法 (与源站点相同或不存在)"""
    def __init__(self, message="Please select a valid destination site.", payload=None):
        super().__init__(message, payload=payload)

class InsufficientStockError(CornerstoneException):
    """扣减数量超过当前库存"""
    def __init__(self, message="Insufficient inventory. Cannot remove more than available.", payload=None):
        super().__init__(message, code=409, payload=payload)

class PersistenceError(CornerstoneException):
    """底层数据库读写/提交失败，调用方应视为无任何状态变更"""
    def __init__(self, message="A database error occurred. No changes were saved.", payload=None):
        super().__init__(message, code=500, payload=payload)
