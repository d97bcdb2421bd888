import os
from cornerstone import create_app
from cornerstone.extensions import db
from cornerstone.models import (
    User, Site, Material, InventoryLine, Transaction,
    Alert, WasteReport, AuditLog
)

# 从环境变量获取配置模式
# 支持 FLASK_ENV 或 FLASK_CONFIG
config_name = os.getenv('FLASK_ENV') or os.getenv('FLASK_CONFIG') or 'default'
if config_name in ('development', 'dev'):
    config_name = 'development'

app = create_app(config_name)

@app.shell_context_processor
def make_shell_context():
    """
    配置 Flask Shell 上下文。
    允许在命令行中使用 'flask shell' 时自动导入 db 和模型。
    """
    return dict(
        db=db,
        app=app,
        User=User,
        Site=Site,
        Material=Material,
        InventoryLine=InventoryLine,
        Transaction=Transaction,
        Alert=Alert,
        WasteReport=WasteReport,
        AuditLog=AuditLog,
    )

if __name__ == '__main__':
    print("-------------------------------------------------------")
    print("   Cornerstone Inventory Tracker                       ")
    print("   Target: Localhost:5000                              ")
    print("-------------------------------------------------------")
    app.run(host='0.0.0.0', port=5000)
