import os
from datetime import timedelta
from dotenv import load_dotenv

# 加载 .env 环境变量
load_dotenv()
basedir = os.path.abspath(os.path.dirname(__file__))

class Config:
    """基础配置类"""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'hard-to-guess-string'
    APP_NAME = 'Cornerstone Inventory Tracker'

    # 数据库配置
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_RECORD_QUERIES = True

    # 会话配置 (1 小时无操作过期)
    PERMANENT_SESSION_LIFETIME = timedelta(seconds=3600)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    # 密码策略
    MIN_PASSWORD_LENGTH = 8

    # 预警阈值
    # 预测性预警：预计库存低于 阈值 × (1 + 百分比) 时触发
    PREDICTIVE_ALERT_PERCENTAGE = int(os.environ.get('PREDICTIVE_ALERT_PERCENTAGE', 20))
    # 用量分析窗口 (天)
    USAGE_ANALYSIS_DAYS = int(os.environ.get('USAGE_ANALYSIS_DAYS', 30))
    # 预测视野 (天)
    ALERT_HORIZON_DAYS = int(os.environ.get('ALERT_HORIZON_DAYS', 7))
    # 损耗报表差异率阈值 (%)，超过则标记
    WASTE_VARIANCE_THRESHOLD = float(os.environ.get('WASTE_VARIANCE_THRESHOLD', 10.0))

    # 分页配置
    TRANSACTIONS_PER_PAGE = 20

    CURRENCY_SYMBOL = '₵'

    # 缓存配置 (默认使用 SimpleCache，生产环境可改 Redis)
    CACHE_TYPE = "SimpleCache"
    CACHE_DEFAULT_TIMEOUT = 300

    @staticmethod
    def init_app(app):
        # 确保 SQLite 实例目录存在
        instance_dir = os.path.join(basedir, 'instance')
        if not os.path.exists(instance_dir):
            os.makedirs(instance_dir)

class DevelopmentConfig(Config):
    """开发环境配置"""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, 'instance', 'cornerstone.db')

class ProductionConfig(Config):
    """生产环境配置"""
    DEBUG = False

    DATABASE_URL = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, 'instance', 'cornerstone_prod.db')
    # PostgreSQL URL 修正（部分托管平台使用 postgres://）
    if DATABASE_URL and DATABASE_URL.startswith('postgres://'):
        DATABASE_URL = DATABASE_URL.replace('postgres://', 'postgresql://', 1)

    SQLALCHEMY_DATABASE_URI = DATABASE_URL

    # 安全设置
    SESSION_COOKIE_SECURE = os.environ.get('SESSION_COOKIE_SECURE', 'false').lower() in ('1', 'true', 'yes')
    SESSION_COOKIE_SAMESITE = 'Strict'

    @classmethod
    def init_app(cls, app):
        Config.init_app(app)

class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    WTF_CSRF_ENABLED = False
    CACHE_TYPE = 'NullCache'

    @staticmethod
    def init_app(app):
        pass

config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
