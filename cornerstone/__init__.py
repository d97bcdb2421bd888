import logging
import colorlog
from flask import Flask, render_template, request, jsonify
from config import config
from cornerstone.extensions import db, migrate, login_manager, cache, csrf
from cornerstone.exceptions import CornerstoneException

# CLI 命令模块
from cornerstone import commands


def create_app(config_name='default', **overrides):
    """Cornerstone 应用工厂函数"""
    app = Flask(__name__)

    # 1. 加载配置 (overrides 供测试替换数据库等)
    app.config.from_object(config[config_name])
    app.config.update(overrides)
    config[config_name].init_app(app)

    # 2. 初始化扩展
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    cache.init_app(app)
    csrf.init_app(app)

    # 3. 配置日志
    configure_logging(app)

    # 4. 注册蓝图 (Blueprints)
    register_blueprints(app)

    # 5. 注册全局错误处理
    register_error_handlers(app)

    # 6. 注册 CLI 命令
    register_commands(app)

    # 7. 模板全局变量
    @app.context_processor
    def inject_globals():
        return {
            'app_name': app.config.get('APP_NAME'),
            'currency_symbol': app.config.get('CURRENCY_SYMBOL', ''),
        }

    return app


def register_blueprints(app):
    """注册所有业务模块蓝图"""
    # 主页蓝图 (仪表盘)
    from cornerstone.blueprints.main import main_bp
    app.register_blueprint(main_bp)

    # 认证蓝图
    from cornerstone.blueprints.auth import auth_bp
    app.register_blueprint(auth_bp, url_prefix='/auth')

    # 库存事务蓝图
    from cornerstone.blueprints.inventory import inventory_bp
    app.register_blueprint(inventory_bp, url_prefix='/inventory')

    # 站点管理蓝图
    from cornerstone.blueprints.sites import sites_bp
    app.register_blueprint(sites_bp, url_prefix='/sites')

    # 材料管理蓝图
    from cornerstone.blueprints.materials import materials_bp
    app.register_blueprint(materials_bp, url_prefix='/materials')

    # 报表蓝图
    from cornerstone.blueprints.reports import reports_bp
    app.register_blueprint(reports_bp, url_prefix='/reports')

    # 预警蓝图
    from cornerstone.blueprints.alerts import alerts_bp
    app.register_blueprint(alerts_bp, url_prefix='/alerts')


def _wants_json():
    return request.is_json or request.accept_mimetypes.best == 'application/json'


def register_error_handlers(app):
    @app.errorhandler(403)
    def forbidden(e):
        if _wants_json():
            return jsonify({'error': 'Permission denied'}), 403
        return render_template('errors/403.html'), 403

    @app.errorhandler(404)
    def page_not_found(e):
        if _wants_json():
            return jsonify({'error': 'Not found'}), 404
        return render_template('errors/404.html'), 404

    @app.errorhandler(500)
    def internal_server_error(e):
        db.session.rollback()
        return render_template('errors/500.html'), 500

    @app.errorhandler(CornerstoneException)
    def handle_domain_error(e):
        """视图未捕获的业务异常"""
        app.logger.warning("Unhandled %s: %s", type(e).__name__, e.message)
        if _wants_json():
            return jsonify(e.to_dict()), e.code
        return render_template('errors/error.html', error=e), e.code


def register_commands(app):
    """注册 Flask CLI 命令"""
    app.cli.add_command(commands.forge)
    app.cli.add_command(commands.status)
    app.cli.add_command(commands.create_admin)
    app.cli.add_command(commands.evaluate_alerts)


def configure_logging(app):
    """配置彩色控制台日志，提升开发体验"""
    if app.debug:
        handler = logging.StreamHandler()
        handler.setLevel(logging.INFO)

        formatter = colorlog.ColoredFormatter(
            "%(log_color)s[%(asctime)s] %(levelname)-8s%(reset)s %(blue)s%(name)s: %(message)s",
            datefmt="%H:%M:%S",
            reset=True,
            log_colors={
                'DEBUG':    'cyan',
                'INFO':     'green',
                'WARNING':  'yellow',
                'ERROR':    'red',
                'CRITICAL': 'red,bg_white',
            },
            style='%'
        )
        handler.setFormatter(formatter)
        # app.logger 即 "cornerstone" logger，服务层模块级 logger 的记录会冒泡到这里
        app.logger.addHandler(handler)
