"""
SIS Main Riang: school administration web application.
"""
import logging
import os
from datetime import date, datetime

from flask import Flask
from flask_wtf.csrf import generate_csrf

from access import current_user, menu_for
from config import INSTANCE_DIR, get_config
from errors import register_error_handlers
from models import db
from reports_pdf import format_rupiah
from security import init_security

logger = logging.getLogger(__name__)


def cell_filter(value):
    """Render a model attribute inside a table cell."""
    if value is None or value == '':
        return '-'
    if isinstance(value, bool):
        return 'Ya' if value else 'Tidak'
    if isinstance(value, datetime):
        return value.strftime('%d/%m/%Y %H:%M')
    if isinstance(value, date):
        return value.strftime('%d/%m/%Y')
    if isinstance(value, float):
        return f'{value:,.1f}'
    if isinstance(value, (list, tuple)):
        return ', '.join(str(item) for item in value) or '-'
    return value


def tanggal_filter(value):
    if not value:
        return '-'
    return value.strftime('%d/%m/%Y')


def register_blueprints(app):
    from admin import admin_bp
    from akademik import akademik_bp
    from api import api_bp
    from auth import auth_bp
    from daycare import daycare_bp
    from guru import guru_bp
    from health import health_bp
    from home import home_bp
    from informasi import informasi_bp
    from keuangan import keuangan_bp
    from laporan import laporan_bp
    from pengaturan import pengaturan_bp
    from penilaian import penilaian_bp
    from people import people_bp
    from performance import performance_bp
    from siswa import siswa_bp

    for bp in (auth_bp, home_bp, admin_bp, pengaturan_bp, people_bp, akademik_bp, keuangan_bp,
               informasi_bp, penilaian_bp, laporan_bp, performance_bp, daycare_bp, guru_bp, siswa_bp,
               api_bp, health_bp):
        app.register_blueprint(bp)


def create_app(config_class=None):
    config_class = config_class or get_config()
    app = Flask(
        __name__,
        template_folder=os.path.join(os.path.dirname(os.path.abspath(__file__)), 'templates'),
        instance_path=INSTANCE_DIR,
    )
    app.config.from_object(config_class)
    if hasattr(config_class, 'init_app'):
        config_class.init_app(app)

    logging.basicConfig(
        level=getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )

    os.makedirs(app.instance_path, exist_ok=True)
    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)

    db.init_app(app)
    init_security(app)
    register_error_handlers(app)
    register_blueprints(app)

    app.add_template_filter(format_rupiah, 'rupiah')
    app.add_template_filter(cell_filter, 'cell')
    app.add_template_filter(tanggal_filter, 'tanggal')

    @app.context_processor
    def inject_globals():
        user = current_user()
        return {
            'current_user': user,
            'menu': menu_for(user.role) if user else [],
            'school_name': app.config['SCHOOL_NAME'],
            'csrf_token': generate_csrf,
            'now': datetime.now,
        }

    with app.app_context():
        db.create_all()

    logger.info(f"Application created with {config_class.__name__}")
    return app
