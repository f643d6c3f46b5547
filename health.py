from datetime import datetime

from flask import Blueprint, jsonify
from sqlalchemy import text

from models import db

health_bp = Blueprint('health', __name__)


@health_bp.route('/health')
def health_check():
    """Health check endpoint for the hosting platform"""
    try:
        db.session.execute(text('SELECT 1'))
        database = 'ok'
    except Exception as e:
        db.session.rollback()
        database = f'error: {e}'
    return jsonify({
        'status': 'ok' if database == 'ok' else 'degraded',
        'service': 'sis-mainriang',
        'database': database,
        'version': '1.0.0',
        'timestamp': datetime.utcnow().isoformat() + 'Z'
    })
