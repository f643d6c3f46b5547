"""
Configuration for the SIS Main Riang administration system
"""
import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
INSTANCE_DIR = os.path.join(BASE_DIR, 'instance')


def database_uri():
    database_url = os.environ.get('DATABASE_URL')
    if database_url and database_url.startswith("postgres://"):
        # Hosted Postgres hands out the old scheme, SQLAlchemy needs postgresql://
        return database_url.replace("postgres://", "postgresql://", 1)
    if database_url:
        return database_url
    return f"sqlite:///{os.path.join(INSTANCE_DIR, 'sis.db')}"


class Config:
    # Flask
    DEBUG = False
    TESTING = False
    SECRET_KEY = os.environ.get('SECRET_KEY', 'change-me-in-production')

    # Security
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    PERMANENT_SESSION_LIFETIME = 3600  # 1 hour
    WTF_CSRF_TIME_LIMIT = None

    # Database
    SQLALCHEMY_DATABASE_URI = database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Object storage
    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER', os.path.join(INSTANCE_DIR, 'uploads'))
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB max file size

    # School
    SCHOOL_NAME = os.environ.get('SCHOOL_NAME', 'Main Riang Islamic Preschool')
    HEAD_OFFICE_BRANCH = os.environ.get('HEAD_OFFICE_BRANCH', 'Main Riang Pusat')

    # Accounts
    DEFAULT_ADMIN_EMAIL = os.environ.get('DEFAULT_ADMIN_EMAIL')
    DEFAULT_ADMIN_PASSWORD = os.environ.get('DEFAULT_ADMIN_PASSWORD')
    RESET_TOKEN_MINUTES = int(os.environ.get('RESET_TOKEN_MINUTES', 30))

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = 'DEBUG'


class ProductionConfig(Config):
    PREFERRED_URL_SCHEME = 'https'
    SESSION_COOKIE_SECURE = True

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': 10,
        'pool_timeout': 30,
        'pool_recycle': 1800,  # Recycle connections after 30 minutes
        'max_overflow': 2
    }

    @staticmethod
    def init_app(app):
        # Never run production with the placeholder key
        if app.config['SECRET_KEY'] == 'change-me-in-production':
            app.config['SECRET_KEY'] = os.urandom(24)


class TestingConfig(Config):
    TESTING = True
    WTF_CSRF_ENABLED = False
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SECRET_KEY = 'testing-secret'
    SERVER_NAME = 'localhost'
    HEAD_OFFICE_BRANCH = 'Main Riang Pusat'
    LOG_LEVEL = 'WARNING'


config_by_name = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
}


def get_config(name=None):
    name = name or os.environ.get('FLASK_ENV', 'production')
    return config_by_name.get(name, ProductionConfig)
