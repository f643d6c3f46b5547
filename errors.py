"""
Domain errors and the HTTP error pages.
"""
import logging

from flask import jsonify, render_template, request

logger = logging.getLogger(__name__)


class SisError(Exception):
    """Base class for errors raised by the application services."""


class WorkflowError(SisError):
    """A submission cannot move to the requested status."""


class IdentityError(SisError):
    pass


class EmailExistsError(IdentityError):
    pass


class AccountNotFoundError(IdentityError):
    pass


class WeakPasswordError(IdentityError):
    pass


class StorageError(SisError):
    pass


def _error_response(code, title, message):
    if request.path.startswith('/api/'):
        return jsonify({'error': message}), code
    return render_template('error.html', code=code, title=title, message=message), code


def register_error_handlers(app):
    @app.errorhandler(403)
    def forbidden(e):
        return _error_response(403, 'Akses ditolak', 'Anda tidak memiliki akses ke halaman ini.')

    @app.errorhandler(404)
    def not_found(e):
        return _error_response(404, 'Tidak ditemukan', 'Halaman atau data yang diminta tidak ditemukan.')

    @app.errorhandler(500)
    def server_error(e):
        logger.error(f"Unhandled server error on {request.path}: {e}")
        return _error_response(500, 'Terjadi kesalahan', 'Terjadi kesalahan pada server. Silakan coba lagi.')
