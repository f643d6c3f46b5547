import logging
from datetime import datetime, timedelta
from functools import wraps

import bcrypt
from flask import current_app, flash, jsonify, redirect, request, session, url_for
from flask_wtf.csrf import CSRFProtect
from jose import JWTError, jwt

logger = logging.getLogger(__name__)

csrf = CSRFProtect()

RESET_TOKEN_PURPOSE = 'password-reset'


def add_security_headers(response):
    """Add security headers to response"""
    # Content Security Policy
    response.headers['Content-Security-Policy'] = (
        "default-src 'self'; "
        "script-src 'self' 'unsafe-inline' cdn.jsdelivr.net cdnjs.cloudflare.com; "
        "style-src 'self' 'unsafe-inline' cdn.jsdelivr.net cdnjs.cloudflare.com; "
        "font-src 'self' cdn.jsdelivr.net cdnjs.cloudflare.com; "
        "img-src 'self' data: blob:; "
        "frame-src 'self' blob:; "
        "form-action 'self'"
    )

    response.headers['X-Frame-Options'] = 'SAMEORIGIN'
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['Referrer-Policy'] = 'same-origin'
    response.headers['Permissions-Policy'] = 'geolocation=(), microphone=(), camera=()'

    # Uploaded images and static assets may be cached, pages may not
    if any(response.mimetype.startswith(t) for t in ['text/css', 'application/javascript', 'image/']):
        response.headers['Cache-Control'] = 'public, max-age=31536000'
    else:
        response.headers['Cache-Control'] = 'no-store, no-cache, must-revalidate, max-age=0'

    return response


def init_security(app):
    """Initialize security features for the Flask app"""
    csrf.init_app(app)
    app.after_request(add_security_headers)


# Passwords

def hash_password(password):
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def check_password(password, password_hash):
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash stored for this account
        logger.warning("Unreadable password hash encountered")
        return False


# Password reset tokens

def make_reset_token(uid):
    minutes = current_app.config.get('RESET_TOKEN_MINUTES', 30)
    claims = {
        'sub': uid,
        'purpose': RESET_TOKEN_PURPOSE,
        'exp': datetime.utcnow() + timedelta(minutes=minutes),
    }
    return jwt.encode(claims, current_app.config['SECRET_KEY'], algorithm='HS256')


def read_reset_token(token):
    """Return the uid carried by a valid reset token, or None."""
    try:
        claims = jwt.decode(token, current_app.config['SECRET_KEY'], algorithms=['HS256'])
    except JWTError as e:
        logger.info(f"Rejected reset token: {e}")
        return None
    if claims.get('purpose') != RESET_TOKEN_PURPOSE:
        return None
    return claims.get('sub')


# Route guards

def wants_json():
    return request.path.startswith('/api/')


def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'logged_in' not in session:
            if wants_json():
                return jsonify({'error': 'Authentication required'}), 401
            flash('Silakan login terlebih dahulu.', 'warning')
            return redirect(url_for('auth.login', next=request.path))
        return f(*args, **kwargs)
    return decorated_function
