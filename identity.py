"""
Account service: the login identities behind teacher and student profiles.
"""
import logging

from errors import AccountNotFoundError, EmailExistsError, IdentityError, WeakPasswordError
from models import Account, db
from security import check_password, hash_password

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def normalize_email(email):
    return (email or '').strip().lower()


def get_by_email(email):
    email = normalize_email(email)
    if not email:
        return None
    return Account.query.filter_by(email=email).first()


def get_by_uid(uid):
    if not uid:
        return None
    return Account.query.filter_by(uid=uid).first()


def create_account(email, password, display_name=None, commit=True):
    email = normalize_email(email)
    if not email:
        raise IdentityError('Email wajib diisi')
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise WeakPasswordError(f'Password minimal {MIN_PASSWORD_LENGTH} karakter')
    if get_by_email(email):
        raise EmailExistsError(f'Email {email} sudah terdaftar')

    account = Account(email=email, password_hash=hash_password(password), display_name=display_name)
    db.session.add(account)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    logger.info(f"Account created for {email}")
    return account


def update_account(uid, email=None, password=None, display_name=None, commit=True):
    """Update an account. Passwords shorter than the minimum are ignored."""
    account = get_by_uid(uid)
    if not account:
        raise AccountNotFoundError(f'Akun {uid} tidak ditemukan')

    email = normalize_email(email)
    if email and email != account.email:
        other = get_by_email(email)
        if other and other.uid != account.uid:
            raise EmailExistsError(f'Email {email} sudah terdaftar')
        account.email = email
    if password and len(password) >= MIN_PASSWORD_LENGTH:
        account.password_hash = hash_password(password)
    if display_name:
        account.display_name = display_name

    if commit:
        db.session.commit()
    return account


def delete_account(uid, commit=True):
    account = get_by_uid(uid)
    if not account:
        raise AccountNotFoundError(f'Akun {uid} tidak ditemukan')
    db.session.delete(account)
    if commit:
        db.session.commit()
    logger.info(f"Account {uid} deleted")


def authenticate(email, password):
    account = get_by_email(email)
    if account and not account.disabled and check_password(password, account.password_hash):
        return account
    return None


def change_password(uid, old_password, new_password):
    account = get_by_uid(uid)
    if not account:
        raise AccountNotFoundError('Akun tidak ditemukan')
    if not check_password(old_password, account.password_hash):
        raise IdentityError('Password lama salah')
    if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
        raise WeakPasswordError(f'Password minimal {MIN_PASSWORD_LENGTH} karakter')
    account.password_hash = hash_password(new_password)
    db.session.commit()


def set_password(uid, new_password):
    account = get_by_uid(uid)
    if not account:
        raise AccountNotFoundError('Akun tidak ditemukan')
    if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
        raise WeakPasswordError(f'Password minimal {MIN_PASSWORD_LENGTH} karakter')
    account.password_hash = hash_password(new_password)
    db.session.commit()
