"""
Teacher/staff and student administration. Both profiles own a login account.
"""
import logging

from flask import Blueprint, request
from werkzeug.datastructures import FileStorage

import identity
import storage
from access import ADMIN, STAFF_ROLES, TEACHER_ROLES, current_user
from crud import CrudResource, populate_columns, scope_to_branch
from errors import AccountNotFoundError, IdentityError
from forms import GuruForm, SiswaForm, cabang_name_choices, kelas_name_choices
from models import Guru, Siswa

logger = logging.getLogger(__name__)

people_bp = Blueprint('people', __name__, url_prefix='/data')


def populate_profile(obj, form):
    populate_columns(obj, form)
    obj.email = identity.normalize_email(form.email.data)


def sync_account(obj, form, created):
    """Create or update the login account behind a profile."""
    password = form.password.data
    if obj.uid and identity.get_by_uid(obj.uid):
        identity.update_account(obj.uid, email=obj.email, password=password, display_name=obj.nama,
                                commit=False)
        return
    if not password:
        raise IdentityError('Password wajib diisi untuk membuat akun baru')
    account = identity.create_account(obj.email, password, display_name=obj.nama, commit=False)
    obj.uid = account.uid


def delete_account(obj):
    if not obj.uid:
        return
    try:
        identity.delete_account(obj.uid, commit=False)
    except AccountNotFoundError:
        logger.warning(f"Account {obj.uid} of {obj.nama} already gone")


def filter_by_branch(query, user):
    if request.args.get('cabang'):
        query = query.filter_by(cabang=request.args['cabang'])
    return query


# Guru

def assignable_roles(user, current_role=None):
    """Only an Admin hands out admin-panel roles; others keep what a profile already has."""
    if user is not None and user.role == ADMIN:
        return list(STAFF_ROLES)
    roles = list(TEACHER_ROLES)
    if current_role and current_role not in roles:
        roles.append(current_role)
    return roles


def prepare_guru_form(form, obj=None):
    form.role.choices = [(r, r) for r in assignable_roles(current_user(), obj.role if obj else None)]
    form.cabang.choices = cabang_name_choices('-- Tanpa Cabang --')


guru = CrudResource(
    'guru', Guru, GuruForm, 'Guru',
    columns=[('nama', 'Nama'), ('email', 'Email'), ('role', 'Role'), ('cabang', 'Cabang'),
             ('status', 'Status')],
    order_by=Guru.nama,
    scope=scope_to_branch,
    filter_query=filter_by_branch,
    prepare_form=prepare_guru_form,
    populate=populate_profile,
    after_save=sync_account,
    on_delete=delete_account,
    filters=[('cabang', 'Cabang', lambda: cabang_name_choices('Semua Cabang'))],
).register(people_bp)


# Siswa

def prepare_siswa_form(form, obj=None):
    form.cabang.choices = cabang_name_choices()
    form.kelas.choices = kelas_name_choices(form.cabang.data)


def save_siswa(obj, form, created):
    sync_account(obj, form, created)
    foto = form.foto.data
    if not (isinstance(foto, FileStorage) and foto.filename):
        return None
    old_path = obj.foto_path
    obj.foto_path = storage.upload(foto, 'siswa', storage.IMAGE_EXTENSIONS)
    return [obj.foto_path], [old_path] if old_path else []


def delete_siswa(obj):
    delete_account(obj)
    if obj.foto_path:
        storage.delete(obj.foto_path)


def filter_siswa(query, user):
    query = filter_by_branch(query, user)
    if request.args.get('kelas'):
        query = query.filter_by(kelas=request.args['kelas'])
    return query


siswa = CrudResource(
    'siswa', Siswa, SiswaForm, 'Siswa',
    columns=[('nama', 'Nama'), ('kelas', 'Kelas'), ('cabang', 'Cabang'), ('nama_orang_tua', 'Orang Tua'),
             ('email', 'Email'), ('status', 'Status')],
    order_by=Siswa.nama,
    scope=scope_to_branch,
    filter_query=filter_siswa,
    prepare_form=prepare_siswa_form,
    populate=populate_profile,
    after_save=save_siswa,
    on_delete=delete_siswa,
    filters=[('cabang', 'Cabang', lambda: cabang_name_choices('Semua Cabang')),
             ('kelas', 'Kelas', lambda: kelas_name_choices(request.args.get('cabang'), 'Semua Kelas'))],
).register(people_bp)
