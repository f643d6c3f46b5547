"""
JSON endpoints: cascading dropdown data, badge counters and account
administration.
"""
import logging

from flask import Blueprint, jsonify, request

import identity
from access import ADMIN_PANEL_ROLES, current_user, roles_required
from crud import log_activity
from errors import AccountNotFoundError
from forms import sub_item_label
from home import visible_pengumuman
from keuangan import pending_for
from models import Cabang, Guru, Kelas, Siswa, SubIndikator, SubTrilogi, TahapPerkembangan, db
from security import login_required

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__, url_prefix='/api')


def int_param(name):
    value = request.args.get(name, '')
    return int(value) if value.isdigit() else None


def branch_name():
    """Branch from ``cabang`` (name) or ``cabang_id``."""
    cabang_id = int_param('cabang_id')
    if cabang_id:
        cabang = db.session.get(Cabang, cabang_id)
        return cabang.nama if cabang else None
    return request.args.get('cabang') or None


# Cascading dropdowns

@api_bp.route('/kelas')
@login_required
def kelas():
    cabang = branch_name()
    if not cabang:
        return jsonify([])
    rows = Kelas.query.filter_by(cabang=cabang).order_by(Kelas.nama_kelas).all()
    return jsonify([{'id': k.id, 'nama': k.nama_kelas} for k in rows])


@api_bp.route('/siswa')
@login_required
def siswa():
    kelas_id = int_param('kelas_id')
    if kelas_id:
        kelas_row = db.session.get(Kelas, kelas_id)
        if not kelas_row:
            return jsonify([])
        kelas_nama, cabang = kelas_row.nama_kelas, kelas_row.cabang
    else:
        kelas_nama, cabang = request.args.get('kelas'), branch_name()
    if not kelas_nama:
        return jsonify([])
    query = Siswa.query.filter_by(kelas=kelas_nama)
    if cabang:
        query = query.filter_by(cabang=cabang)
    return jsonify([{'id': s.id, 'nama': s.nama} for s in query.order_by(Siswa.nama)])


@api_bp.route('/sub-indikator')
@login_required
def sub_indikator():
    group_id = int_param('group_id')
    rows = SubIndikator.query.filter_by(group_id=group_id).order_by(SubIndikator.kode).all() if group_id else []
    return jsonify([{'id': s.id, 'nama': sub_item_label(s)} for s in rows])


@api_bp.route('/sub-trilogi')
@login_required
def sub_trilogi():
    group_id = int_param('group_id')
    rows = SubTrilogi.query.filter_by(group_id=group_id).order_by(SubTrilogi.kode).all() if group_id else []
    return jsonify([{'id': s.id, 'nama': sub_item_label(s)} for s in rows])


@api_bp.route('/tahap')
@login_required
def tahap():
    kelompok_usia_id = int_param('kelompok_usia_id')
    rows = []
    if kelompok_usia_id:
        rows = (TahapPerkembangan.query.filter_by(kelompok_usia_id=kelompok_usia_id)
                .order_by(TahapPerkembangan.id).all())
    return jsonify([{'id': t.id, 'nama': t.deskripsi} for t in rows])


@api_bp.route('/badges')
@login_required
def badges():
    user = current_user()
    if user is None:
        return jsonify({'error': 'Authentication required'}), 401
    return jsonify({
        'pengajuan': len(pending_for(user)),
        'pengumuman': len(visible_pengumuman(user)),
    })


# Account administration

def sync_profile_email(uid, email):
    """Keep Guru / Siswa emails in line with the account so role lookup still matches."""
    for model in (Guru, Siswa):
        for profile in model.query.filter_by(uid=uid).all():
            profile.email = email


@api_bp.route('/admin/update-user', methods=['POST'])
@login_required
@roles_required(*ADMIN_PANEL_ROLES)
def update_user():
    data = request.get_json(silent=True) or {}
    uid = data.get('uid')
    if not uid:
        return jsonify({'error': 'uid is required'}), 400
    try:
        account = identity.update_account(uid, email=data.get('email'), password=data.get('password'),
                                          commit=False)
        if data.get('email'):
            sync_profile_email(uid, account.email)
        log_activity(f'Memperbarui akun {account.email}')
        db.session.commit()
        return jsonify({'success': True})
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Error updating account {uid}")
        return jsonify({'error': str(e)}), 500


@api_bp.route('/admin/delete-user', methods=['POST'])
@login_required
@roles_required(*ADMIN_PANEL_ROLES)
def delete_user():
    data = request.get_json(silent=True) or {}
    uid = data.get('uid')
    email = data.get('email')
    if not uid and not email:
        return jsonify({'error': 'uid or email is required'}), 400
    try:
        if not uid:
            account = identity.get_by_email(email)
            if account is None:
                return jsonify({'success': True, 'message': 'User not found, assumed deleted'})
            uid = account.uid
        try:
            identity.delete_account(uid, commit=False)
        except AccountNotFoundError:
            return jsonify({'success': True, 'message': 'User already deleted'})
        log_activity(f'Menghapus akun {uid}')
        db.session.commit()
        return jsonify({'success': True, 'message': 'User Auth deleted'})
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Error deleting account {uid or email}")
        return jsonify({'error': str(e)}), 500
