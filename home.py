"""
Landing pages for every signed-in user and the read-only information views
(schedules, activities, announcements, documents).
"""
import logging

from flask import Blueprint, abort, redirect, render_template, send_from_directory, session, url_for
from sqlalchemy import or_

import storage
from access import KEPALA_SEKOLAH, SISWA, classes_taught, current_user
from errors import StorageError
from forms import HARI
from models import CatatanGuru, Dokumen, Jadwal, JadwalDetil, Kegiatan, Pengajuan, Pengumuman, Siswa
from security import login_required

logger = logging.getLogger(__name__)

home_bp = Blueprint('home', __name__)


def detail_sort_key(detail):
    hari = HARI.index(detail.hari) if detail.hari in HARI else len(HARI)
    return hari, detail.waktu or ''


def branch_or_general(query, model, user):
    """Rows of the user's branch plus rows meant for every branch."""
    if user.sees_all_branches:
        return query
    return query.filter(or_(model.cabang == user.cabang, model.cabang.is_(None), model.cabang == ''))


def visible_jadwal(user):
    """Schedules the user may see, each with its details in weekday order."""
    if user is None:
        return []
    query = Jadwal.query
    if user.sees_all_branches:
        jadwal = query.all()
    elif user.role == KEPALA_SEKOLAH:
        jadwal = query.filter_by(cabang=user.cabang).all()
    elif user.is_teacher:
        taught = classes_taught(user)
        jadwal = [j for j in query.filter_by(cabang=user.cabang).all() if j.kelas in taught]
    elif user.role == SISWA:
        jadwal = query.filter_by(cabang=user.cabang, kelas=user.kelas).all()
    else:
        jadwal = []

    result = []
    for item in sorted(jadwal, key=lambda j: (j.cabang or '', j.kelas or '')):
        details = JadwalDetil.query.filter_by(jadwal_id=item.id).all()
        result.append((item, sorted(details, key=detail_sort_key)))
    return result


def visible_pengumuman(user):
    query = branch_or_general(Pengumuman.query, Pengumuman, user)
    return query.order_by(Pengumuman.created_at.desc()).all()


@home_bp.route('/')
@login_required
def index():
    user = current_user()
    if user is None:
        session.clear()
        return redirect(url_for('auth.login'))
    if user.is_admin_panel:
        return redirect(url_for('admin.dashboard'))
    return redirect(url_for('home.user_home'))


@home_bp.route('/beranda')
@login_required
def user_home():
    user = current_user()
    context = {
        'pengumuman': visible_pengumuman(user)[:3],
        'jadwal': visible_jadwal(user),
    }
    if user.is_teacher:
        taught = classes_taught(user)
        context['jumlah_siswa'] = Siswa.query.filter(Siswa.cabang == user.cabang,
                                                    Siswa.kelas.in_(taught)).count() if taught else 0
        context['kelas_diajar'] = taught
        context['pengajuan_saya'] = (Pengajuan.query.filter_by(user_uid=user.uid)
                                     .order_by(Pengajuan.created_at.desc()).limit(5).all())
    elif user.role == SISWA:
        context['catatan'] = (CatatanGuru.query.filter_by(siswa_id=user.siswa.id)
                              .order_by(CatatanGuru.created_at.desc()).limit(3).all())
    return render_template('home/user_home.html', user=user, **context)


@home_bp.route('/jadwal')
@login_required
def jadwal():
    return render_template('home/jadwal.html', jadwal=visible_jadwal(current_user()))


@home_bp.route('/kegiatan')
@login_required
def kegiatan():
    user = current_user()
    rows = branch_or_general(Kegiatan.query, Kegiatan, user).order_by(Kegiatan.tanggal.desc()).all()
    return render_template('home/kegiatan.html', kegiatan=rows)


@home_bp.route('/pengumuman')
@login_required
def pengumuman():
    return render_template('home/pengumuman.html', pengumuman=visible_pengumuman(current_user()))


@home_bp.route('/dokumen')
@login_required
def dokumen():
    rows = Dokumen.query.order_by(Dokumen.created_at.desc()).all()
    return render_template('home/dokumen.html', dokumen=rows)


@home_bp.route('/files/<path:storage_path>')
@login_required
def files(storage_path):
    try:
        if not storage.exists(storage_path):
            abort(404)
    except StorageError:
        logger.warning(f"Rejected storage path {storage_path}")
        abort(404)
    return send_from_directory(storage.upload_root(), storage_path)
