from flask import Blueprint, render_template

from access import ADMIN_PANEL_ROLES, current_user, roles_required
from keuangan import pending_for
from models import Cabang, Guru, Kelas, LogAktivitas, Pengumuman, Siswa
from security import login_required

admin_bp = Blueprint('admin', __name__, url_prefix='/admin')


@admin_bp.route('/')
@login_required
@roles_required(*ADMIN_PANEL_ROLES)
def dashboard():
    user = current_user()
    cabang = user.branch_scope()

    siswa = Siswa.query
    guru = Guru.query
    kelas = Kelas.query
    if cabang:
        siswa = siswa.filter_by(cabang=cabang)
        guru = guru.filter_by(cabang=cabang)
        kelas = kelas.filter_by(cabang=cabang)

    stats = {
        'siswa': siswa.count(),
        'siswa_aktif': siswa.filter_by(status='Aktif').count(),
        'guru': guru.count(),
        'kelas': kelas.count(),
        'cabang': Cabang.query.count() if not cabang else 1,
        'pengajuan_menunggu': len(pending_for(user)),
        'pengumuman': Pengumuman.query.count(),
    }
    recent_activity = LogAktivitas.query.order_by(LogAktivitas.waktu.desc()).limit(5).all()
    return render_template('admin/dashboard.html', stats=stats, recent_activity=recent_activity, user=user)
