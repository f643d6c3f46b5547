"""
Student screens: own indicator scores and teacher notes.
"""
from flask import Blueprint, render_template, request

from access import SISWA, current_user, roles_required
from forms import nilai_labels
from models import CatatanGuru, NilaiIndikator, Periode
from penilaian import KATEGORI_INDIKATOR, default_semester_id, int_arg
from security import login_required

siswa_bp = Blueprint('siswa', __name__, url_prefix='/siswa')


@siswa_bp.route('/nilai-indikator')
@login_required
@roles_required(SISWA)
def nilai_indikator():
    user = current_user()
    semester_id = int_arg(request.args.get('semester_id')) or default_semester_id()
    rows = []
    if semester_id:
        rows = (NilaiIndikator.query.filter_by(siswa_id=user.siswa.id, semester_id=semester_id)
                .order_by(NilaiIndikator.tanggal.desc()).all())
    return render_template('siswa/nilai_indikator.html', rows=rows, labels=nilai_labels(KATEGORI_INDIKATOR),
                           semesters=Periode.query.order_by(Periode.id.desc()).all(), semester_id=semester_id)


@siswa_bp.route('/catatan')
@login_required
@roles_required(SISWA)
def catatan():
    user = current_user()
    notes = (CatatanGuru.query.filter_by(siswa_id=user.siswa.id)
             .order_by(CatatanGuru.created_at.desc()).all())
    return render_template('siswa/catatan.html', notes=notes)
