"""
Monthly reports (laporan bulanan): a multi-section form, its listing and PDF.
"""
import io
import logging

from flask import (Blueprint, abort, current_app, flash, redirect, render_template, request, send_file,
                   url_for)
from werkzeug.datastructures import FileStorage

import storage
from access import ADMIN_PANEL_ROLES, current_user, roles_required
from crud import log_activity
from errors import StorageError
from forms import kelas_names
from keuangan import BULAN
from models import Cabang, LaporanBulanan, Periode, Siswa, db
from reports_pdf import laporan_bulanan_pdf
from security import login_required

logger = logging.getLogger(__name__)

laporan_bp = Blueprint('laporan', __name__, url_prefix='/laporan')

RINGKASAN_ASPEK = [
    ('capaian_pembelajaran', 'Capaian Pembelajaran'),
    ('kinerja_sdm', 'Kinerja SDM'),
    ('keuangan', 'Keuangan'),
    ('ppdb', 'PPDB'),
    ('isu_strategis', 'Isu Strategis'),
]

OKR_ASPEK = [
    ('pembelajaran', 'Pembelajaran dengan konsep Trilogi Main Riang'),
    ('budaya_kerja', 'Budaya Kerja & Pembinaan'),
    ('kebersihan', 'Kebersihan & Sarpras'),
    ('operasional', 'Operasional & Keuangan'),
    ('branding', 'Branding & Publikasi'),
]

DOKUMENTASI_SLOTS = 4


def to_int(value):
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError):
        return 0


def branch_classes(cabang_nama):
    """Unique class names of a branch with their real number of students."""
    rows = Siswa.query.filter_by(cabang=cabang_nama).all()
    return [(kelas, sum(1 for s in rows if s.kelas == kelas)) for kelas in kelas_names(cabang_nama)]


def prefill_sections(cabang_nama):
    """PPDB and student-count rows for every class of the branch."""
    classes = branch_classes(cabang_nama)
    return {
        'capaian_ppdb': {kelas: {'target': '', 'capaian': ''} for kelas, _ in classes},
        'jumlah_siswa': {kelas: {'jumlah': jumlah, 'keterangan': ''} for kelas, jumlah in classes},
    }


def ppdb_summary(capaian_ppdb):
    def line(kelas, target, capaian):
        persen = f'{capaian / target * 100:.1f}' if target else '0.0'
        return {'kelas': kelas, 'target': target, 'capaian': capaian, 'sisa': target - capaian, 'persen': persen}

    rows = []
    for kelas, value in sorted((capaian_ppdb or {}).items()):
        rows.append(line(kelas, to_int(value.get('target')), to_int(value.get('capaian'))))
    total = line('Total', sum(r['target'] for r in rows), sum(r['capaian'] for r in rows))
    return {'rows': rows, 'total': total}


def rows_from_lists(formdata, prefix, keys):
    """Zip parallel ``<prefix>_<key>`` lists into dicts, dropping empty rows."""
    columns = [formdata.getlist(f'{prefix}_{key}') for key in keys]
    rows = []
    for values in zip(*columns):
        row = {key: value.strip() for key, value in zip(keys, values)}
        if any(row.values()):
            rows.append(row)
    return rows


def sections_from_form(formdata):
    """Every section of the monthly report as stored on the record."""
    ppdb = {row['kelas']: {'target': row['target'], 'capaian': row['capaian']}
            for row in rows_from_lists(formdata, 'ppdb', ['kelas', 'target', 'capaian']) if row['kelas']}
    jumlah = {row['kelas']: {'jumlah': to_int(row['jumlah']), 'keterangan': row['keterangan']}
              for row in rows_from_lists(formdata, 'js', ['kelas', 'jumlah', 'keterangan']) if row['kelas']}
    return {
        'ringkasan_eksekutif': {key: formdata.get(f'ringkasan_{key}', '').strip() for key, _ in RINGKASAN_ASPEK},
        'capaian_okr': {key: formdata.get(f'okr_{key}', '').strip() for key, _ in OKR_ASPEK},
        'capaian_ppdb': ppdb,
        'keuangan_singkat': rows_from_lists(formdata, 'keu', ['pos', 'pengajuan', 'realisasi', 'catatan']),
        'jumlah_siswa': jumlah,
        'isu_strategis': formdata.get('isu_strategis', '').strip(),
        'rekomendasi_kegiatan': formdata.get('rekomendasi_kegiatan', '').strip(),
        'rencana_agenda': {
            'tema': formdata.get('agenda_tema', '').strip(),
            'deskripsi': formdata.get('agenda_deskripsi', '').strip(),
            'detail': rows_from_lists(formdata, 'agenda', ['tanggal', 'kegiatan']),
        },
    }


def visible_reports(user):
    query = LaporanBulanan.query
    if not user.sees_all_branches:
        query = query.filter_by(cabang=user.cabang)
    return query


def get_visible_or_404(user, item_id):
    laporan = db.get_or_404(LaporanBulanan, item_id)
    if not user.sees_all_branches and laporan.cabang != user.cabang:
        abort(404)
    return laporan


def save_dokumentasi(laporan, files, formdata, uploaded):
    """Replace, remove or keep each documentation slot.

    New objects are appended to ``uploaded`` as they are written so a failed
    save can remove them. Returns the replaced paths to delete after commit.
    """
    current = list(laporan.dokumentasi or [])
    current += [None] * (DOKUMENTASI_SLOTS - len(current))
    stale = []
    for index in range(DOKUMENTASI_SLOTS):
        upload = files.get(f'dokumentasi_{index + 1}')
        if isinstance(upload, FileStorage) and upload.filename:
            if current[index]:
                stale.append(current[index])
            current[index] = storage.upload(upload, 'laporan', storage.IMAGE_EXTENSIONS)
            uploaded.append(current[index])
        elif formdata.get(f'hapus_dokumentasi_{index + 1}') and current[index]:
            stale.append(current[index])
            current[index] = None
    laporan.dokumentasi = [path for path in current[:DOKUMENTASI_SLOTS] if path]
    return stale


def fill_laporan(laporan, formdata, files, user, uploaded):
    semester = db.session.get(Periode, to_int(formdata.get('semester_id'))) if formdata.get('semester_id') else None
    cabang = db.session.get(Cabang, to_int(formdata.get('cabang_id'))) if formdata.get('cabang_id') else None
    if cabang is None:
        raise ValueError('Cabang wajib dipilih')
    if not user.sees_all_branches and cabang.nama != user.cabang:
        raise ValueError('Anda hanya dapat membuat laporan untuk cabang Anda sendiri')
    bulan = formdata.get('bulan')
    if bulan not in BULAN:
        raise ValueError('Bulan tidak valid')

    laporan.semester_id = semester.id if semester else None
    laporan.semester = semester.nama_periode if semester else None
    laporan.bulan = bulan
    laporan.cabang_id = cabang.id
    laporan.cabang = cabang.nama
    laporan.disusun_oleh = formdata.get('disusun_oleh') or user.nama
    for field, value in sections_from_form(formdata).items():
        setattr(laporan, field, value)
    return save_dokumentasi(laporan, files, formdata, uploaded)


def form_context(user, laporan=None):
    cabang_query = Cabang.query.order_by(Cabang.nama)
    if not user.sees_all_branches:
        cabang_query = cabang_query.filter_by(nama=user.cabang)
    cabang_list = cabang_query.all()

    selected_cabang = None
    if request.args.get('cabang_id'):
        selected_cabang = db.session.get(Cabang, to_int(request.args['cabang_id']))
    elif laporan is not None:
        selected_cabang = db.session.get(Cabang, laporan.cabang_id) if laporan.cabang_id else None
    elif len(cabang_list) == 1:
        selected_cabang = cabang_list[0]

    sections = {}
    if laporan is None and selected_cabang is not None:
        sections = prefill_sections(selected_cabang.nama)
    elif laporan is not None and request.args.get('cabang_id'):
        # Branch changed while editing: reload the class rows
        sections = prefill_sections(selected_cabang.nama) if selected_cabang else {}

    default_periode = Periode.default()
    return {
        'laporan': laporan,
        'cabang_list': cabang_list,
        'selected_cabang': selected_cabang,
        'semesters': Periode.query.order_by(Periode.id.desc()).all(),
        'default_semester_id': default_periode.id if default_periode else None,
        'bulan_list': BULAN,
        'ringkasan_aspek': RINGKASAN_ASPEK,
        'okr_aspek': OKR_ASPEK,
        'capaian_ppdb': sections.get('capaian_ppdb', laporan.capaian_ppdb if laporan else {}),
        'jumlah_siswa': sections.get('jumlah_siswa', laporan.jumlah_siswa if laporan else {}),
        'disusun_oleh': laporan.disusun_oleh if laporan else user.nama,
        'slots': DOKUMENTASI_SLOTS,
    }


@laporan_bp.route('/bulanan')
@login_required
@roles_required(*ADMIN_PANEL_ROLES)
def bulanan_list():
    user = current_user()
    query = visible_reports(user)
    if request.args.get('bulan'):
        query = query.filter_by(bulan=request.args['bulan'])
    if request.args.get('semester'):
        query = query.filter_by(semester=request.args['semester'])
    rows = query.order_by(LaporanBulanan.created_at.desc()).all()
    semesters = [p.nama_periode for p in Periode.query.order_by(Periode.id.desc())]
    return render_template('laporan/bulanan_list.html', rows=rows, bulan_list=BULAN, semesters=semesters,
                           args=request.args)


def _save(laporan, created):
    user = current_user()
    uploaded = []
    try:
        stale = fill_laporan(laporan, request.form, request.files, user, uploaded)
        if created:
            db.session.add(laporan)
        verb = 'Membuat' if created else 'Mengubah'
        log_activity(f'{verb} laporan bulanan {laporan.cabang} {laporan.bulan}')
        db.session.commit()
    except (ValueError, StorageError) as e:
        db.session.rollback()
        flash(str(e), 'error')
    except Exception as e:
        db.session.rollback()
        logger.exception("Error saving laporan bulanan")
        flash(f'Gagal menyimpan laporan: {str(e)}', 'error')
    else:
        for path in stale:
            storage.delete(path)
        flash('Laporan bulanan berhasil disimpan!', 'success')
        return True
    for path in uploaded:
        storage.delete(path)
    return False


@laporan_bp.route('/bulanan/add', methods=['GET', 'POST'])
@login_required
@roles_required(*ADMIN_PANEL_ROLES)
def bulanan_add():
    user = current_user()
    if request.method == 'POST':
        laporan = LaporanBulanan()
        if _save(laporan, True):
            return redirect(url_for('laporan.bulanan_list'))
    return render_template('laporan/bulanan_form.html', **form_context(user))


@laporan_bp.route('/bulanan/<int:item_id>/edit', methods=['GET', 'POST'])
@login_required
@roles_required(*ADMIN_PANEL_ROLES)
def bulanan_edit(item_id):
    user = current_user()
    laporan = get_visible_or_404(user, item_id)
    if request.method == 'POST':
        if _save(laporan, False):
            return redirect(url_for('laporan.bulanan_list'))
        laporan = get_visible_or_404(user, item_id)
    return render_template('laporan/bulanan_form.html', **form_context(user, laporan))


@laporan_bp.route('/bulanan/<int:item_id>')
@login_required
@roles_required(*ADMIN_PANEL_ROLES)
def bulanan_view(item_id):
    laporan = get_visible_or_404(current_user(), item_id)
    return render_template('laporan/bulanan_view.html', laporan=laporan, ppdb=ppdb_summary(laporan.capaian_ppdb),
                           ringkasan_aspek=RINGKASAN_ASPEK, okr_aspek=OKR_ASPEK)


@laporan_bp.route('/bulanan/<int:item_id>/delete', methods=['POST'])
@login_required
@roles_required(*ADMIN_PANEL_ROLES)
def bulanan_delete(item_id):
    laporan = get_visible_or_404(current_user(), item_id)
    paths = list(laporan.dokumentasi or [])
    try:
        db.session.delete(laporan)
        log_activity(f'Menghapus laporan bulanan {laporan.cabang} {laporan.bulan}')
        db.session.commit()
        for path in paths:
            storage.delete(path)
        flash('Laporan bulanan dihapus.', 'success')
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Error deleting laporan bulanan {item_id}")
        flash(f'Gagal menghapus laporan: {str(e)}', 'error')
    return redirect(url_for('laporan.bulanan_list'))


@laporan_bp.route('/bulanan/<int:item_id>/pdf')
@login_required
@roles_required(*ADMIN_PANEL_ROLES)
def bulanan_pdf(item_id):
    laporan = get_visible_or_404(current_user(), item_id)
    labels = {'ringkasan': RINGKASAN_ASPEK, 'okr': OKR_ASPEK}
    content = laporan_bulanan_pdf(laporan, ppdb_summary(laporan.capaian_ppdb), labels,
                                  current_app.config['SCHOOL_NAME'])
    filename = f"Laporan_Bulanan_{'_'.join((laporan.cabang or '').split())}_{laporan.bulan}.pdf"
    return send_file(io.BytesIO(content), mimetype='application/pdf', as_attachment=True, download_name=filename)
