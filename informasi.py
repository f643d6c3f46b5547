"""
Announcements, school activities, class schedules and school documents.
"""
import logging
from datetime import datetime

from flask import Blueprint, flash, redirect, render_template, request, url_for
from werkzeug.datastructures import FileStorage

import storage
from access import ADMIN_PANEL_ROLES, roles_required
from crud import CrudResource, form_errors, log_activity, scope_to_branch
from errors import StorageError
from forms import (DokumenForm, JadwalDetilForm, JadwalForm, KegiatanForm, PengumumanForm,
                   cabang_name_choices, kelas_name_choices)
from home import branch_or_general, detail_sort_key
from models import Dokumen, Jadwal, JadwalDetil, Kegiatan, Pengumuman, db
from security import login_required

logger = logging.getLogger(__name__)

informasi_bp = Blueprint('informasi', __name__, url_prefix='/informasi')


def prepare_branch_form(form, obj=None):
    form.cabang.choices = cabang_name_choices('Semua Cabang')


def scope_general(model):
    def scope(query, user):
        return branch_or_general(query, model, user)
    return scope


def filter_cabang(query, user):
    if request.args.get('cabang'):
        query = query.filter_by(cabang=request.args['cabang'])
    return query


pengumuman = CrudResource(
    'pengumuman', Pengumuman, PengumumanForm, 'Pengumuman',
    columns=[('created_at', 'Tanggal'), ('judul', 'Judul'), ('cabang', 'Cabang'), ('deskripsi', 'Deskripsi')],
    order_by=Pengumuman.created_at.desc(),
    scope=scope_general(Pengumuman),
    filter_query=filter_cabang,
    prepare_form=prepare_branch_form,
    label_attr='judul',
    filters=[('cabang', 'Cabang', lambda: cabang_name_choices('Semua Cabang'))],
).register(informasi_bp)


kegiatan = CrudResource(
    'kegiatan', Kegiatan, KegiatanForm, 'Kegiatan Sekolah',
    columns=[('tanggal', 'Tanggal'), ('nama', 'Nama Kegiatan'), ('lokasi', 'Lokasi'), ('cabang', 'Cabang'),
             ('keterangan', 'Keterangan')],
    order_by=Kegiatan.tanggal.desc(),
    scope=scope_general(Kegiatan),
    filter_query=filter_cabang,
    prepare_form=prepare_branch_form,
    filters=[('cabang', 'Cabang', lambda: cabang_name_choices('Semua Cabang'))],
).register(informasi_bp)


# Jadwal

def prepare_jadwal_form(form, obj=None):
    form.cabang.choices = cabang_name_choices()
    form.kelas.choices = kelas_name_choices(form.cabang.data)


def delete_jadwal_details(obj):
    JadwalDetil.query.filter_by(jadwal_id=obj.id).delete()


jadwal = CrudResource(
    'jadwal', Jadwal, JadwalForm, 'Jadwal',
    columns=[('cabang', 'Cabang'), ('kelas', 'Kelas')],
    order_by=Jadwal.cabang,
    scope=scope_to_branch,
    filter_query=filter_cabang,
    prepare_form=prepare_jadwal_form,
    on_delete=delete_jadwal_details,
    label_attr='kelas',
    row_actions=[('Detail', 'informasi.jadwal_detail', 'GET')],
    filters=[('cabang', 'Cabang', lambda: cabang_name_choices('Semua Cabang'))],
).register(informasi_bp)


@informasi_bp.route('/jadwal/<int:item_id>/detail', methods=['GET', 'POST'])
@login_required
@roles_required(*ADMIN_PANEL_ROLES)
def jadwal_detail(item_id):
    item = jadwal.get_or_404(item_id)
    form = JadwalDetilForm()
    if request.method == 'POST':
        if form.validate_on_submit():
            try:
                detail = JadwalDetil(jadwal_id=item.id, hari=form.hari.data, waktu=form.waktu.data,
                                     aktivitas=form.aktivitas.data)
                db.session.add(detail)
                log_activity(f'Menambah detail jadwal {item.kelas}: {detail.hari} {detail.waktu}')
                db.session.commit()
                flash('Detail jadwal berhasil ditambahkan!', 'success')
                return redirect(url_for('informasi.jadwal_detail', item_id=item.id))
            except Exception as e:
                db.session.rollback()
                logger.exception(f"Error adding jadwal detail for {item_id}")
                flash(f'Gagal menambah detail jadwal: {str(e)}', 'error')
        else:
            for message in form_errors(form):
                flash(message, 'error')
    details = sorted(JadwalDetil.query.filter_by(jadwal_id=item.id).all(), key=detail_sort_key)
    return render_template('informasi/jadwal_detail.html', jadwal=item, details=details, form=form)


@informasi_bp.route('/jadwal-detil/<int:detail_id>/delete', methods=['POST'])
@login_required
@roles_required(*ADMIN_PANEL_ROLES)
def jadwal_detail_delete(detail_id):
    detail = db.get_or_404(JadwalDetil, detail_id)
    jadwal_id = jadwal.get_or_404(detail.jadwal_id).id
    try:
        db.session.delete(detail)
        log_activity(f'Menghapus detail jadwal: {detail.hari} {detail.waktu}')
        db.session.commit()
        flash('Detail jadwal dihapus.', 'success')
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Error deleting jadwal detail {detail_id}")
        flash(f'Gagal menghapus detail jadwal: {str(e)}', 'error')
    return redirect(url_for('informasi.jadwal_detail', item_id=jadwal_id))


# Dokumen

def save_dokumen(obj, form, created):
    file = form.file.data
    has_file = isinstance(file, FileStorage) and bool(file.filename)
    if created and not has_file:
        raise StorageError('File PDF wajib diunggah')
    if not has_file:
        return None
    old_path = obj.storage_path
    obj.storage_path = storage.upload(file, 'dokumen', storage.PDF_EXTENSIONS)
    obj.filename = file.filename
    obj.updated_at = datetime.utcnow()
    return [obj.storage_path], [old_path] if old_path else []


def delete_dokumen_file(obj):
    storage.delete(obj.storage_path)


dokumen = CrudResource(
    'dokumen', Dokumen, DokumenForm, 'Dokumen',
    columns=[('nama', 'Nama Dokumen'), ('filename', 'File'), ('created_at', 'Diunggah'),
             ('updated_at', 'Diperbarui')],
    order_by=Dokumen.created_at.desc(),
    after_save=save_dokumen,
    on_delete=delete_dokumen_file,
    row_actions=[('Unduh', 'informasi.dokumen_download', 'GET')],
).register(informasi_bp)


@informasi_bp.route('/dokumen/<int:item_id>/download')
@login_required
def dokumen_download(item_id):
    obj = dokumen.get_or_404(item_id)
    if not obj.storage_path:
        flash('Dokumen belum memiliki file.', 'error')
        return redirect(url_for('home.dokumen'))
    return redirect(url_for('home.files', storage_path=obj.storage_path))
