"""
Finance: budget submissions (pengajuan) with their approval workflow, the
approved budget (anggaran), realization and the cash-flow ledger (arus kas).
"""
import io
import logging
from datetime import date

from flask import (Blueprint, abort, current_app, flash, redirect, render_template, request,
                   send_file, url_for)
from werkzeug.datastructures import FileStorage

import storage
from access import (ADMIN_PANEL_ROLES, DIREKTUR, KEPALA_SEKOLAH, SUBMISSION_ROLES, current_user,
                    roles_required)
from crud import form_errors, log_activity
from errors import StorageError, WorkflowError
from forms import ArusKasForm, PengajuanForm, RealisasiForm, cabang_name_choices, nomenklatur_choices
from models import ArusKas, Pengajuan, db
from reports_pdf import arus_kas_pdf
from security import login_required

logger = logging.getLogger(__name__)

keuangan_bp = Blueprint('keuangan', __name__, url_prefix='/keuangan')

MENUNGGU_KS = 'Menunggu KS'
MENUNGGU_DIREKTUR = 'Menunggu Direktur'
DISETUJUI = 'Disetujui'
DITOLAK = 'Ditolak'
STATUSES = [MENUNGGU_KS, MENUNGGU_DIREKTUR, DISETUJUI, DITOLAK]

# status -> (role allowed to act, status after approval)
APPROVAL_STEPS = {
    MENUNGGU_KS: (KEPALA_SEKOLAH, MENUNGGU_DIREKTUR),
    MENUNGGU_DIREKTUR: (DIREKTUR, DISETUJUI),
}

BULAN = ['Januari', 'Februari', 'Maret', 'April', 'Mei', 'Juni', 'Juli', 'Agustus', 'September',
         'Oktober', 'November', 'Desember']

REALISASI_NOMENKLATUR = 'Realisasi Pengajuan'


# Workflow

def initial_status(cabang):
    if cabang == current_app.config['HEAD_OFFICE_BRANCH']:
        return MENUNGGU_DIREKTUR
    return MENUNGGU_KS


def check_step(pengajuan, user):
    """Return the approval step the user may take on a submission, or raise WorkflowError."""
    step = APPROVAL_STEPS.get(pengajuan.status)
    if step is None:
        raise WorkflowError(f'Pengajuan dengan status {pengajuan.status} tidak dapat diproses.')
    role, next_status = step
    if user is None or user.role != role:
        raise WorkflowError(f'Hanya {role} yang dapat memproses tahap ini.')
    if role == KEPALA_SEKOLAH and pengajuan.cabang != user.cabang:
        raise WorkflowError('Kepala Sekolah hanya dapat memproses pengajuan cabangnya sendiri.')
    return next_status


def approve(pengajuan, user):
    pengajuan.status = check_step(pengajuan, user)
    return pengajuan.status


def reject(pengajuan, user):
    check_step(pengajuan, user)
    pengajuan.status = DITOLAK
    return pengajuan.status


def scope_pengajuan(query, user):
    if user.is_teacher:
        return query.filter_by(user_uid=user.uid)
    if user.role == KEPALA_SEKOLAH:
        return query.filter_by(cabang=user.cabang)
    return query


def pending_for(user):
    """Submissions waiting for this user's decision."""
    if user is None:
        return []
    if user.role == KEPALA_SEKOLAH:
        return Pengajuan.query.filter_by(status=MENUNGGU_KS, cabang=user.cabang).all()
    if user.role == DIREKTUR:
        return Pengajuan.query.filter_by(status=MENUNGGU_DIREKTUR).all()
    return []


def can_modify(pengajuan, user):
    if pengajuan.user_uid == user.uid:
        return True
    return user.is_admin_panel and user.can_access_branch(pengajuan.cabang)


# Filters

def month_range(year, month=None):
    """[start, end) dates of a month, or of the whole year when month is None."""
    if month:
        start = date(year, month, 1)
        end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    else:
        start, end = date(year, 1, 1), date(year + 1, 1, 1)
    return start, end


def read_period(args, default_current=True):
    """Year and month from the query string. A blank value means "all"."""
    today = date.today()
    tahun = args.get('tahun', str(today.year) if default_current else '')
    bulan = args.get('bulan', str(today.month) if default_current else '')
    year = int(tahun) if tahun.isdigit() else None
    month = int(bulan) if bulan.isdigit() and 1 <= int(bulan) <= 12 else None
    return year, month


def filter_period(query, column, year, month):
    if year:
        start, end = month_range(year, month)
        query = query.filter(column >= start, column < end)
    return query


def period_label(year, month):
    if not year:
        return 'Semua periode'
    if month:
        return f'{BULAN[month - 1]} {year}'
    return f'Tahun {year}'


def branch_filter_value(user):
    """Branch from the query string; branch-bound users are fixed to their own."""
    scope = user.branch_scope()
    if scope:
        return scope
    return request.args.get('cabang', '')


def filter_context(user, **extra):
    today = date.today()
    context = {
        'years': list(range(today.year - 3, today.year + 2)),
        'months': list(enumerate(BULAN, start=1)),
        'cabang_choices': cabang_name_choices('Semua Cabang'),
        'cabang_locked': bool(user.branch_scope()),
        'args': request.args,
    }
    context.update(extra)
    return context


def filtered_pengajuan(user, args):
    query = scope_pengajuan(Pengajuan.query, user)
    year, month = read_period(args)
    query = filter_period(query, Pengajuan.tanggal, year, month)
    cabang = branch_filter_value(user)
    if cabang:
        query = query.filter_by(cabang=cabang)
    nama = (args.get('nama') or '').strip()
    if nama:
        query = query.filter(Pengajuan.pengaju.ilike(f'%{nama}%'))
    if args.get('status'):
        query = query.filter_by(status=args['status'])
    return query.order_by(Pengajuan.created_at.desc()).all(), year, month


def prepare_pengajuan_form(form, user):
    if user.sees_all_branches:
        form.cabang.choices = cabang_name_choices()
    else:
        form.cabang.choices = [(user.cabang or '', user.cabang or '-')]
        if not form.cabang.data:
            form.cabang.data = user.cabang or ''
    form.nomenklatur.choices = nomenklatur_choices()
    return form


# Pengajuan views

@keuangan_bp.route('/pengajuan')
@login_required
@roles_required(*SUBMISSION_ROLES)
def pengajuan():
    user = current_user()
    rows, year, month = filtered_pengajuan(user, request.args)
    form = prepare_pengajuan_form(PengajuanForm(), user)
    return render_template('keuangan/pengajuan.html', rows=rows, form=form, statuses=STATUSES,
                           periode=period_label(year, month), steps=APPROVAL_STEPS, user=user,
                           **filter_context(user))


@keuangan_bp.route('/pengajuan/add', methods=['GET', 'POST'])
@login_required
@roles_required(*SUBMISSION_ROLES)
def pengajuan_add():
    user = current_user()
    form = prepare_pengajuan_form(PengajuanForm(), user)
    if form.validate_on_submit():
        try:
            item = Pengajuan(
                tanggal=form.tanggal.data,
                pengaju=user.nama,
                cabang=form.cabang.data,
                nomenklatur=form.nomenklatur.data,
                barang=form.barang.data,
                harga_satuan=form.harga_satuan.data,
                qty=form.qty.data,
                total=form.harga_satuan.data * form.qty.data,
                status=initial_status(form.cabang.data),
                user_uid=user.uid,
            )
            db.session.add(item)
            log_activity(f'Mengajukan anggaran: {item.barang}')
            db.session.commit()
            flash('Pengajuan berhasil dikirim!', 'success')
            return redirect(url_for('keuangan.pengajuan'))
        except Exception as e:
            db.session.rollback()
            logger.exception("Error adding pengajuan")
            flash(f'Gagal menyimpan pengajuan: {str(e)}', 'error')
    elif request.method == 'POST':
        for message in form_errors(form):
            flash(message, 'error')
    return render_template('keuangan/pengajuan_form.html', form=form, item=None)


@keuangan_bp.route('/pengajuan/<int:item_id>/edit', methods=['GET', 'POST'])
@login_required
@roles_required(*SUBMISSION_ROLES)
def pengajuan_edit(item_id):
    user = current_user()
    item = db.get_or_404(Pengajuan, item_id)
    if not can_modify(item, user):
        abort(403)
    form = prepare_pengajuan_form(PengajuanForm(obj=item), user)
    if form.validate_on_submit():
        try:
            item.tanggal = form.tanggal.data
            item.cabang = form.cabang.data
            item.nomenklatur = form.nomenklatur.data
            item.barang = form.barang.data
            item.harga_satuan = form.harga_satuan.data
            item.qty = form.qty.data
            item.total = item.harga_satuan * item.qty
            log_activity(f'Mengubah pengajuan: {item.barang}')
            db.session.commit()
            flash('Pengajuan berhasil diperbarui!', 'success')
            return redirect(url_for('keuangan.pengajuan'))
        except Exception as e:
            db.session.rollback()
            logger.exception(f"Error updating pengajuan {item_id}")
            flash(f'Gagal memperbarui pengajuan: {str(e)}', 'error')
    elif request.method == 'POST':
        for message in form_errors(form):
            flash(message, 'error')
    return render_template('keuangan/pengajuan_form.html', form=form, item=item)


@keuangan_bp.route('/pengajuan/<int:item_id>/delete', methods=['POST'])
@login_required
@roles_required(*SUBMISSION_ROLES)
def pengajuan_delete(item_id):
    user = current_user()
    item = db.get_or_404(Pengajuan, item_id)
    if not can_modify(item, user):
        abort(403)
    try:
        db.session.delete(item)
        log_activity(f'Menghapus pengajuan: {item.barang}')
        db.session.commit()
        flash('Pengajuan berhasil dihapus.', 'success')
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Error deleting pengajuan {item_id}")
        flash(f'Gagal menghapus pengajuan: {str(e)}', 'error')
    return redirect(url_for('keuangan.pengajuan'))


def _decide(item_id, action, verb):
    user = current_user()
    item = db.get_or_404(Pengajuan, item_id)
    try:
        new_status = action(item, user)
        log_activity(f'{verb} pengajuan: {item.barang} -> {new_status}')
        db.session.commit()
        flash(f"Status pengajuan menjadi '{new_status}'.", 'success')
    except WorkflowError as e:
        db.session.rollback()
        flash(str(e), 'error')
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Error processing pengajuan {item_id}")
        flash(f'Gagal memproses pengajuan: {str(e)}', 'error')
    return redirect(request.referrer or url_for('keuangan.pengajuan'))


@keuangan_bp.route('/pengajuan/<int:item_id>/approve', methods=['POST'])
@login_required
@roles_required(KEPALA_SEKOLAH, DIREKTUR)
def pengajuan_approve(item_id):
    return _decide(item_id, approve, 'Menyetujui')


@keuangan_bp.route('/pengajuan/<int:item_id>/reject', methods=['POST'])
@login_required
@roles_required(KEPALA_SEKOLAH, DIREKTUR)
def pengajuan_reject(item_id):
    return _decide(item_id, reject, 'Menolak')


# Anggaran

def approved_pengajuan(user, args):
    query = Pengajuan.query.filter_by(status=DISETUJUI)
    year, month = read_period(args)
    query = filter_period(query, Pengajuan.tanggal, year, month)
    cabang = branch_filter_value(user)
    if cabang:
        query = query.filter_by(cabang=cabang)
    return query.order_by(Pengajuan.created_at.desc()).all(), year, month


@keuangan_bp.route('/anggaran')
@login_required
@roles_required(*ADMIN_PANEL_ROLES)
def anggaran():
    user = current_user()
    rows, year, month = approved_pengajuan(user, request.args)
    total = sum(row.total or 0 for row in rows)
    return render_template('keuangan/anggaran.html', rows=rows, total=total,
                           periode=period_label(year, month), **filter_context(user))


# Realisasi

def record_realisasi(item, amount, bukti_path=None):
    """Store the realized amount and mirror it as a cash outflow."""
    if item.status != DISETUJUI:
        raise WorkflowError('Realisasi hanya untuk pengajuan yang sudah disetujui.')
    item.realisasi = amount
    item.selisih = (item.total or 0) - amount
    if bukti_path:
        item.bukti_path = bukti_path

    kas = db.session.get(ArusKas, item.arus_kas_id) if item.arus_kas_id else None
    if kas is None:
        kas = ArusKas()
        db.session.add(kas)
    kas.tanggal = date.today()
    kas.cabang = item.cabang
    kas.nomenklatur = item.nomenklatur or REALISASI_NOMENKLATUR
    kas.keterangan = item.barang
    kas.jenis = 'Keluar'
    kas.nominal = amount
    db.session.flush()
    item.arus_kas_id = kas.id
    return kas


@keuangan_bp.route('/realisasi')
@login_required
@roles_required(*ADMIN_PANEL_ROLES)
def realisasi():
    user = current_user()
    rows, year, month = approved_pengajuan(user, request.args)
    return render_template('keuangan/realisasi.html', rows=rows, periode=period_label(year, month),
                           **filter_context(user))


@keuangan_bp.route('/realisasi/<int:item_id>', methods=['GET', 'POST'])
@login_required
@roles_required(*ADMIN_PANEL_ROLES)
def realisasi_edit(item_id):
    item = db.get_or_404(Pengajuan, item_id)
    if not current_user().can_access_branch(item.cabang):
        abort(404)
    form = RealisasiForm(obj=item)
    if form.validate_on_submit():
        uploaded = None
        old_bukti = None
        try:
            bukti = form.bukti.data
            if isinstance(bukti, FileStorage) and bukti.filename:
                uploaded = storage.upload(bukti, 'realisasi', storage.IMAGE_EXTENSIONS)
            old_bukti = item.bukti_path if uploaded else None
            record_realisasi(item, form.realisasi.data, uploaded)
            log_activity(f'Mencatat realisasi: {item.barang}')
            db.session.commit()
        except (WorkflowError, StorageError) as e:
            db.session.rollback()
            flash(str(e), 'error')
        except Exception as e:
            db.session.rollback()
            logger.exception(f"Error saving realisasi {item_id}")
            flash(f'Gagal menyimpan realisasi: {str(e)}', 'error')
        else:
            if old_bukti:
                try:
                    storage.delete(old_bukti)
                except StorageError:
                    logger.exception(f"Could not delete replaced proof {old_bukti}")
            flash('Realisasi berhasil disimpan!', 'success')
            return redirect(url_for('keuangan.realisasi'))
        if uploaded:
            storage.delete(uploaded)
    elif request.method == 'POST':
        for message in form_errors(form):
            flash(message, 'error')
    return render_template('keuangan/realisasi_form.html', form=form, item=item)


# Arus kas

def cash_totals(rows):
    masuk = sum(row.nominal or 0 for row in rows if row.jenis == 'Masuk')
    keluar = sum(row.nominal or 0 for row in rows if row.jenis == 'Keluar')
    return {'masuk': masuk, 'keluar': keluar, 'saldo': masuk - keluar}


def filtered_arus_kas(user, args):
    query = ArusKas.query
    year, month = read_period(args, default_current=False)
    query = filter_period(query, ArusKas.tanggal, year, month)
    cabang = branch_filter_value(user)
    if cabang:
        query = query.filter_by(cabang=cabang)
    return query.order_by(ArusKas.tanggal.asc(), ArusKas.id.asc()).all(), year, month, cabang


def prepare_arus_kas_form(form, user):
    if user.sees_all_branches:
        form.cabang.choices = cabang_name_choices()
    else:
        form.cabang.choices = [(user.cabang or '', user.cabang or '-')]
    form.nomenklatur.choices = nomenklatur_choices()
    return form


@keuangan_bp.route('/arus-kas')
@login_required
@roles_required(*ADMIN_PANEL_ROLES)
def arus_kas():
    user = current_user()
    rows, year, month, cabang = filtered_arus_kas(user, request.args)
    form = prepare_arus_kas_form(ArusKasForm(), user)
    return render_template('keuangan/arus_kas.html', rows=rows, totals=cash_totals(rows), form=form,
                           periode=period_label(year, month), **filter_context(user))


@keuangan_bp.route('/arus-kas/add', methods=['POST'])
@login_required
@roles_required(*ADMIN_PANEL_ROLES)
def arus_kas_add():
    user = current_user()
    form = prepare_arus_kas_form(ArusKasForm(), user)
    if form.validate_on_submit():
        try:
            row = ArusKas(tanggal=form.tanggal.data, jenis=form.jenis.data, cabang=form.cabang.data,
                          nomenklatur=form.nomenklatur.data, keterangan=form.keterangan.data,
                          nominal=form.nominal.data)
            db.session.add(row)
            label = 'pemasukan' if row.jenis == 'Masuk' else 'pengeluaran'
            log_activity(f'Mencatat {label} kas: {row.keterangan or row.nomenklatur}')
            db.session.commit()
            flash('Transaksi kas berhasil disimpan!', 'success')
        except Exception as e:
            db.session.rollback()
            logger.exception("Error adding arus kas")
            flash(f'Gagal menyimpan transaksi: {str(e)}', 'error')
    else:
        for message in form_errors(form):
            flash(message, 'error')
    return redirect(url_for('keuangan.arus_kas'))


@keuangan_bp.route('/arus-kas/<int:item_id>/delete', methods=['POST'])
@login_required
@roles_required(*ADMIN_PANEL_ROLES)
def arus_kas_delete(item_id):
    row = db.get_or_404(ArusKas, item_id)
    if not current_user().can_access_branch(row.cabang):
        abort(404)
    try:
        db.session.delete(row)
        log_activity(f'Menghapus transaksi kas: {row.keterangan or row.nomenklatur}')
        db.session.commit()
        flash('Transaksi berhasil dihapus.', 'success')
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Error deleting arus kas {item_id}")
        flash(f'Gagal menghapus transaksi: {str(e)}', 'error')
    return redirect(url_for('keuangan.arus_kas'))


@keuangan_bp.route('/arus-kas/pdf')
@login_required
@roles_required(*ADMIN_PANEL_ROLES)
def arus_kas_pdf_view():
    user = current_user()
    rows, year, month, cabang = filtered_arus_kas(user, request.args)
    content = arus_kas_pdf(rows, cash_totals(rows), period_label(year, month), cabang or 'Semua Cabang',
                           current_app.config['SCHOOL_NAME'])
    filename = f"Laporan_Arus_Kas_{date.today().strftime('%Y%m%d')}.pdf"
    return send_file(io.BytesIO(content), mimetype='application/pdf', as_attachment=True,
                     download_name=filename)
