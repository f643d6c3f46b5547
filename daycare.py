"""
Daycare: activity catalogue, sub-activities with answer options, daily
reports and child growth records.
"""
import logging
from datetime import date, datetime

from flask import Blueprint, abort, flash, redirect, render_template, request, url_for
from sqlalchemy import func

from access import STAFF_ROLES, current_user, roles_required
from crud import CrudResource, form_errors, log_activity, populate_columns, scope_to_branch
from forms import (DaycareAktivitasForm, DaycareLaporanForm, DaycareSubAktivitasForm, PertumbuhanForm,
                   aktivitas_choices, cabang_id_choices, cabang_name_choices, kelas_id_choices,
                   kelas_name_choices, siswa_id_choices)
from models import (Cabang, DaycareAktivitas, DaycareLaporanHarian, DaycareSubAktivitas, Kelas,
                    PertumbuhanAnak, Siswa, db)
from security import login_required

logger = logging.getLogger(__name__)

daycare_bp = Blueprint('daycare', __name__, url_prefix='/daycare')


# Aktivitas

def next_urutan(model, **filters):
    current = db.session.query(func.max(model.urutan)).filter_by(**filters).scalar()
    return (current or 0) + 1


def append_last(obj, form, created):
    if created and form.urutan.data is None:
        obj.urutan = next_urutan(DaycareAktivitas)


def delete_sub_aktivitas(obj):
    DaycareSubAktivitas.query.filter_by(aktivitas_id=obj.id).delete()


aktivitas = CrudResource(
    'aktivitas', DaycareAktivitas, DaycareAktivitasForm, 'Aktivitas Daycare',
    columns=[('urutan', 'Urutan'), ('nama', 'Nama Aktivitas')],
    order_by=DaycareAktivitas.urutan,
    after_save=append_last,
    on_delete=delete_sub_aktivitas,
).register(daycare_bp)


# Sub aktivitas

def split_options(text):
    return [part.strip() for part in (text or '').split(',') if part.strip()]


def prepare_sub_form(form, obj=None):
    form.aktivitas_id.choices = aktivitas_choices()
    if obj is not None and not form.is_submitted():
        form.opsi_jawaban.data = ', '.join(obj.opsi_jawaban or [])


def populate_sub(obj, form):
    populate_columns(obj, form)
    obj.opsi_jawaban = split_options(form.opsi_jawaban.data)


def append_sub_last(obj, form, created):
    if created and form.urutan.data is None:
        obj.urutan = next_urutan(DaycareSubAktivitas, aktivitas_id=obj.aktivitas_id)


def filter_sub(query, user):
    aktivitas_id = request.args.get('aktivitas_id', '')
    if aktivitas_id.isdigit() and int(aktivitas_id):
        query = query.filter_by(aktivitas_id=int(aktivitas_id))
    return query


sub_aktivitas = CrudResource(
    'sub_aktivitas', DaycareSubAktivitas, DaycareSubAktivitasForm, 'Sub Aktivitas Daycare',
    columns=[('aktivitas_id', 'Aktivitas'), ('urutan', 'Urutan'), ('deskripsi', 'Deskripsi'),
             ('opsi_jawaban', 'Opsi Jawaban')],
    order_by=DaycareSubAktivitas.urutan,
    filter_query=filter_sub,
    prepare_form=prepare_sub_form,
    populate=populate_sub,
    after_save=append_sub_last,
    label_attr='deskripsi',
    list_context=lambda rows: {'lookups': {'aktivitas_id': {a.id: a.nama for a in DaycareAktivitas.query}}},
    filters=[('aktivitas_id', 'Aktivitas', lambda: [('', 'Semua Aktivitas')] + aktivitas_choices()[1:])],
).register(daycare_bp)


def catalogue():
    """Activities in order, each with its ordered sub-activities."""
    items = []
    for item in DaycareAktivitas.query.order_by(DaycareAktivitas.urutan).all():
        subs = DaycareSubAktivitas.query.filter_by(aktivitas_id=item.id).order_by(DaycareSubAktivitas.urutan).all()
        items.append((item, subs))
    return items


# Laporan harian

def hasil_from_form(formdata, subs):
    """Options ticked per sub-activity, keyed by the sub-activity id."""
    hasil = {}
    for sub in subs:
        allowed = set(sub.opsi_jawaban or [])
        chosen = [value for value in formdata.getlist(f'hasil_{sub.id}') if value in allowed]
        if chosen:
            hasil[str(sub.id)] = chosen
    return hasil


def prepare_laporan_form(form, user):
    if not form.cabang_id.data and user.cabang:
        cabang = Cabang.query.filter_by(nama=user.cabang).first()
        if cabang:
            form.cabang_id.data = cabang.id
    form.cabang_id.choices = cabang_id_choices()
    form.kelas_id.choices = kelas_id_choices(form.cabang_id.data)
    kelas = db.session.get(Kelas, form.kelas_id.data) if form.kelas_id.data else None
    form.siswa_id.choices = siswa_id_choices(kelas.nama_kelas, kelas.cabang) if kelas else siswa_id_choices()


def visible_reports(user, tanggal):
    query = DaycareLaporanHarian.query
    if tanggal:
        query = query.filter_by(tanggal=tanggal)
    scope = user.branch_scope()
    if scope:
        cabang = Cabang.query.filter_by(nama=scope).first()
        query = query.filter_by(cabang_id=cabang.id if cabang else None)
    return query.order_by(DaycareLaporanHarian.created_at.desc()).all()


def read_date(value):
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except (TypeError, ValueError):
        return None


@daycare_bp.route('/laporan-harian', methods=['GET', 'POST'])
@login_required
@roles_required(*STAFF_ROLES)
def laporan_harian():
    user = current_user()
    form = DaycareLaporanForm()
    prepare_laporan_form(form, user)
    items = catalogue()
    subs = [sub for _, group in items for sub in group]

    if request.method == 'POST':
        if form.validate_on_submit():
            try:
                report = DaycareLaporanHarian(tanggal=form.tanggal.data, cabang_id=form.cabang_id.data,
                                              kelas_id=form.kelas_id.data, siswa_id=form.siswa_id.data,
                                              hasil=hasil_from_form(request.form, subs))
                db.session.add(report)
                siswa = db.session.get(Siswa, report.siswa_id)
                log_activity(f"Menambah laporan harian daycare: {siswa.nama if siswa else report.siswa_id}")
                db.session.commit()
                flash('Laporan harian berhasil disimpan!', 'success')
                return redirect(url_for('daycare.laporan_harian', tanggal=report.tanggal.isoformat()))
            except Exception as e:
                db.session.rollback()
                logger.exception("Error saving daycare daily report")
                flash(f'Gagal menyimpan laporan harian: {str(e)}', 'error')
        else:
            for message in form_errors(form):
                flash(message, 'error')

    tanggal = read_date(request.args.get('tanggal')) if 'tanggal' in request.args else date.today()
    reports = visible_reports(user, tanggal)
    siswa_names = {s.id: s.nama for s in Siswa.query.filter(Siswa.id.in_([r.siswa_id for r in reports]))}
    sub_names = {str(sub.id): sub.deskripsi for sub in subs}
    return render_template('daycare/laporan_harian.html', form=form, items=items, reports=reports,
                           siswa_names=siswa_names, sub_names=sub_names, tanggal=tanggal)


@daycare_bp.route('/laporan-harian/<int:item_id>/delete', methods=['POST'])
@login_required
@roles_required(*STAFF_ROLES)
def laporan_harian_delete(item_id):
    report = db.get_or_404(DaycareLaporanHarian, item_id)
    cabang = db.session.get(Cabang, report.cabang_id) if report.cabang_id else None
    if not current_user().can_access_branch(cabang.nama if cabang else None):
        abort(404)
    tanggal = report.tanggal
    try:
        db.session.delete(report)
        log_activity(f'Menghapus laporan harian daycare #{item_id}')
        db.session.commit()
        flash('Laporan harian dihapus.', 'success')
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Error deleting daycare daily report {item_id}")
        flash(f'Gagal menghapus laporan harian: {str(e)}', 'error')
    return redirect(url_for('daycare.laporan_harian', tanggal=tanggal.isoformat() if tanggal else ''))


# Pertumbuhan anak

def prepare_pertumbuhan_form(form, obj=None):
    user = current_user()
    if not form.cabang.data and user and user.cabang:
        form.cabang.data = user.cabang
    form.cabang.choices = cabang_name_choices()
    form.kelas.choices = kelas_name_choices(form.cabang.data)
    form.siswa_id.choices = siswa_id_choices(form.kelas.data, form.cabang.data)


def filter_pertumbuhan(query, user):
    if request.args.get('cabang'):
        query = query.filter_by(cabang=request.args['cabang'])
    return query


pertumbuhan = CrudResource(
    'pertumbuhan', PertumbuhanAnak, PertumbuhanForm, 'Pertumbuhan Anak',
    columns=[('tanggal', 'Tanggal'), ('siswa_id', 'Siswa'), ('kelas', 'Kelas'), ('cabang', 'Cabang'),
             ('berat_badan', 'Berat (kg)'), ('tinggi_badan', 'Tinggi (cm)'), ('lingkar_kepala', 'Lingkar Kepala (cm)')],
    order_by=PertumbuhanAnak.tanggal.desc(),
    roles=STAFF_ROLES,
    scope=scope_to_branch,
    filter_query=filter_pertumbuhan,
    prepare_form=prepare_pertumbuhan_form,
    label_attr='tanggal',
    list_context=lambda rows: {'lookups': {'siswa_id': {
        s.id: s.nama for s in Siswa.query.filter(Siswa.id.in_([r.siswa_id for r in rows]))}}},
    filters=[('cabang', 'Cabang', lambda: cabang_name_choices('Semua Cabang'))],
).register(daycare_bp)
