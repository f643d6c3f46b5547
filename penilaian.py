"""
Assessment: categories and criteria, indicator / developmental / trilogy
scores, extra report information and the report card (rapor).
"""
import io
import logging
from datetime import datetime

from flask import Blueprint, current_app, flash, redirect, render_template, request, send_file, url_for

from access import STAFF_ROLES, classes_taught, current_user, roles_required
from crud import CrudResource, log_activity, populate_columns
from forms import (InfoTambahanForm, KategoriPenilaianForm, KriteriaNilaiForm, NilaiIndikatorForm,
                   NilaiPerkembanganForm, NilaiTrilogiForm, cabang_id_choices, cabang_name_choices,
                   group_choices, kelas_id_choices, kelas_name_choices, nilai_choices, nilai_labels,
                   periode_choices, siswa_id_choices, sub_indikator_choices, sub_item_label,
                   sub_trilogi_choices, tahap_choices)
from models import (Cabang, Guru, IndikatorGroup, InfoTambahanRapor, InfoTambahanSiswa, KategoriPenilaian,
                    Kelas, KriteriaNilai, NilaiIndikator, NilaiPerkembangan, NilaiTrilogi, Periode,
                    Siswa, SubIndikator, SubTrilogi, TahapPerkembangan, TrilogiGroup, db)
from reports_pdf import rapor_filename, rapor_pdf
from security import login_required

logger = logging.getLogger(__name__)

penilaian_bp = Blueprint('penilaian', __name__, url_prefix='/penilaian')

KATEGORI_INDIKATOR = 'Nilai Indikator'
KATEGORI_PERKEMBANGAN = 'Nilai Perkembangan'
KATEGORI_TRILOGI = 'Nilai Trilogi'


# Kategori & kriteria

kategori = CrudResource(
    'kategori', KategoriPenilaian, KategoriPenilaianForm, 'Kategori Penilaian',
    columns=[('nama', 'Nama Kategori')],
    order_by=KategoriPenilaian.nama,
).register(penilaian_bp)


def prepare_kriteria_form(form, obj=None):
    form.kategori_id.choices = group_choices(KategoriPenilaian, '-- Pilih Kategori --')


kriteria = CrudResource(
    'kriteria', KriteriaNilai, KriteriaNilaiForm, 'Kriteria Nilai',
    columns=[('kategori_id', 'Kategori'), ('nilai', 'Nilai'), ('nama', 'Nama Kriteria'),
             ('keterangan', 'Keterangan')],
    order_by=KriteriaNilai.nilai,
    prepare_form=prepare_kriteria_form,
    list_context=lambda rows: {'lookups': {'kategori_id': {k.id: k.nama for k in KategoriPenilaian.query}}},
).register(penilaian_bp)


# Scores

def default_semester_id():
    periode = Periode.default()
    return periode.id if periode else None


def prepare_nilai_form(form, obj=None):
    user = current_user()
    if not form.cabang_id.data and user and user.cabang:
        cabang = Cabang.query.filter_by(nama=user.cabang).first()
        if cabang:
            form.cabang_id.data = cabang.id
    if not form.semester_id.data:
        form.semester_id.data = default_semester_id()

    form.cabang_id.choices = cabang_id_choices()
    form.kelas_id.choices = kelas_id_choices(form.cabang_id.data)
    kelas = db.session.get(Kelas, form.kelas_id.data) if form.kelas_id.data else None
    form.siswa_id.choices = siswa_id_choices(kelas.nama_kelas, kelas.cabang) if kelas else siswa_id_choices()
    form.semester_id.choices = periode_choices()


def resolve_common_names(obj):
    """Copy the names of the chosen branch, class, student and semester onto the score."""
    cabang = db.session.get(Cabang, obj.cabang_id)
    kelas = db.session.get(Kelas, obj.kelas_id)
    siswa = db.session.get(Siswa, obj.siswa_id)
    semester = db.session.get(Periode, obj.semester_id)
    obj.nama_cabang = cabang.nama if cabang else None
    obj.nama_kelas = kelas.nama_kelas if kelas else None
    obj.nama_siswa = siswa.nama if siswa else None
    obj.nama_semester = semester.nama_periode if semester else None
    if obj.id:
        obj.updated_at = datetime.utcnow()


def int_arg(value):
    return int(value) if value and str(value).isdigit() else None


def make_nilai_resource(name, model, form_class, title, kategori_nama, item_columns, prepare_items,
                        resolve_items):
    resource = None

    def prepare(form, obj=None):
        prepare_nilai_form(form, obj)
        prepare_items(form)
        form.nilai.choices = nilai_choices(kategori_nama)

    def populate(obj, form):
        populate_columns(obj, form)
        resolve_common_names(obj)
        resolve_items(obj)

    def scope(query, user):
        cabang = user.branch_scope()
        if cabang:
            query = query.filter(model.nama_cabang == cabang)
        return query

    def filter_query(query, user):
        cabang_id = int_arg(resource.filter_value('cabang_id'))
        kelas_id = int_arg(resource.filter_value('kelas_id'))
        siswa_id = int_arg(resource.filter_value('siswa_id'))
        semester_id = int_arg(resource.filter_value('semester_id'))
        if user.is_teacher and not kelas_id:
            query = query.filter(model.nama_kelas.in_(classes_taught(user)))
        if cabang_id:
            query = query.filter(model.cabang_id == cabang_id)
        if kelas_id:
            query = query.filter(model.kelas_id == kelas_id)
        if siswa_id:
            query = query.filter(model.siswa_id == siswa_id)
        if semester_id:
            query = query.filter(model.semester_id == semester_id)
        return query

    def list_context(rows):
        return {'value_labels': nilai_labels(kategori_nama)}

    resource = CrudResource(
        name, model, form_class, title,
        columns=[('tanggal', 'Tanggal'), ('nama_siswa', 'Siswa'), ('nama_kelas', 'Kelas')] + item_columns +
                [('nilai', 'Nilai'), ('nama_semester', 'Semester')],
        order_by=model.created_at.desc(),
        roles=STAFF_ROLES,
        scope=scope,
        filter_query=filter_query,
        prepare_form=prepare,
        populate=populate,
        label_attr='nama_siswa',
        list_context=list_context,
        filters=[
            ('cabang_id', 'Cabang', lambda: [('', 'Semua Cabang')] + cabang_id_choices()[1:]),
            ('kelas_id', 'Kelas', lambda: [('', 'Semua Kelas')] + kelas_id_choices(
                int_arg(resource.filter_value('cabang_id')))[1:]),
            ('siswa_id', 'Siswa', lambda: [('', 'Semua Siswa')] + siswa_choices_for_filter(
                int_arg(resource.filter_value('kelas_id')))),
            ('semester_id', 'Semester', lambda: [('', 'Semua Semester')] + periode_choices()[1:]),
        ],
        filter_defaults={'semester_id': default_semester_id},
    )
    return resource.register(penilaian_bp)


def siswa_choices_for_filter(kelas_id):
    kelas = db.session.get(Kelas, kelas_id) if kelas_id else None
    if not kelas:
        return []
    return siswa_id_choices(kelas.nama_kelas, kelas.cabang)[1:]


def prepare_indikator_items(form):
    form.indikator_id.choices = group_choices(IndikatorGroup, '-- Pilih Indikator --')
    form.sub_indikator_id.choices = sub_indikator_choices(form.indikator_id.data)


def resolve_indikator(obj):
    group = db.session.get(IndikatorGroup, obj.indikator_id)
    sub = db.session.get(SubIndikator, obj.sub_indikator_id)
    obj.nama_indikator = group.nama if group else None
    obj.nama_sub_indikator = sub_item_label(sub) if sub else None


def prepare_tahap_items(form):
    form.tahap_id.choices = [(0, '-- Pilih Tahap Perkembangan --')] + tahap_choices()


def resolve_tahap(obj):
    tahap = db.session.get(TahapPerkembangan, obj.tahap_id)
    obj.nama_tahap = tahap.deskripsi if tahap else None


def prepare_trilogi_items(form):
    form.trilogi_id.choices = group_choices(TrilogiGroup, '-- Pilih Trilogi --')
    form.sub_trilogi_id.choices = sub_trilogi_choices(form.trilogi_id.data)


def resolve_trilogi(obj):
    group = db.session.get(TrilogiGroup, obj.trilogi_id)
    sub = db.session.get(SubTrilogi, obj.sub_trilogi_id)
    obj.nama_trilogi = group.nama if group else None
    obj.nama_sub_trilogi = sub_item_label(sub) if sub else None


nilai_indikator = make_nilai_resource(
    'nilai_indikator', NilaiIndikator, NilaiIndikatorForm, 'Nilai Indikator', KATEGORI_INDIKATOR,
    [('nama_indikator', 'Indikator'), ('nama_sub_indikator', 'Sub Indikator')],
    prepare_indikator_items, resolve_indikator)

nilai_perkembangan = make_nilai_resource(
    'nilai_perkembangan', NilaiPerkembangan, NilaiPerkembanganForm, 'Nilai Perkembangan',
    KATEGORI_PERKEMBANGAN, [('nama_tahap', 'Tahap Perkembangan')], prepare_tahap_items, resolve_tahap)

nilai_trilogi = make_nilai_resource(
    'nilai_trilogi', NilaiTrilogi, NilaiTrilogiForm, 'Nilai Trilogi', KATEGORI_TRILOGI,
    [('nama_trilogi', 'Trilogi'), ('nama_sub_trilogi', 'Sub Trilogi')], prepare_trilogi_items, resolve_trilogi)


# Info tambahan rapor

def prepare_info_form(form, obj=None):
    form.cabang.choices = cabang_name_choices()
    form.kelas.choices = kelas_name_choices(form.cabang.data)
    form.semester.choices = [('', '-- Pilih Semester --')] + [
        (p.nama_periode, p.nama_periode) for p in Periode.query.order_by(Periode.id.desc())]
    if not form.semester.data:
        periode = Periode.default()
        form.semester.data = periode.nama_periode if periode else ''


def scope_info(query, user):
    scope = user.branch_scope()
    if scope:
        query = query.filter_by(cabang=scope)
    if user.is_teacher:
        query = query.filter(InfoTambahanRapor.kelas.in_(classes_taught(user)))
    return query


def delete_info_rows(obj):
    InfoTambahanSiswa.query.filter_by(info_tambahan_id=obj.id).delete()


info_tambahan = CrudResource(
    'info_tambahan', InfoTambahanRapor, InfoTambahanForm, 'Info Tambahan Rapor',
    columns=[('cabang', 'Cabang'), ('kelas', 'Kelas'), ('semester', 'Semester')],
    order_by=InfoTambahanRapor.created_at.desc(),
    roles=STAFF_ROLES,
    scope=scope_info,
    prepare_form=prepare_info_form,
    on_delete=delete_info_rows,
    label_attr='kelas',
    row_actions=[('Isi Detail', 'penilaian.info_tambahan_detail', 'GET')],
).register(penilaian_bp)

INFO_FIELDS = [('berat_badan', float), ('tinggi_badan', float), ('lingkar_kepala', float),
               ('sakit', int), ('ijin', int), ('alpa', int)]


def parse_number(value, kind):
    value = (value or '').strip().replace(',', '.')
    if not value:
        return None if kind is float else 0
    try:
        return kind(float(value)) if kind is int else kind(value)
    except ValueError:
        return None if kind is float else 0


def save_info_rows(info, students, formdata):
    """Upsert one InfoTambahanSiswa row per student of the class."""
    existing = {row.siswa_id: row for row in InfoTambahanSiswa.query.filter_by(info_tambahan_id=info.id)}
    for siswa in students:
        row = existing.get(siswa.id)
        if row is None:
            row = InfoTambahanSiswa(info_tambahan_id=info.id, siswa_id=siswa.id)
            db.session.add(row)
        for field, kind in INFO_FIELDS:
            setattr(row, field, parse_number(formdata.get(f'{field}_{siswa.id}'), kind))
    return existing


@penilaian_bp.route('/info-tambahan/<int:item_id>/detail', methods=['GET', 'POST'])
@login_required
@roles_required(*STAFF_ROLES)
def info_tambahan_detail(item_id):
    info = info_tambahan.get_or_404(item_id)
    students = Siswa.query.filter_by(kelas=info.kelas, cabang=info.cabang).order_by(Siswa.nama).all()
    if request.method == 'POST':
        try:
            save_info_rows(info, students, request.form)
            log_activity(f'Menyimpan info tambahan rapor {info.kelas} ({info.semester})')
            db.session.commit()
            flash('Data info tambahan berhasil disimpan!', 'success')
            return redirect(url_for('penilaian.info_tambahan_detail', item_id=info.id))
        except Exception as e:
            db.session.rollback()
            logger.exception(f"Error saving info tambahan {item_id}")
            flash(f'Gagal menyimpan data: {str(e)}', 'error')
    rows = {row.siswa_id: row for row in InfoTambahanSiswa.query.filter_by(info_tambahan_id=info.id)}
    return render_template('penilaian/info_tambahan_detail.html', info=info, students=students, rows=rows,
                           fields=[field for field, _ in INFO_FIELDS])


# Rapor

def default_narasi(siswa):
    return (f'Berikut adalah laporan perkembangan untuk ananda {siswa.nama}. Secara umum, ananda '
            'menunjukkan perkembangan yang positif dan antusias dalam mengikuti kegiatan belajar.')


def kepala_sekolah_for(cabang):
    guru = Guru.query.filter_by(role='Kepala Sekolah', cabang=cabang).first() if cabang else None
    return guru.nama if guru else '-'


def wali_kelas_for(siswa):
    kelas = Kelas.query.filter_by(nama_kelas=siswa.kelas, cabang=siswa.cabang).first()
    if kelas and kelas.guru_kelas:
        return ', '.join(kelas.guru_kelas)
    return '-'


def rapor_data(siswa, semester_id, narasi=None):
    """Everything printed on a report card for one student and semester."""
    semester = db.session.get(Periode, semester_id) if semester_id else None

    def label(labels, value):
        return labels.get(value, value)

    perkembangan_labels = nilai_labels(KATEGORI_PERKEMBANGAN)
    indikator_labels = nilai_labels(KATEGORI_INDIKATOR)
    trilogi_labels = nilai_labels(KATEGORI_TRILOGI)

    perkembangan = [{'nama': row.nama_tahap, 'nilai': label(perkembangan_labels, row.nilai)}
                    for row in NilaiPerkembangan.query.filter_by(siswa_id=siswa.id, semester_id=semester_id)
                    .order_by(NilaiPerkembangan.tanggal)]
    indikator = [{'group': row.nama_indikator, 'nama': row.nama_sub_indikator,
                  'nilai': label(indikator_labels, row.nilai)}
                 for row in NilaiIndikator.query.filter_by(siswa_id=siswa.id, semester_id=semester_id)
                 .order_by(NilaiIndikator.tanggal)]
    trilogi = [{'group': row.nama_trilogi, 'nama': row.nama_sub_trilogi,
                'nilai': label(trilogi_labels, row.nilai)}
               for row in NilaiTrilogi.query.filter_by(siswa_id=siswa.id, semester_id=semester_id)
               .order_by(NilaiTrilogi.tanggal)]

    info = None
    if semester:
        header = InfoTambahanRapor.query.filter_by(cabang=siswa.cabang, kelas=siswa.kelas,
                                                   semester=semester.nama_periode).first()
        if header:
            info = InfoTambahanSiswa.query.filter_by(info_tambahan_id=header.id, siswa_id=siswa.id).first()

    return {
        'siswa': siswa,
        'semester': semester.nama_periode if semester else '-',
        'narasi': narasi or default_narasi(siswa),
        'perkembangan': perkembangan,
        'indikator': indikator,
        'trilogi': trilogi,
        'info': info,
        'kepala_sekolah': kepala_sekolah_for(siswa.cabang),
        'wali_kelas': wali_kelas_for(siswa),
    }


def rapor_students(user, kelas=None):
    query = Siswa.query
    scope = user.branch_scope()
    if scope:
        query = query.filter_by(cabang=scope)
    if user.is_teacher:
        query = query.filter(Siswa.kelas.in_(classes_taught(user)))
    if kelas:
        query = query.filter_by(kelas=kelas)
    return query.order_by(Siswa.nama).all()


@penilaian_bp.route('/rapor')
@login_required
@roles_required(*STAFF_ROLES)
def rapor():
    user = current_user()
    kelas = request.args.get('kelas', '')
    semester_id = int_arg(request.args.get('semester_id')) or default_semester_id()
    siswa_id = int_arg(request.args.get('siswa_id'))
    students = rapor_students(user, kelas)

    data = None
    if siswa_id:
        siswa = db.session.get(Siswa, siswa_id)
        if siswa is None or siswa not in rapor_students(user):
            flash('Siswa tidak ditemukan.', 'error')
        else:
            data = rapor_data(siswa, semester_id, request.args.get('narasi'))

    if user.is_teacher:
        kelas_choices = [('', 'Semua Kelas')] + [(k, k) for k in classes_taught(user)]
    else:
        kelas_choices = kelas_name_choices(user.branch_scope(), 'Semua Kelas')
    return render_template('penilaian/rapor.html', students=students, kelas=kelas, kelas_choices=kelas_choices,
                           semester_id=semester_id, siswa_id=siswa_id, semesters=periode_choices()[1:],
                           data=data)


@penilaian_bp.route('/rapor/pdf', methods=['POST'])
@login_required
@roles_required(*STAFF_ROLES)
def rapor_pdf_view():
    user = current_user()
    siswa = db.session.get(Siswa, int_arg(request.form.get('siswa_id')) or 0)
    if siswa is None or siswa not in rapor_students(user):
        flash('Pilih siswa terlebih dahulu.', 'error')
        return redirect(url_for('penilaian.rapor'))
    semester_id = int_arg(request.form.get('semester_id')) or default_semester_id()
    narasi = (request.form.get('narasi') or '').strip()
    if not narasi:
        flash('Narasi tidak boleh kosong.', 'error')
        return redirect(url_for('penilaian.rapor', siswa_id=siswa.id, semester_id=semester_id))

    data = rapor_data(siswa, semester_id, narasi)
    content = rapor_pdf(data, current_app.config['SCHOOL_NAME'])
    log_activity(f'Mencetak rapor: {siswa.nama}', commit=True)
    return send_file(io.BytesIO(content), mimetype='application/pdf', as_attachment=True,
                     download_name=rapor_filename(siswa.nama))
