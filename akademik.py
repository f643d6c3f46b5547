"""
Academic master data (7 habits, indicators, developmental stages, trilogy)
and daily lesson plans (RPPH).
"""
import re

from flask import Blueprint, render_template

from access import STAFF_ROLES, classes_taught, current_user, roles_required
from crud import CrudResource, populate_columns
from forms import (GroupForm, HabitForm, KelompokUsiaForm, RpphForm, SubItemForm, TahapForm,
                   group_choices, kelas_name_choices, kelompok_usia_choices, sub_item_label)
from models import (Habit, IndikatorGroup, KelompokUsia, Rpph, SubIndikator, SubTrilogi,
                    TahapPerkembangan, TrilogiGroup)
from security import login_required

akademik_bp = Blueprint('akademik', __name__, url_prefix='/akademik')


def natural_key(text):
    """Sort key that orders 1.2 before 1.10."""
    return [int(part) if part.isdigit() else part.lower() for part in re.split(r'(\d+)', text or '')]


# 7 Habits

habit = CrudResource(
    'habit', Habit, HabitForm, '7 Habits',
    columns=[('nama', 'Nama Habit'), ('deskripsi', 'Deskripsi')],
    order_by=Habit.id,
).register(akademik_bp)


# Indikator

indikator_group = CrudResource(
    'indikator_group', IndikatorGroup, GroupForm, 'Indikator',
    columns=[('nama', 'Nama Indikator')],
    order_by=IndikatorGroup.nama,
).register(akademik_bp, '/indikator')


def prepare_sub_indikator_form(form, obj=None):
    form.group_id.choices = group_choices(IndikatorGroup, '-- Pilih Indikator --')


sub_indikator = CrudResource(
    'sub_indikator', SubIndikator, SubItemForm, 'Sub Indikator',
    columns=[('kode', 'Kode'), ('deskripsi', 'Deskripsi'), ('group_id', 'Indikator')],
    order_by=SubIndikator.kode,
    prepare_form=prepare_sub_indikator_form,
    label_attr='kode',
).register(akademik_bp)


# Trilogi

trilogi_group = CrudResource(
    'trilogi_group', TrilogiGroup, GroupForm, 'Trilogi',
    columns=[('nama', 'Nama Trilogi')],
    order_by=TrilogiGroup.nama,
).register(akademik_bp, '/trilogi')


def prepare_sub_trilogi_form(form, obj=None):
    form.group_id.choices = group_choices(TrilogiGroup, '-- Pilih Trilogi --')


sub_trilogi = CrudResource(
    'sub_trilogi', SubTrilogi, SubItemForm, 'Sub Trilogi',
    columns=[('kode', 'Kode'), ('deskripsi', 'Deskripsi'), ('group_id', 'Trilogi')],
    order_by=SubTrilogi.kode,
    prepare_form=prepare_sub_trilogi_form,
    label_attr='kode',
).register(akademik_bp)


# Kelompok usia & tahap perkembangan

kelompok_usia = CrudResource(
    'kelompok_usia', KelompokUsia, KelompokUsiaForm, 'Kelompok Usia',
    columns=[('usia', 'Kelompok Usia')],
    order_by=KelompokUsia.usia,
    label_attr='usia',
).register(akademik_bp)


def prepare_tahap_form(form, obj=None):
    form.kelompok_usia_id.choices = kelompok_usia_choices()


tahap = CrudResource(
    'tahap', TahapPerkembangan, TahapForm, 'Tahap Perkembangan',
    columns=[('kelompok_usia_id', 'Kelompok Usia'), ('lingkup', 'Lingkup'), ('deskripsi', 'Tahap Perkembangan')],
    order_by=TahapPerkembangan.id,
    prepare_form=prepare_tahap_form,
    label_attr='deskripsi',
).register(akademik_bp, '/tahap-perkembangan')


def group_names(model):
    return {g.id: g.nama for g in model.query.all()}


def age_group_names():
    return {k.id: k.usia for k in KelompokUsia.query.all()}


sub_indikator.list_context = lambda rows: {'lookups': {'group_id': group_names(IndikatorGroup)}}
sub_trilogi.list_context = lambda rows: {'lookups': {'group_id': group_names(TrilogiGroup)}}
tahap.list_context = lambda rows: {'lookups': {'kelompok_usia_id': age_group_names()}}


# RPPH

def draft_rpph(rpph):
    """Plain-text lesson plan assembled from the planning fields."""
    tanggal = rpph.tanggal.strftime('%d/%m/%Y') if rpph.tanggal else '-'
    lines = [
        'RENCANA PELAKSANAAN PEMBELAJARAN HARIAN (RPPH)',
        '',
        f'Hari/Tanggal     : {tanggal}',
        f'Kelas            : {rpph.kelas or "-"}',
        f'Kelompok Usia    : {rpph.kelompok_usia or "-"}',
        f'Tema / Sub Tema  : {rpph.tema} / {rpph.sub_tema or "-"}',
        f'Materi           : {rpph.materi or "-"}',
        '',
        'A. Deskripsi Kegiatan',
        rpph.deskripsi or '-',
        '',
        'B. Tujuan & Indikator Pembelajaran',
    ]
    lines += [f'- {item}' for item in (rpph.indikator or [])] or ['-']
    lines += ['', 'C. Tahap Perkembangan']
    lines += [f'- {item}' for item in (rpph.tahap_perkembangan or [])] or ['-']
    lines += [
        '',
        'D. Kegiatan Pembelajaran',
        '1. Pembukaan (+/- 30 menit): berbaris, ikrar, berdoa, apersepsi tentang '
        f'{rpph.tema} ({rpph.sub_tema or "-"}).',
        f'2. Inti (+/- 60 menit): mengamati, menanya, mengeksplorasi dan menceritakan {rpph.materi or "materi"}.',
        '3. Penutup (+/- 30 menit): refleksi perasaan, evaluasi kegiatan, informasi esok hari, berdoa.',
        '',
        'E. Nilai Khas Sekolah (Trilogi)',
    ]
    lines += [f'- {item}' for item in (rpph.trilogi or [])] or ['-']
    return '\n'.join(lines)


def prepare_rpph_form(form, obj=None):
    user = current_user()
    if user and user.is_teacher:
        form.kelas.choices = [('', '-- Pilih Kelas --')] + [(k, k) for k in classes_taught(user)]
    else:
        form.kelas.choices = kelas_name_choices()
    form.kelompok_usia.choices = [('', '-- Pilih Kelompok Usia --')] + [
        (k.usia, k.usia) for k in KelompokUsia.query.order_by(KelompokUsia.usia)]
    form.tahap_perkembangan.choices = [(t.deskripsi, t.deskripsi) for t in TahapPerkembangan.query.all()]
    indikator = sorted(SubIndikator.query.all(), key=lambda s: natural_key(s.kode))
    form.indikator.choices = [(sub_item_label(s), sub_item_label(s)) for s in indikator]
    trilogi = sorted(SubTrilogi.query.all(), key=lambda s: natural_key(s.kode))
    form.trilogi.choices = [(sub_item_label(s), sub_item_label(s)) for s in trilogi]


def populate_rpph(obj, form):
    populate_columns(obj, form)
    if not (obj.content or '').strip():
        obj.content = draft_rpph(obj)


def scope_rpph(query, user):
    if user.is_teacher:
        query = query.filter(Rpph.kelas.in_(classes_taught(user)))
    return query


rpph = CrudResource(
    'rpph', Rpph, RpphForm, 'RPPH',
    columns=[('tanggal', 'Tanggal'), ('tema', 'Tema'), ('sub_tema', 'Sub Tema'), ('kelas', 'Kelas'),
             ('kelompok_usia', 'Kelompok Usia')],
    order_by=Rpph.tanggal.desc(),
    roles=STAFF_ROLES,
    scope=scope_rpph,
    prepare_form=prepare_rpph_form,
    populate=populate_rpph,
    label_attr='tema',
    row_actions=[('Lihat', 'akademik.rpph_view', 'GET')],
).register(akademik_bp)


@akademik_bp.route('/rpph/<int:item_id>')
@login_required
@roles_required(*STAFF_ROLES)
def rpph_view(item_id):
    return render_template('akademik/rpph_view.html', rpph=rpph.get_or_404(item_id))
