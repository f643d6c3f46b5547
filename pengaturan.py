"""
Settings: branches, classes, finance nomenclature and semesters / KPI periods.
"""
import logging

from flask import Blueprint, flash, redirect, request, url_for

from access import ADMIN, ADMIN_PANEL_ROLES, DIREKTUR, YAYASAN, roles_required
from crud import CrudResource, log_activity, scope_to_branch
from forms import CabangForm, KelasForm, NomenklaturForm, PeriodeForm, cabang_name_choices
from models import Cabang, Guru, Kelas, Nomenklatur, Periode, db
from security import login_required

logger = logging.getLogger(__name__)

pengaturan_bp = Blueprint('pengaturan', __name__, url_prefix='/pengaturan')


# Cabang

cabang = CrudResource(
    'cabang', Cabang, CabangForm, 'Cabang',
    columns=[('nama', 'Nama Cabang'), ('kepala_sekolah', 'Kepala Sekolah'), ('alamat', 'Alamat'),
             ('status', 'Status')],
    order_by=Cabang.nama,
    roles=(ADMIN, DIREKTUR, YAYASAN),
).register(pengaturan_bp)


# Kelas

def prepare_kelas_form(form, obj=None):
    form.cabang.choices = cabang_name_choices()
    form.guru_kelas.choices = [(g.nama, f'{g.nama} ({g.cabang or "-"})')
                               for g in Guru.query.order_by(Guru.nama).all()]


def filter_kelas(query, user):
    if request.args.get('cabang'):
        query = query.filter_by(cabang=request.args['cabang'])
    return query


kelas = CrudResource(
    'kelas', Kelas, KelasForm, 'Kelas',
    columns=[('nama_kelas', 'Nama Kelas'), ('cabang', 'Cabang'), ('jenjang_kelas', 'Jenjang'),
             ('guru_kelas', 'Guru Kelas')],
    order_by=Kelas.nama_kelas,
    scope=scope_to_branch,
    filter_query=filter_kelas,
    prepare_form=prepare_kelas_form,
    label_attr='nama_kelas',
    filters=[('cabang', 'Cabang', lambda: cabang_name_choices('Semua Cabang'))],
).register(pengaturan_bp)


# Nomenklatur keuangan

nomenklatur = CrudResource(
    'nomenklatur', Nomenklatur, NomenklaturForm, 'Nomenklatur Keuangan',
    columns=[('nama', 'Nama'), ('kategori', 'Kategori')],
    order_by=Nomenklatur.nama,
).register(pengaturan_bp)


# Periode / semester

def make_default(periode):
    """Flag one period as the default and clear every other flag."""
    Periode.query.filter(Periode.id != periode.id).update({'is_default': False})
    periode.is_default = True


def after_save_periode(obj, form, created):
    if obj.is_default:
        make_default(obj)


periode = CrudResource(
    'periode', Periode, PeriodeForm, 'Periode',
    columns=[('nama_periode', 'Nama Periode'), ('is_default', 'Default')],
    order_by=Periode.id.desc(),
    after_save=after_save_periode,
    label_attr='nama_periode',
    row_actions=[('Jadikan Default', 'pengaturan.periode_set_default', 'POST')],
).register(pengaturan_bp)


@pengaturan_bp.route('/periode/<int:item_id>/default', methods=['POST'])
@login_required
@roles_required(*ADMIN_PANEL_ROLES)
def periode_set_default(item_id):
    obj = periode.get_or_404(item_id)
    try:
        make_default(obj)
        log_activity(f'Menjadikan default periode: {obj.nama_periode}')
        db.session.commit()
        flash(f'{obj.nama_periode} dijadikan periode default.', 'success')
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Error setting default periode {item_id}")
        flash(f'Gagal mengubah periode default: {str(e)}', 'error')
    return redirect(url_for('pengaturan.periode_list'))
