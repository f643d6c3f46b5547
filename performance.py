"""
Teacher KPI records per period.
"""
import logging

from flask import Blueprint, render_template, request

from access import TEACHER_ROLES, current_user, roles_required
from crud import CrudResource, scope_to_branch
from forms import KpiForm, guru_id_choices, periode_choices
from models import Guru, KpiGuru, Periode, db
from security import login_required

logger = logging.getLogger(__name__)

performance_bp = Blueprint('performance', __name__, url_prefix='/kinerja')


def prepare_kpi_form(form, obj=None):
    user = current_user()
    form.guru_id.choices = guru_id_choices(user.branch_scope() if user else None)
    form.periode_id.choices = periode_choices()
    if obj is None and not form.periode_id.data:
        default = Periode.default()
        if default:
            form.periode_id.data = default.id


def copy_names(obj, form, created):
    """Teacher name, branch and period name are stored alongside the ids."""
    guru = db.session.get(Guru, obj.guru_id)
    if guru is None:
        raise ValueError('Guru tidak ditemukan')
    obj.nama_guru = guru.nama
    obj.cabang = guru.cabang
    periode = db.session.get(Periode, obj.periode_id) if obj.periode_id else None
    obj.nama_periode = periode.nama_periode if periode else None


def filter_kpi(query, user):
    periode_id = request.args.get('periode_id', '')
    if periode_id.isdigit() and int(periode_id):
        query = query.filter_by(periode_id=int(periode_id))
    return query


def periode_filter_choices():
    return [('', 'Semua Periode')] + periode_choices()[1:]


kpi = CrudResource(
    'kpi', KpiGuru, KpiForm, 'KPI Guru',
    columns=[('nama_guru', 'Guru'), ('cabang', 'Cabang'), ('indikator', 'Indikator'), ('target', 'Target'),
             ('tercapai', 'Tercapai'), ('persentase', 'Capaian (%)'), ('nama_periode', 'Periode')],
    order_by=KpiGuru.created_at.desc(),
    scope=scope_to_branch,
    filter_query=filter_kpi,
    prepare_form=prepare_kpi_form,
    after_save=copy_names,
    label_attr='indikator',
    filters=[('periode_id', 'Periode', periode_filter_choices)],
).register(performance_bp)


@performance_bp.route('/saya')
@login_required
@roles_required(*TEACHER_ROLES)
def kpi_saya():
    user = current_user()
    rows = KpiGuru.query.filter_by(guru_id=user.guru.id).order_by(KpiGuru.created_at.desc()).all()
    return render_template('performance/kpi_saya.html', rows=rows)
