"""
Teacher screens: my students and notes about them.
"""
import logging

from flask import Blueprint, flash, redirect, render_template, request, url_for

from access import TEACHER_ROLES, classes_taught, current_user, roles_required
from crud import form_errors, log_activity
from forms import CatatanForm
from models import CatatanGuru, Siswa, db
from security import login_required

logger = logging.getLogger(__name__)

guru_bp = Blueprint('guru', __name__, url_prefix='/guru')


def my_students(user):
    """Students of the teacher's branch in the classes that list the teacher."""
    kelas = classes_taught(user)
    if not kelas:
        return []
    return (Siswa.query.filter(Siswa.cabang == user.cabang, Siswa.kelas.in_(kelas))
            .order_by(Siswa.kelas, Siswa.nama).all())


@guru_bp.route('/siswa-saya')
@login_required
@roles_required(*TEACHER_ROLES)
def siswa_saya():
    user = current_user()
    return render_template('guru/siswa_saya.html', students=my_students(user), kelas=classes_taught(user))


@guru_bp.route('/catatan', methods=['GET', 'POST'])
@login_required
@roles_required(*TEACHER_ROLES)
def catatan():
    user = current_user()
    students = my_students(user)
    form = CatatanForm()
    form.siswa_id.choices = [(0, '-- Pilih Siswa --')] + [(s.id, f'{s.nama} ({s.kelas})') for s in students]

    if request.method == 'POST':
        if form.validate_on_submit():
            siswa = next((s for s in students if s.id == form.siswa_id.data), None)
            try:
                note = CatatanGuru(guru_id=user.guru.id, guru_nama=user.nama, siswa_id=siswa.id,
                                   siswa_nama=siswa.nama, catatan=form.catatan.data, cabang=user.cabang)
                db.session.add(note)
                log_activity(f'Menambah catatan untuk {siswa.nama}')
                db.session.commit()
                flash('Catatan berhasil disimpan!', 'success')
                return redirect(url_for('guru.catatan'))
            except Exception as e:
                db.session.rollback()
                logger.exception("Error saving catatan guru")
                flash(f'Gagal menyimpan catatan: {str(e)}', 'error')
        else:
            for message in form_errors(form):
                flash(message, 'error')

    notes = (CatatanGuru.query.filter_by(guru_id=user.guru.id)
             .order_by(CatatanGuru.created_at.desc()).all())
    return render_template('guru/catatan.html', form=form, notes=notes)


@guru_bp.route('/catatan/<int:item_id>/delete', methods=['POST'])
@login_required
@roles_required(*TEACHER_ROLES)
def catatan_delete(item_id):
    user = current_user()
    note = db.get_or_404(CatatanGuru, item_id)
    if note.guru_id != user.guru.id:
        flash('Anda hanya dapat menghapus catatan Anda sendiri.', 'error')
        return redirect(url_for('guru.catatan'))
    try:
        db.session.delete(note)
        log_activity(f'Menghapus catatan untuk {note.siswa_nama}')
        db.session.commit()
        flash('Catatan dihapus.', 'success')
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Error deleting catatan {item_id}")
        flash(f'Gagal menghapus catatan: {str(e)}', 'error')
    return redirect(url_for('guru.catatan'))
