"""
Generic list / add / edit / delete screens.

A ``CrudResource`` describes one collection (model, form, table columns, who
may use it) and registers its four views on a Blueprint. Every screen is the
same cycle: fetch the rows, render the table, submit a form, write, redirect
back to the list.
"""
import logging

from flask import abort, flash, redirect, render_template, request, url_for

import storage
from access import ADMIN_PANEL_ROLES, current_user, roles_required
from errors import StorageError
from models import LogAktivitas, db
from security import login_required

logger = logging.getLogger(__name__)


def log_activity(aktivitas, status='Sukses', commit=False):
    """Record an action in the activity log shown on the admin dashboard."""
    user = current_user()
    entry = LogAktivitas(user=user.nama if user else 'Sistem', aktivitas=aktivitas, status=status)
    db.session.add(entry)
    if commit:
        db.session.commit()
    return entry


def populate_columns(obj, form):
    """Copy form data onto the model attributes that share a field name."""
    columns = set(obj.__table__.columns.keys()) - {'id', 'created_at'}
    for field in form:
        if field.name in columns:
            setattr(obj, field.name, field.data)


def scope_to_branch(query, user):
    """Rows of the user's branch only, unless the role sees every branch."""
    cabang = user.branch_scope()
    if cabang:
        query = query.filter_by(cabang=cabang)
    return query


def form_errors(form):
    messages = []
    for field_name, errors in form.errors.items():
        label = form[field_name].label.text if field_name in form else field_name
        for error in errors:
            messages.append(f'{label}: {error}')
    return messages


class CrudResource:

    def __init__(self, name, model, form_class, title, columns, order_by=None,
                 roles=ADMIN_PANEL_ROLES, scope=None, filter_query=None, prepare_form=None,
                 populate=None, after_save=None, on_delete=None, label_attr='nama',
                 filters=None, filter_defaults=None, list_context=None, row_actions=None,
                 list_template='crud/list.html', form_template='crud/form.html'):
        self.name = name
        self.model = model
        self.form_class = form_class
        self.title = title
        self.columns = columns  # [(attribute, header)]
        self.order_by = order_by
        self.roles = roles
        self.scope = scope  # rows the user may touch at all
        self.filter_query = filter_query  # list-only narrowing from the query string
        self.prepare_form = prepare_form
        self.populate = populate or populate_columns
        self.after_save = after_save
        self.on_delete = on_delete
        self.label_attr = label_attr
        self.filters = filters or []  # [(arg, label, options_callable)]
        self.filter_defaults = filter_defaults or {}  # {arg: callable}
        self.list_context = list_context
        self.row_actions = row_actions or []  # [(label, endpoint, method)], endpoint takes item_id
        self.list_template = list_template
        self.form_template = form_template
        self.blueprint_name = None

    # URLs

    def endpoint(self, action):
        return f'{self.blueprint_name}.{self.name}_{action}'

    def list_url(self, **kwargs):
        return url_for(self.endpoint('list'), **kwargs)

    def register(self, bp, url=None):
        self.blueprint_name = bp.name
        url = url or '/' + self.name.replace('_', '-')

        def guarded(view):
            return login_required(roles_required(*self.roles)(view))

        bp.add_url_rule(url, f'{self.name}_list', guarded(self.list_view))
        bp.add_url_rule(f'{url}/add', f'{self.name}_add', guarded(self.add_view), methods=['GET', 'POST'])
        bp.add_url_rule(f'{url}/<int:item_id>/edit', f'{self.name}_edit', guarded(self.edit_view),
                        methods=['GET', 'POST'])
        bp.add_url_rule(f'{url}/<int:item_id>/delete', f'{self.name}_delete', guarded(self.delete_view),
                        methods=['POST'])
        return self

    # Helpers

    def make_form(self, obj=None):
        form = self.form_class(obj=obj)
        if self.prepare_form:
            self.prepare_form(form, obj)
        return form

    def scoped_query(self):
        query = self.model.query
        if self.scope:
            query = self.scope(query, current_user())
        return query

    def query(self):
        query = self.scoped_query()
        if self.filter_query:
            query = self.filter_query(query, current_user())
        if self.order_by is not None:
            query = query.order_by(self.order_by)
        return query

    def get_or_404(self, item_id):
        """Row by id, or 404 when it does not exist or lies outside the user's scope."""
        obj = self.scoped_query().filter(self.model.id == item_id).first()
        if obj is None:
            abort(404)
        return obj

    def check_scope(self, obj):
        if not self.scope:
            return
        db.session.flush()
        if self.scoped_query().filter(self.model.id == obj.id).first() is None:
            raise PermissionError('Data berada di luar cabang atau kelas Anda')

    def label(self, obj):
        return getattr(obj, self.label_attr, None) or f'#{obj.id}'

    def filter_value(self, arg):
        """Query-string value of a list filter. A blank value means no filter."""
        if arg in request.args:
            return request.args[arg]
        default = self.filter_defaults.get(arg)
        return str(default() or '') if default else ''

    def filter_values(self):
        return {arg: self.filter_value(arg) for arg, _, _ in self.filters}

    # Views

    def list_view(self):
        rows = self.query().all()
        context = {}
        if self.list_context:
            context = self.list_context(rows)
        filter_options = [(arg, label, options()) for arg, label, options in self.filters]
        return render_template(self.list_template, resource=self, rows=rows, form=self.make_form(),
                               filter_options=filter_options, filter_values=self.filter_values(),
                               **context)

    def save(self, obj, form, created):
        """Write one add or edit and commit it.

        ``after_save`` may return ``(uploaded, stale)`` object-store paths: the
        stale objects are deleted once the commit succeeds, the uploaded ones
        when it fails.
        """
        uploaded, stale = (), ()
        try:
            self.populate(obj, form)
            if created:
                db.session.add(obj)
                db.session.flush()
            if self.after_save:
                uploaded, stale = self.after_save(obj, form, created) or ((), ())
            self.check_scope(obj)
            verb = 'Menambah' if created else 'Mengubah'
            log_activity(f'{verb} {self.title}: {self.label(obj)}')
            db.session.commit()
        except Exception:
            db.session.rollback()
            for path in uploaded:
                storage.delete(path)
            raise
        for path in stale:
            try:
                storage.delete(path)
            except StorageError:
                logger.exception(f"Could not delete replaced object {path}")

    def add_view(self):
        form = self.make_form()
        if request.method == 'POST':
            if form.validate_on_submit():
                try:
                    self.save(self.model(), form, True)
                    flash(f'{self.title} berhasil ditambahkan!', 'success')
                    return redirect(self.list_url())
                except Exception as e:
                    logger.exception(f"Error adding {self.name}")
                    flash(f'Gagal menambah {self.title}: {str(e)}', 'error')
            else:
                for message in form_errors(form):
                    flash(message, 'error')
        return render_template(self.form_template, resource=self, form=form, obj=None)

    def edit_view(self, item_id):
        obj = self.get_or_404(item_id)
        form = self.make_form(obj)
        if request.method == 'POST':
            if form.validate_on_submit():
                try:
                    self.save(obj, form, False)
                    flash(f'{self.title} berhasil diperbarui!', 'success')
                    return redirect(self.list_url())
                except Exception as e:
                    logger.exception(f"Error updating {self.name} {item_id}")
                    flash(f'Gagal memperbarui {self.title}: {str(e)}', 'error')
            else:
                for message in form_errors(form):
                    flash(message, 'error')
        return render_template(self.form_template, resource=self, form=form, obj=obj)

    def delete_view(self, item_id):
        obj = self.get_or_404(item_id)
        label = self.label(obj)
        try:
            if self.on_delete:
                self.on_delete(obj)
            db.session.delete(obj)
            log_activity(f'Menghapus {self.title}: {label}')
            db.session.commit()
            flash(f'{self.title} berhasil dihapus!', 'success')
        except Exception as e:
            db.session.rollback()
            logger.exception(f"Error deleting {self.name} {item_id}")
            flash(f'Gagal menghapus {self.title}: {str(e)}', 'error')
        return redirect(self.list_url())
