import logging

from flask import Blueprint, flash, g, redirect, render_template, request, session, url_for

import identity
from crud import form_errors, log_activity
from errors import IdentityError
from forms import ChangePasswordForm, ForgotPasswordForm, LoginForm, ResetPasswordForm
from security import login_required, make_reset_token, read_reset_token

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)


def _safe_next(target):
    # Only same-site relative paths
    if target and target.startswith('/') and not target.startswith('//'):
        return target
    return None


@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    if 'logged_in' in session:
        return redirect(url_for('home.index'))

    form = LoginForm()
    if form.validate_on_submit():
        account = identity.authenticate(form.email.data, form.password.data)
        if account:
            session.clear()
            session['logged_in'] = True
            session['uid'] = account.uid
            session['email'] = account.email
            session.permanent = True
            g.pop('current_user', None)
            log_activity('Login', commit=True)
            logger.info(f"User {account.email} logged in")
            flash('Login berhasil!', 'success')
            return redirect(_safe_next(request.args.get('next')) or url_for('home.index'))
        logger.warning(f"Failed login for {form.email.data}")
        flash('Email atau password salah!', 'error')
    elif request.method == 'POST':
        for message in form_errors(form):
            flash(message, 'error')

    return render_template('auth/login.html', form=form)


@auth_bp.route('/logout')
def logout():
    session.clear()
    flash('Anda telah logout.', 'info')
    return redirect(url_for('auth.login'))


@auth_bp.route('/forgot-password', methods=['GET', 'POST'])
def forgot_password():
    form = ForgotPasswordForm()
    if form.validate_on_submit():
        account = identity.get_by_email(form.email.data)
        if account:
            token = make_reset_token(account.uid)
            link = url_for('auth.reset_password', token=token, _external=True)
            # No mail service: the link goes to the server log for the administrator
            logger.info(f"Password reset link for {account.email}: {link}")
        else:
            logger.info(f"Password reset requested for unknown email {form.email.data}")
        flash('Jika email terdaftar, tautan reset password telah dibuat. Hubungi administrator.', 'info')
        return redirect(url_for('auth.login'))
    return render_template('auth/forgot_password.html', form=form)


@auth_bp.route('/reset-password/<token>', methods=['GET', 'POST'])
def reset_password(token):
    uid = read_reset_token(token)
    if not uid:
        flash('Tautan reset password tidak valid atau sudah kedaluwarsa.', 'error')
        return redirect(url_for('auth.forgot_password'))

    form = ResetPasswordForm()
    if form.validate_on_submit():
        try:
            identity.set_password(uid, form.password.data)
            flash('Password berhasil diubah. Silakan login.', 'success')
            return redirect(url_for('auth.login'))
        except IdentityError as e:
            flash(str(e), 'error')
    elif request.method == 'POST':
        for message in form_errors(form):
            flash(message, 'error')
    return render_template('auth/reset_password.html', form=form, token=token)


@auth_bp.route('/change-password', methods=['GET', 'POST'])
@login_required
def change_password():
    form = ChangePasswordForm()
    if form.validate_on_submit():
        try:
            identity.change_password(session['uid'], form.old_password.data, form.new_password.data)
            log_activity('Mengubah password', commit=True)
            flash('Password berhasil diubah!', 'success')
            return redirect(url_for('home.index'))
        except IdentityError as e:
            flash(str(e), 'error')
    elif request.method == 'POST':
        for message in form_errors(form):
            flash(message, 'error')
    return render_template('auth/change_password.html', form=form)
