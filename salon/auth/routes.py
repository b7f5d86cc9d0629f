from flask import Blueprint, render_template, redirect, url_for, flash, request, current_app
from flask_login import login_user, logout_user, login_required, current_user
from sqlalchemy.exc import SQLAlchemyError
from salon import db
from salon.models.user import User
from salon.auth.forms import LoginForm, RegistrationForm, ChangePasswordForm
from salon.utils.audit import log_audit
from salon.utils.roles import current_session_role, SessionRole

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


@auth_bp.route('/register', methods=['GET', 'POST'])
def register():
    if current_user.is_authenticated:
        return redirect(url_for('main.index'))

    form = RegistrationForm()

    if form.validate_on_submit():
        user = User(
            email=form.email.data.strip().lower(),
            name=form.name.data.strip(),
            password=form.password.data
        )

        db.session.add(user)
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.exception(f"Registration failed for {form.email.data}: {e}")
            flash('We could not create your account. Please try again.', 'danger')
            return render_template('auth/register.html', form=form)

        log_audit('create', 'user', user.id, {'email': user.email, 'name': user.name})

        login_user(user)
        flash('Welcome! Your account has been created.', 'success')
        return redirect(url_for('main.index'))

    return render_template('auth/register.html', form=form)


@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    if current_user.is_authenticated:
        return redirect(url_for('main.index'))

    form = LoginForm()

    if form.validate_on_submit():
        email = form.email.data.strip().lower()
        user = User.query.filter_by(email=email).first()

        if user and user.check_password(form.password.data):
            if not user.is_active:
                log_audit('attempt', 'login', user.id, {'email': email, 'reason': 'account_inactive'},
                          success=False)
                flash('Your account is currently deactivated. Please contact the salon.', 'danger')
                return redirect(url_for('auth.login'))

            login_user(user, remember=form.remember_me.data)
            log_audit('perform', 'login', user.id, {
                'email': user.email,
                'user_agent': request.user_agent.string,
                'remember_me': form.remember_me.data
            })

            next_page = request.args.get('next')
            if not next_page or not next_page.startswith('/') or next_page.startswith('//'):
                if current_session_role() is SessionRole.ADMIN:
                    next_page = url_for('admin.dashboard')
                else:
                    next_page = url_for('profile.index')

            flash('Login successful!', 'success')
            return redirect(next_page)

        log_audit('attempt', 'login', user.id if user else None,
                  {'email': email, 'reason': 'invalid_credentials'}, success=False)
        flash('Invalid email or password.', 'danger')

    return render_template('auth/login.html', form=form)


@auth_bp.route('/logout')
@login_required
def logout():
    log_audit('perform', 'logout', current_user.id, {'email': current_user.email})

    logout_user()
    flash('You have been logged out.', 'info')
    return redirect(url_for('main.index'))


@auth_bp.route('/change-password', methods=['GET', 'POST'])
@login_required
def change_password():
    form = ChangePasswordForm()

    if form.validate_on_submit():
        if not current_user.check_password(form.current_password.data):
            log_audit('attempt', 'password_change', current_user.id,
                      {'reason': 'reauthentication_failed'}, success=False)
            form.current_password.errors.append('Current password is incorrect.')
            return render_template('auth/change_password.html', form=form)

        current_user.set_password(form.password.data)
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.exception(f"Password change failed for user {current_user.id}: {e}")
            flash('We could not update your password. Please try again.', 'danger')
            return render_template('auth/change_password.html', form=form)

        log_audit('update', 'password_change', current_user.id, {'change_method': 'user_initiated'})

        flash('Your password has been updated.', 'success')
        return redirect(url_for('profile.index'))

    return render_template('auth/change_password.html', form=form)
