from flask import Blueprint, render_template, redirect, url_for, flash, request, jsonify, current_app
from flask_login import login_required, current_user
from sqlalchemy.exc import SQLAlchemyError
from salon import db
from salon.models.appointment import (Appointment, InvalidTransition, STATUS_CANCELLED, STATUS_COMPLETED,
                                      STATUS_LABELS)
from salon.profile.forms import ProfileUpdateForm
from salon.notifications.tokens import (TokenManager, PermissionRequired, PermissionDenied,
                                        TokenUnavailable)
from salon.utils.audit import log_audit, report_permission_error
from salon.utils.postal import lookup_postal_code, PostalLookupError
from datetime import datetime

profile_bp = Blueprint('profile', __name__, url_prefix='/profile')

token_manager = TokenManager()


def commit_or_flash(message):
    try:
        db.session.commit()
        return True
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(f"{message}: {e}")
        flash('We could not save your change. Please try again.', 'danger')
        return False


def owned_appointment(appointment_id, operation):
    appointment = Appointment.query.get_or_404(appointment_id)
    if appointment.client_id != current_user.id:
        report_permission_error(f'appointments/{appointment.id}', operation)
        flash('Access denied. You can only manage your own appointments.', 'danger')
        return None
    return appointment


@profile_bp.route('/')
@login_required
def index():
    """Profile page with upcoming and past appointments"""
    now = datetime.now()
    upcoming_appointments = current_user.appointments.filter(
        Appointment.start_time >= now,
        Appointment.status.notin_([STATUS_CANCELLED, STATUS_COMPLETED])
    ).order_by(Appointment.start_time).all()

    past_appointments = current_user.appointments.filter(
        db.or_(Appointment.start_time < now,
               Appointment.status.in_([STATUS_CANCELLED, STATUS_COMPLETED]))
    ).order_by(Appointment.start_time.desc()).all()

    return render_template(
        'profile/index.html',
        upcoming_appointments=upcoming_appointments,
        past_appointments=past_appointments,
        subscribed=token_manager.is_subscribed(current_user),
        status_labels=STATUS_LABELS
    )


@profile_bp.route('/edit', methods=['GET', 'POST'])
@login_required
def edit():
    """Update name and address"""
    form = ProfileUpdateForm(obj=current_user)

    if form.validate_on_submit():
        old_values = {
            'name': current_user.name,
            'address': current_user.address,
            'city': current_user.city,
            'state': current_user.state,
            'zip_code': current_user.zip_code,
            'country': current_user.country
        }

        current_user.name = form.name.data.strip()
        current_user.zip_code = form.zip_code.data or None
        current_user.address = form.address.data or None
        current_user.city = form.city.data or None
        current_user.state = form.state.data or None
        current_user.country = form.country.data or None

        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.exception(f"Profile update failed for user {current_user.id}: {e}")
            flash('We could not save your profile. Please try again.', 'danger')
            return render_template('profile/edit.html', form=form)

        log_audit('update', 'user_profile', entity_id=current_user.id, details={
            'old_values': old_values,
            'new_values': {key: getattr(current_user, key) for key in old_values}
        })

        flash('Your profile has been updated.', 'success')
        return redirect(url_for('profile.index'))

    return render_template('profile/edit.html', form=form)


@profile_bp.route('/postal-code/<code>')
@login_required
def postal_code(code):
    """Address autofill for the profile form"""
    try:
        address = lookup_postal_code(code)
    except PostalLookupError:
        return jsonify({'found': False, 'error': 'Postal code service unavailable'}), 502

    if address is None:
        return jsonify({'found': False}), 404

    return jsonify({
        'found': True,
        'address': address.address,
        'city': address.city,
        'state': address.state
    })


@profile_bp.route('/appointments/<int:appointment_id>/cancel', methods=['POST'])
@login_required
def cancel_appointment(appointment_id):
    appointment = owned_appointment(appointment_id, 'update')
    if appointment is None:
        return redirect(url_for('profile.index'))

    if appointment.start_time <= datetime.now():
        flash('Cannot cancel an appointment that has already started.', 'danger')
        return redirect(url_for('profile.index'))

    try:
        appointment.cancel()
    except InvalidTransition as e:
        flash(str(e), 'warning')
        return redirect(url_for('profile.index'))

    if not commit_or_flash(f'Could not cancel appointment {appointment.id}'):
        return redirect(url_for('profile.index'))
    log_audit('cancel', 'appointment', entity_id=appointment.id, details={
        'service_id': appointment.service_id,
        'appointment_time': appointment.start_time,
        'cancelled_by': 'client'
    })

    flash('Your appointment has been cancelled.', 'info')
    return redirect(url_for('profile.index'))


@profile_bp.route('/appointments/<int:appointment_id>/contest/<decision>', methods=['POST'])
@login_required
def answer_contest(appointment_id, decision):
    """Accept or reject the salon's revised hair length and price"""
    if decision not in ('accept', 'reject'):
        return redirect(url_for('profile.index'))

    appointment = owned_appointment(appointment_id, 'update')
    if appointment is None:
        return redirect(url_for('profile.index'))

    try:
        if decision == 'accept':
            appointment.accept_contest()
        else:
            appointment.reject_contest()
    except InvalidTransition as e:
        flash(str(e), 'warning')
        return redirect(url_for('profile.index'))

    if not commit_or_flash(f'Could not save your answer for appointment {appointment.id}'):
        return redirect(url_for('profile.index'))
    log_audit(decision, 'appointment_contest', entity_id=appointment.id, details={
        'contest_status': appointment.contest_status,
        'status': appointment.status,
        'final_price': appointment.final_price
    })

    if decision == 'accept':
        flash('You accepted the new price. Your appointment is confirmed.', 'success')
    else:
        flash('You rejected the new price. The appointment was cancelled.', 'info')
    return redirect(url_for('profile.index'))


MAX_TOKEN_LENGTH = 512


def push_request_data():
    """JSON body of a subscribe/unsubscribe call, or None when it is malformed"""
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        return None
    if not isinstance(data.get('permission', ''), str):
        return None
    token = data.get('token')
    if token is not None and (not isinstance(token, str) or len(token) > MAX_TOKEN_LENGTH):
        return None
    return data


@profile_bp.route('/notifications/subscribe', methods=['POST'])
@login_required
def subscribe():
    """Store this browser's push token; the page sends its permission state and token"""
    data = push_request_data()
    if data is None:
        return jsonify({'subscribed': False, 'error': 'Malformed request'}), 400
    permission = data.get('permission', '')
    token = data.get('token')

    try:
        token_manager.subscribe(current_user, permission, lambda: token)
    except PermissionRequired as e:
        return jsonify({'subscribed': False, 'error': e.message}), 409
    except PermissionDenied as e:
        return jsonify({'subscribed': False, 'error': e.message}), 403
    except TokenUnavailable as e:
        return jsonify({'subscribed': False, 'error': e.message}), 422

    return jsonify({'subscribed': True})


@profile_bp.route('/notifications/unsubscribe', methods=['POST'])
@login_required
def unsubscribe():
    data = push_request_data()
    token = data.get('token') if data is not None else None
    if not token:
        return jsonify({'subscribed': token_manager.is_subscribed(current_user),
                        'error': 'No token given'}), 400

    token_manager.unsubscribe(current_user, token)
    return jsonify({'subscribed': token_manager.is_subscribed(current_user, token)})
