from flask import Blueprint, render_template, redirect, url_for, flash, request, current_app
from flask_login import login_required, current_user
from sqlalchemy.exc import SQLAlchemyError
from salon import db
from salon.models.appointment import Appointment
from salon.models.service import Service
from salon.models.promotion import Promotion
from salon.models.availability import BusinessHours
from salon.booking.forms import AppointmentForm
from salon.booking.availability import (compute_availability, effective_hours, is_working_day,
                                        day_bounds, slot_datetime, TimeSlot)
from salon.utils.audit import log_audit, report_permission_error
from salon.utils.storage import save_upload
from datetime import datetime, date, timedelta

booking_bp = Blueprint('booking', __name__, url_prefix='/book')


def running_promotion(promotion_id):
    """The promotion behind a ?promo= link, if it exists and is running today"""
    if not promotion_id:
        return None
    promotion = db.session.get(Promotion, promotion_id)
    if promotion is None or not promotion.is_running(date.today()):
        return None
    return promotion


def bookable_services(promotion=None):
    services = Service.query.filter_by(is_active=True).order_by(Service.name).all()
    if promotion is not None:
        services = [s for s in services if promotion.applies_to(s)]
    return services


def quote_price(service, promotion=None, hair_length=None):
    price = service.price_for(hair_length)
    if promotion is not None and promotion.applies_to(service):
        price = promotion.discounted(price)
    return price


def day_availability(service, day, exclude_appointment_id=None):
    """Slots for a service on a day, taking opening days and the clock into account"""
    hours = effective_hours(BusinessHours.get(), service)
    if not is_working_day(hours, day):
        return []

    start, end = day_bounds(day)
    appointments = Appointment.query.filter(
        Appointment.start_time >= start,
        Appointment.start_time < end
    ).all()
    durations = dict(db.session.query(Service.id, Service.duration_minutes).all())

    slots = compute_availability(
        hours,
        service.duration_minutes if service is not None else None,
        appointments,
        durations,
        exclude_appointment_id=exclude_appointment_id,
        step=current_app.config['SLOT_MINUTES']
    )

    # Times already gone today cannot be booked
    if day == date.today():
        now = datetime.now()
        slots = [TimeSlot(s.time, s.available and slot_datetime(day, s.time) > now) for s in slots]
    return slots


def own_appointment_or_none(appointment_id, operation):
    """Load the current user's appointment; anything else is reported and refused"""
    appointment = Appointment.query.get_or_404(appointment_id)
    if appointment.client_id != current_user.id:
        report_permission_error(f'appointments/{appointment.id}', operation)
        flash('Access denied. You can only change your own appointments.', 'danger')
        return None
    return appointment


def format_when(moment):
    # Windows-compatible formatting (no %-type specifiers)
    hour = moment.strftime('%I').lstrip('0')
    return f"{moment.strftime('%A')}, {moment.strftime('%B')} {moment.day}, {moment.year} at {hour}:{moment.strftime('%M %p')}"


@booking_bp.route('/', methods=['GET', 'POST'])
@login_required
def book():
    """Book a new appointment, or move an existing one (?reschedule=<id>)"""
    reschedule_id = request.args.get('reschedule', type=int)
    appointment = None
    promotion = None

    if reschedule_id:
        appointment = own_appointment_or_none(reschedule_id, 'update')
        if appointment is None:
            return redirect(url_for('profile.index'))
        if appointment.is_closed():
            flash('This appointment can no longer be rescheduled.', 'warning')
            return redirect(url_for('profile.index'))
        services = [appointment.service]
    else:
        promotion = running_promotion(request.args.get('promo', type=int))
        services = bookable_services(promotion)

    form = AppointmentForm()
    form.service_id.choices = [(s.id, f"{s.name} ({s.duration_minutes} min)") for s in services]

    if request.method == 'GET':
        if appointment is not None:
            form.service_id.data = appointment.service_id
            form.client_name.data = appointment.client_name
            form.client_email.data = appointment.client_email
            form.appointment_date.data = appointment.start_time.date()
        else:
            form.service_id.data = request.args.get('service', type=int)
            form.client_name.data = current_user.name
            form.client_email.data = current_user.email
            form.appointment_date.data = request.args.get(
                'date', type=lambda v: datetime.strptime(v, '%Y-%m-%d').date()) or date.today()

    if appointment is not None:
        form.submit.label.text = 'Reschedule Appointment'

    if form.validate_on_submit():
        service = next(s for s in services if s.id == form.service_id.data)
        day = form.appointment_date.data
        label = form.appointment_time.data
        hair_length = form.hair_length.data or None

        if service.is_price_from and appointment is None:
            missing = False
            if not hair_length:
                form.hair_length.errors.append('Please select your hair length.')
                missing = True
            if not form.hair_photo.data:
                form.hair_photo.errors.append('Please attach a photo of your hair.')
                missing = True
            if missing:
                return render_booking(form, services, promotion, appointment)

        # Check one more time that the slot is still free
        slots = day_availability(service, day, appointment.id if appointment is not None else None)
        if not any(slot.time == label and slot.available for slot in slots):
            flash('Sorry, this time slot is no longer available. Please select another time.', 'danger')
            return render_booking(form, services, promotion, appointment, slots=slots)

        start_time = slot_datetime(day, label)
        end_time = start_time + timedelta(minutes=service.duration_minutes)

        if appointment is not None:
            old_start = appointment.start_time
            appointment.reschedule(start_time, end_time)
            try:
                db.session.commit()
            except SQLAlchemyError as e:
                db.session.rollback()
                current_app.logger.exception(f"Reschedule of appointment {appointment.id} failed: {e}")
                flash('We could not reschedule your appointment. Please try again.', 'danger')
                return render_booking(form, services, promotion, appointment)

            log_audit('reschedule', 'appointment', entity_id=appointment.id, details={
                'old_start': old_start,
                'new_start': start_time,
                'service_id': service.id
            })
            flash(f'Appointment rescheduled to {format_when(start_time)}.', 'success')
            return redirect(url_for('profile.index'))

        photo_url = None
        if form.hair_photo.data:
            _, photo_url = save_upload(form.hair_photo.data, 'hair-photos')

        new_appointment = Appointment(
            client_id=current_user.id,
            service_id=service.id,
            start_time=start_time,
            end_time=end_time,
            client_name=form.client_name.data.strip(),
            client_email=form.client_email.data.strip().lower(),
            final_price=quote_price(service, promotion, hair_length),
            hair_length=hair_length,
            hair_photo_url=photo_url
        )
        db.session.add(new_appointment)
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.exception(f"Booking failed for user {current_user.id}: {e}")
            flash('We could not create your appointment. Please try again.', 'danger')
            return render_booking(form, services, promotion, appointment)

        log_audit('create', 'appointment', entity_id=new_appointment.id, details={
            'service_id': service.id,
            'service_name': service.name,
            'appointment_time': start_time,
            'price': new_appointment.final_price,
            'promotion_id': promotion.id if promotion else None
        })

        flash(f'Appointment requested for {format_when(start_time)}. '
              'The salon will confirm it shortly.', 'success')
        return redirect(url_for('profile.index'))

    return render_booking(form, services, promotion, appointment)


def render_booking(form, services, promotion, appointment, slots=None):
    if slots is None:
        slots = []
        service = next((s for s in services if s.id == form.service_id.data), None)
        if service is not None and form.appointment_date.data:
            slots = day_availability(service, form.appointment_date.data,
                                     appointment.id if appointment is not None else None)
    prices = {s.id: quote_price(s, promotion) for s in services}
    return render_template(
        'booking/book.html',
        form=form,
        services=services,
        prices=prices,
        promotion=promotion,
        appointment=appointment,
        slots=slots
    )


@booking_bp.route('/available-times')
@login_required
def available_times():
    """HTMX endpoint returning the time slots for a service and date"""
    service_id = request.args.get('service_id', type=int)
    date_str = request.args.get('date') or request.args.get('appointment_date')
    reschedule_id = request.args.get('reschedule', type=int)

    if not service_id or not date_str:
        return render_template('booking/partials/available_times.html',
                               error_message="Please select a service and date")

    try:
        day = datetime.strptime(date_str, '%Y-%m-%d').date()
    except ValueError:
        return render_template('booking/partials/available_times.html',
                               error_message="Invalid date")

    if day < date.today():
        return render_template('booking/partials/available_times.html',
                               error_message="Please select a future date")

    # Unknown services still get the grid, with every time disabled
    service = db.session.get(Service, service_id)
    hours = effective_hours(BusinessHours.get(), service)
    if hours is None:
        return render_template('booking/partials/available_times.html',
                               error_message="Online booking is not available yet")
    if not is_working_day(hours, day):
        return render_template('booking/partials/available_times.html',
                               error_message="We're closed on this day")

    exclude_id = None
    if reschedule_id:
        target = db.session.get(Appointment, reschedule_id)
        if target is not None and target.client_id == current_user.id:
            exclude_id = target.id

    slots = day_availability(service, day, exclude_id)
    return render_template('booking/partials/available_times.html', slots=slots)
