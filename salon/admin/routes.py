from flask import Blueprint, render_template, redirect, url_for, flash, request, current_app
from flask_login import login_required
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from salon import db
from salon.models.user import User, AdminGrant
from salon.models.service import Service
from salon.models.promotion import Promotion
from salon.models.availability import BusinessHours, DAY_NAMES
from salon.models.appointment import (Appointment, InvalidTransition, STATUS_SCHEDULED, STATUS_CONFIRMED,
                                      STATUS_LABELS)
from salon.models.site_config import (ThemeSettings, HeroBanner, SocialLinks, BusinessLocation,
                                      NotificationSettings, GalleryImage)
from salon.admin.forms import (ServiceForm, PromotionForm, BusinessHoursForm, StatusContestForm, ThemeForm,
                               HeroBannerForm, SocialLinksForm, GalleryImageForm, LocationForm,
                               NotificationSettingsForm)
from salon.notifications.dispatch import notify_promotion_created
from salon.utils.audit import log_audit
from salon.utils.roles import admin_required
from salon.utils.storage import save_upload, delete_upload
from salon.utils.theme import parse_color, load_theme
from datetime import datetime, date

admin_bp = Blueprint('admin', __name__, url_prefix='/admin')

APPOINTMENT_FILTERS = ('upcoming', 'history', 'all')

APPOINTMENT_ACTIONS = {
    'confirm': ('confirm', 'Appointment confirmed.'),
    'cancel': ('cancel', 'Appointment cancelled.'),
    'complete': ('complete', 'Appointment marked as completed.'),
}


def commit_or_flash(message):
    """Commit the session; on failure roll back, log and flash. Returns True on success."""
    try:
        db.session.commit()
        return True
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(f"{message}: {e}")
        flash(f'{message}. Please try again.', 'danger')
        return False


@admin_bp.route('/')
@admin_bp.route('/dashboard')
@login_required
@admin_required
def dashboard():
    """Admin dashboard with overview of salon statistics"""
    now = datetime.now()
    total_clients = User.query.filter(~User.admin_grant.has()).count()
    total_admins = AdminGrant.query.count()

    total_appointments = Appointment.query.count()
    upcoming_appointments = Appointment.query.filter(
        Appointment.start_time > now,
        Appointment.status.in_([STATUS_SCHEDULED, STATUS_CONFIRMED])
    ).count()
    unviewed_appointments = Appointment.query.filter(Appointment.viewed_by_admin.is_(False)).count()

    total_services = Service.query.count()
    active_services = Service.query.filter_by(is_active=True).count()
    running_promotions = Promotion.query.filter(
        Promotion.start_date <= date.today(),
        Promotion.end_date >= date.today()
    ).count()

    return render_template(
        'admin/dashboard.html',
        total_clients=total_clients,
        total_admins=total_admins,
        total_appointments=total_appointments,
        upcoming_appointments=upcoming_appointments,
        unviewed_appointments=unviewed_appointments,
        total_services=total_services,
        active_services=active_services,
        running_promotions=running_promotions
    )


@admin_bp.route('/users')
@login_required
@admin_required
def users():
    """List registered customers with their booking counts"""
    rows = db.session.query(User, func.count(Appointment.id)).outerjoin(
        Appointment, Appointment.client_id == User.id
    ).group_by(User.id).order_by(User.created_at.desc()).all()
    return render_template('admin/users.html', rows=rows)


@admin_bp.route('/appointments')
@login_required
@admin_required
def appointments():
    """Paginated appointments; rows shown here for the first time are marked as viewed"""
    view = request.args.get('filter', 'upcoming')
    if view not in APPOINTMENT_FILTERS:
        view = 'upcoming'
    page = request.args.get('page', 1, type=int)

    query = Appointment.query
    now = datetime.now()
    if view == 'upcoming':
        query = query.filter(Appointment.start_time >= now)
    elif view == 'history':
        query = query.filter(Appointment.start_time < now)

    pagination = query.order_by(Appointment.start_time.desc()).paginate(
        page=page, per_page=current_app.config['APPOINTMENTS_PER_PAGE'], error_out=False)

    # Remember which rows were new before flagging them, so the page can highlight them
    new_ids = {a.id for a in pagination.items if not a.viewed_by_admin}
    if new_ids:
        Appointment.query.filter(Appointment.id.in_(new_ids)).update(
            {Appointment.viewed_by_admin: True}, synchronize_session=False)
        if not commit_or_flash('Could not mark appointments as viewed'):
            new_ids = set()

    return render_template(
        'admin/appointments.html',
        appointments=pagination.items,
        pagination=pagination,
        view=view,
        new_ids=new_ids,
        status_labels=STATUS_LABELS
    )


@admin_bp.route('/appointments/<int:appointment_id>/<action>', methods=['POST'])
@login_required
@admin_required
def update_appointment_status(appointment_id, action):
    appointment = Appointment.query.get_or_404(appointment_id)
    if action not in APPOINTMENT_ACTIONS:
        flash('Unknown action.', 'danger')
        return redirect(url_for('admin.appointments'))

    method, message = APPOINTMENT_ACTIONS[action]
    old_status = appointment.status
    try:
        getattr(appointment, method)()
    except InvalidTransition as e:
        flash(str(e), 'warning')
        return redirect(request.referrer or url_for('admin.appointments'))

    if commit_or_flash('Could not update the appointment'):
        log_audit(action, 'appointment', entity_id=appointment.id, details={
            'old_status': old_status,
            'new_status': appointment.status
        })
        flash(message, 'success')
    return redirect(request.referrer or url_for('admin.appointments'))


@admin_bp.route('/appointments/<int:appointment_id>/contest', methods=['GET', 'POST'])
@login_required
@admin_required
def contest_appointment(appointment_id):
    """Propose a different hair length and price after seeing the client's photo"""
    appointment = Appointment.query.get_or_404(appointment_id)
    form = StatusContestForm()

    if request.method == 'GET' and appointment.hair_length:
        form.hair_length.data = appointment.hair_length

    if form.validate_on_submit():
        try:
            appointment.contest(form.reason.data.strip(), form.hair_length.data, form.price.data)
        except InvalidTransition as e:
            flash(str(e), 'warning')
            return redirect(url_for('admin.appointments'))

        if commit_or_flash('Could not contest the appointment'):
            log_audit('contest', 'appointment', entity_id=appointment.id, details={
                'hair_length': appointment.contested_hair_length,
                'price': appointment.contested_price,
                'reason': appointment.contest_reason
            })
            flash('The client has been asked to review the new price.', 'success')
            return redirect(url_for('admin.appointments'))

    return render_template('admin/contest.html', form=form, appointment=appointment)


def apply_service_form(service, form):
    service.name = form.name.data.strip()
    service.description = form.description.data.strip()
    service.price = form.price.data
    service.duration_minutes = form.duration_minutes.data
    service.is_active = form.is_active.data

    service.is_price_from = form.is_price_from.data
    service.price_short_hair = form.price_short_hair.data if service.is_price_from else None
    service.price_medium_hair = form.price_medium_hair.data if service.is_price_from else None
    service.price_long_hair = form.price_long_hair.data if service.is_price_from else None

    service.has_custom_schedule = form.has_custom_schedule.data
    if service.has_custom_schedule:
        service.custom_start_time = form.custom_start_time.data
        service.custom_end_time = form.custom_end_time.data
        service.custom_working_days = sorted(form.custom_working_days.data)
    else:
        service.custom_start_time = None
        service.custom_end_time = None
        service.custom_working_days = None

    if form.image.data:
        _, service.image_url = save_upload(form.image.data, 'services')


def service_audit_values(service):
    return {
        'name': service.name,
        'price': service.price,
        'duration_minutes': service.duration_minutes,
        'is_active': service.is_active,
        'is_price_from': service.is_price_from,
        'has_custom_schedule': service.has_custom_schedule
    }


@admin_bp.route('/services')
@login_required
@admin_required
def services():
    """List all salon services"""
    services_list = Service.query.order_by(Service.name).all()
    return render_template('admin/services.html', services=services_list)


@admin_bp.route('/services/create', methods=['GET', 'POST'])
@login_required
@admin_required
def create_service():
    """Create a new salon service"""
    form = ServiceForm()

    if form.validate_on_submit():
        service = Service(
            name=form.name.data.strip(),
            price=form.price.data,
            duration_minutes=form.duration_minutes.data
        )
        apply_service_form(service, form)
        db.session.add(service)

        if commit_or_flash('Could not create the service'):
            log_audit('create', 'service', entity_id=service.id, details=service_audit_values(service))
            flash(f'Service {service.name} created successfully.', 'success')
            return redirect(url_for('admin.services'))

    return render_template('admin/service_form.html', form=form, service=None)


@admin_bp.route('/services/update/<int:service_id>', methods=['GET', 'POST'])
@login_required
@admin_required
def update_service(service_id):
    """Update an existing service"""
    service = Service.query.get_or_404(service_id)
    form = ServiceForm(obj=service)

    if form.validate_on_submit():
        old_values = service_audit_values(service)
        apply_service_form(service, form)

        if commit_or_flash('Could not update the service'):
            log_audit('update', 'service', entity_id=service.id, details={
                'old_values': old_values,
                'new_values': service_audit_values(service)
            })
            flash(f'Service {service.name} updated successfully.', 'success')
            return redirect(url_for('admin.services'))

    return render_template('admin/service_form.html', form=form, service=service)


@admin_bp.route('/services/delete/<int:service_id>', methods=['POST'])
@login_required
@admin_required
def delete_service(service_id):
    """Delete a service; services with bookings are deactivated instead"""
    service = Service.query.get_or_404(service_id)

    if service.appointments.count():
        service.is_active = False
        action, message = 'deactivate', f'Service {service.name} has bookings and was deactivated.'
    else:
        service.promotions.clear()
        db.session.delete(service)
        action, message = 'delete', f'Service {service.name} deleted.'

    if commit_or_flash('Could not remove the service'):
        log_audit(action, 'service', entity_id=service_id, details={'name': service.name})
        flash(message, 'success')
    return redirect(url_for('admin.services'))


@admin_bp.route('/promotions')
@login_required
@admin_required
def promotions():
    promotions_list = Promotion.query.order_by(Promotion.start_date.desc()).all()
    return render_template('admin/promotions.html', promotions=promotions_list, today=date.today())


def promotion_form(promotion=None):
    form = PromotionForm(obj=promotion)
    form.service_ids.choices = [(s.id, s.name) for s in Service.query.filter_by(is_active=True)
                                .order_by(Service.name)]
    if request.method == 'GET' and promotion is not None:
        form.service_ids.data = [s.id for s in promotion.services]
    return form


def apply_promotion_form(promotion, form):
    promotion.name = form.name.data.strip()
    promotion.description = form.description.data.strip()
    promotion.discount_percentage = form.discount_percentage.data
    promotion.start_date = form.start_date.data
    promotion.end_date = form.end_date.data
    promotion.services = Service.query.filter(Service.id.in_(form.service_ids.data)).all()
    if form.image.data:
        _, promotion.image_url = save_upload(form.image.data, 'promotions')


@admin_bp.route('/promotions/create', methods=['GET', 'POST'])
@login_required
@admin_required
def create_promotion():
    """Create a promotion and announce it to subscribed devices"""
    form = promotion_form()

    if form.validate_on_submit():
        promotion = Promotion(
            name=form.name.data.strip(),
            description=form.description.data.strip(),
            discount_percentage=form.discount_percentage.data,
            start_date=form.start_date.data,
            end_date=form.end_date.data
        )
        apply_promotion_form(promotion, form)
        db.session.add(promotion)

        if commit_or_flash('Could not create the promotion'):
            log_audit('create', 'promotion', entity_id=promotion.id, details={
                'name': promotion.name,
                'discount_percentage': promotion.discount_percentage,
                'service_ids': [s.id for s in promotion.services]
            })
            notify_promotion_created(promotion)
            flash(f'Promotion {promotion.name} created.', 'success')
            return redirect(url_for('admin.promotions'))

    return render_template('admin/promotion_form.html', form=form, promotion=None)


@admin_bp.route('/promotions/update/<int:promotion_id>', methods=['GET', 'POST'])
@login_required
@admin_required
def update_promotion(promotion_id):
    promotion = Promotion.query.get_or_404(promotion_id)
    form = promotion_form(promotion)

    if form.validate_on_submit():
        apply_promotion_form(promotion, form)
        if commit_or_flash('Could not update the promotion'):
            log_audit('update', 'promotion', entity_id=promotion.id, details={
                'name': promotion.name,
                'discount_percentage': promotion.discount_percentage,
                'service_ids': [s.id for s in promotion.services]
            })
            flash(f'Promotion {promotion.name} updated.', 'success')
            return redirect(url_for('admin.promotions'))

    return render_template('admin/promotion_form.html', form=form, promotion=promotion)


@admin_bp.route('/promotions/delete/<int:promotion_id>', methods=['POST'])
@login_required
@admin_required
def delete_promotion(promotion_id):
    promotion = Promotion.query.get_or_404(promotion_id)
    name = promotion.name
    db.session.delete(promotion)
    if commit_or_flash('Could not delete the promotion'):
        log_audit('delete', 'promotion', entity_id=promotion_id, details={'name': name})
        flash(f'Promotion {name} deleted.', 'success')
    return redirect(url_for('admin.promotions'))


@admin_bp.route('/schedule', methods=['GET', 'POST'])
@login_required
@admin_required
def schedule():
    """Manage salon business hours"""
    hours = BusinessHours.get()
    form = BusinessHoursForm(obj=hours)

    if request.method == 'GET' and hours is None:
        # Suggest the usual hours until the salon saves its own
        suggested = BusinessHours()
        form.start_time.data = suggested.start_time
        form.end_time.data = suggested.end_time
        form.working_days.data = suggested.working_days

    if form.validate_on_submit():
        old_hours = None
        if hours is None:
            hours = BusinessHours()
            db.session.add(hours)
        else:
            old_hours = {
                'start_time': hours.start_time,
                'end_time': hours.end_time,
                'working_days': hours.working_days
            }

        hours.start_time = form.start_time.data
        hours.end_time = form.end_time.data
        hours.working_days = sorted(set(form.working_days.data))

        if commit_or_flash('Could not save business hours'):
            log_audit('update', 'business_hours', details={
                'old_hours': old_hours,
                'new_hours': {
                    'start_time': hours.start_time,
                    'end_time': hours.end_time,
                    'working_days': [DAY_NAMES[d] for d in hours.working_days]
                }
            })
            flash('Business hours updated successfully.', 'success')
            return redirect(url_for('admin.schedule'))

    return render_template('admin/schedule.html', form=form, hours=hours)


@admin_bp.route('/theme', methods=['GET', 'POST'])
@login_required
@admin_required
def theme():
    """Site colours; hex input is stored as HSL"""
    if request.method == 'GET':
        current = load_theme()
        form = ThemeForm(data={name: getattr(current, name).css_value() for name in current.FIELDS})
    else:
        form = ThemeForm()

    if form.validate_on_submit():
        settings = ThemeSettings.get_or_create()
        for name in ('primary', 'secondary', 'accent', 'background'):
            setattr(settings, name, parse_color(getattr(form, name).data).css_value())

        if commit_or_flash('Could not save the theme'):
            log_audit('update', 'theme', details={
                name: getattr(settings, name) for name in ('primary', 'secondary', 'accent', 'background')
            })
            flash('Theme updated.', 'success')
            return redirect(url_for('admin.theme'))

    return render_template('admin/theme.html', form=form)


@admin_bp.route('/banner', methods=['GET', 'POST'])
@login_required
@admin_required
def banner():
    banner = HeroBanner.get()
    form = HeroBannerForm(obj=banner)

    if form.validate_on_submit():
        banner = HeroBanner.get_or_create()
        banner.large_text = form.large_text.data.strip()
        banner.small_text = form.small_text.data.strip()
        banner.button_text = form.button_text.data.strip()
        if form.image.data:
            _, banner.image_url = save_upload(form.image.data, 'banner')

        if commit_or_flash('Could not save the banner'):
            log_audit('update', 'hero_banner', details={'large_text': banner.large_text})
            flash('Banner updated.', 'success')
            return redirect(url_for('admin.banner'))

    return render_template('admin/settings_form.html', form=form, title='Hero Banner',
                           image_url=banner.image_url if banner else None)


@admin_bp.route('/social', methods=['GET', 'POST'])
@login_required
@admin_required
def social():
    form = SocialLinksForm(obj=SocialLinks.get())

    if form.validate_on_submit():
        links = SocialLinks.get_or_create()
        links.facebook = form.facebook.data or None
        links.instagram = form.instagram.data or None
        links.twitter = form.twitter.data or None

        if commit_or_flash('Could not save social links'):
            log_audit('update', 'social_links', details=links.links())
            flash('Social links updated.', 'success')
            return redirect(url_for('admin.social'))

    return render_template('admin/settings_form.html', form=form, title='Social Links')


@admin_bp.route('/gallery', methods=['GET', 'POST'])
@login_required
@admin_required
def gallery():
    form = GalleryImageForm()

    if form.validate_on_submit():
        relative_path, url = save_upload(form.image.data, 'gallery')
        image = GalleryImage(image_url=url, file_name=relative_path,
                             description=form.description.data or None)
        db.session.add(image)

        if commit_or_flash('Could not save the image'):
            log_audit('create', 'gallery_image', entity_id=image.id, details={'file_name': relative_path})
            flash('Image added to the gallery.', 'success')
            return redirect(url_for('admin.gallery'))
        delete_upload(relative_path)

    images = GalleryImage.query.order_by(GalleryImage.created_at.desc()).all()
    return render_template('admin/gallery.html', form=form, images=images)


@admin_bp.route('/gallery/delete/<int:image_id>', methods=['POST'])
@login_required
@admin_required
def delete_gallery_image(image_id):
    image = GalleryImage.query.get_or_404(image_id)
    file_name = image.file_name
    db.session.delete(image)

    if commit_or_flash('Could not delete the image'):
        delete_upload(file_name)
        log_audit('delete', 'gallery_image', entity_id=image_id, details={'file_name': file_name})
        flash('Image removed from the gallery.', 'success')
    return redirect(url_for('admin.gallery'))


@admin_bp.route('/location', methods=['GET', 'POST'])
@login_required
@admin_required
def location():
    """Salon address; the page fills street/city/state from the postal code"""
    form = LocationForm(obj=BusinessLocation.get())

    if form.validate_on_submit():
        place = BusinessLocation.get_or_create()
        place.zip_code = form.zip_code.data.strip()
        place.address = form.address.data.strip()
        place.city = form.city.data.strip()
        place.state = form.state.data.strip()
        place.country = form.country.data.strip()

        if commit_or_flash('Could not save the location'):
            log_audit('update', 'business_location', details={
                'zip_code': place.zip_code,
                'city': place.city
            })
            flash('Location updated.', 'success')
            return redirect(url_for('admin.location'))

    return render_template('admin/settings_form.html', form=form, title='Location', postal_autofill=True)


@admin_bp.route('/notifications', methods=['GET', 'POST'])
@login_required
@admin_required
def notification_settings():
    form = NotificationSettingsForm(obj=NotificationSettings.get())

    if form.validate_on_submit():
        settings = NotificationSettings.get_or_create()
        settings.notification_email = form.notification_email.data or None
        settings.notification_whatsapp = form.notification_whatsapp.data or None

        if commit_or_flash('Could not save notification contacts'):
            log_audit('update', 'notification_settings', details={
                'notification_email': settings.notification_email,
                'notification_whatsapp': settings.notification_whatsapp
            })
            flash('Notification contacts updated.', 'success')
            return redirect(url_for('admin.notification_settings'))

    return render_template('admin/settings_form.html', form=form, title='Notification Contacts')
