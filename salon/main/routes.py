from flask import Blueprint, render_template, redirect, url_for, send_from_directory, current_app
from flask_login import current_user
from salon.models.service import Service
from salon.models.promotion import Promotion
from salon.models.site_config import HeroBanner, SocialLinks, BusinessLocation, GalleryImage
from salon.utils.roles import current_session_role, SessionRole
from datetime import date

main_bp = Blueprint('main', __name__)


def running_promotions():
    today = date.today()
    return Promotion.query.filter(
        Promotion.start_date <= today,
        Promotion.end_date >= today
    ).order_by(Promotion.end_date).all()


@main_bp.route('/')
def index():
    """Landing page for the salon website"""
    services = Service.query.filter_by(is_active=True).order_by(Service.name).all()
    gallery = GalleryImage.query.order_by(GalleryImage.created_at.desc()).limit(6).all()
    social = SocialLinks.get()
    return render_template(
        'main/index.html',
        banner=HeroBanner.get(),
        services=services,
        promotions=running_promotions(),
        gallery=gallery,
        social_links=social.links() if social else {},
        location=BusinessLocation.get()
    )


@main_bp.route('/services')
def services():
    """Page displaying all salon services"""
    services = Service.query.filter_by(is_active=True).order_by(Service.name).all()
    return render_template('main/services.html', services=services)


@main_bp.route('/promotions')
def promotions():
    """Promotions running today; push notifications link here"""
    return render_template('main/promotions.html', promotions=running_promotions())


@main_bp.route('/gallery')
def gallery():
    images = GalleryImage.query.order_by(GalleryImage.created_at.desc()).all()
    return render_template('main/gallery.html', images=images)


@main_bp.route('/uploads/<path:filename>')
def uploaded_file(filename):
    return send_from_directory(current_app.config['UPLOAD_FOLDER'], filename)


@main_bp.route('/dashboard')
def dashboard():
    """Redirect to the admin dashboard or the profile, depending on who is signed in"""
    if not current_user.is_authenticated:
        return redirect(url_for('auth.login'))

    if current_session_role() is SessionRole.ADMIN:
        return redirect(url_for('admin.dashboard'))
    return redirect(url_for('profile.index'))
