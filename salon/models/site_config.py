from salon import db
from datetime import datetime

SINGLETON_ID = 1


class SingletonMixin:
    """Presentation settings stored as one row with a fixed id"""

    @classmethod
    def get(cls):
        return db.session.get(cls, SINGLETON_ID)

    @classmethod
    def get_or_create(cls):
        instance = cls.get()
        if instance is None:
            instance = cls()
            instance.id = SINGLETON_ID
            db.session.add(instance)
        return instance


class ThemeSettings(SingletonMixin, db.Model):
    __tablename__ = 'theme_settings'

    id = db.Column(db.Integer, primary_key=True)
    # Colors are stored as "H S% L%" strings
    primary = db.Column(db.String(20), nullable=False, default='271 76% 34%')
    secondary = db.Column(db.String(20), nullable=False, default='271 50% 80%')
    accent = db.Column(db.String(20), nullable=False, default='330 100% 71%')
    background = db.Column(db.String(20), nullable=False, default='0 0% 100%')


class HeroBanner(SingletonMixin, db.Model):
    __tablename__ = 'hero_banner'

    id = db.Column(db.Integer, primary_key=True)
    image_url = db.Column(db.String(255), nullable=True)
    large_text = db.Column(db.String(150), nullable=False, default='')
    small_text = db.Column(db.String(300), nullable=False, default='')
    button_text = db.Column(db.String(50), nullable=False, default='')


class SocialLinks(SingletonMixin, db.Model):
    __tablename__ = 'social_links'

    id = db.Column(db.Integer, primary_key=True)
    facebook = db.Column(db.String(255), nullable=True)
    instagram = db.Column(db.String(255), nullable=True)
    twitter = db.Column(db.String(255), nullable=True)

    def links(self):
        return {name: url for name, url in (('facebook', self.facebook),
                                            ('instagram', self.instagram),
                                            ('twitter', self.twitter)) if url}


class BusinessLocation(SingletonMixin, db.Model):
    __tablename__ = 'business_location'

    id = db.Column(db.Integer, primary_key=True)
    address = db.Column(db.String(255), nullable=False, default='')
    city = db.Column(db.String(100), nullable=False, default='')
    state = db.Column(db.String(50), nullable=False, default='')
    zip_code = db.Column(db.String(10), nullable=False, default='')
    country = db.Column(db.String(50), nullable=False, default='Brasil')


class NotificationSettings(SingletonMixin, db.Model):
    """Where the salon wants to be told about new bookings"""
    __tablename__ = 'notification_settings'

    id = db.Column(db.Integer, primary_key=True)
    notification_email = db.Column(db.String(120), nullable=True)
    notification_whatsapp = db.Column(db.String(20), nullable=True)


class GalleryImage(db.Model):
    __tablename__ = 'gallery_images'

    id = db.Column(db.Integer, primary_key=True)
    image_url = db.Column(db.String(255), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    file_name = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __init__(self, image_url, file_name, description=None):
        self.image_url = image_url
        self.file_name = file_name
        self.description = description

    def __repr__(self):
        return f'<GalleryImage {self.file_name}>'
