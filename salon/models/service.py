from salon import db
from datetime import datetime

# Hair length categories for tiered prices
HAIR_SHORT = 'short'
HAIR_MEDIUM = 'medium'
HAIR_LONG = 'long'
HAIR_LENGTHS = [HAIR_SHORT, HAIR_MEDIUM, HAIR_LONG]

HAIR_LENGTH_LABELS = {
    HAIR_SHORT: 'Short',
    HAIR_MEDIUM: 'Medium',
    HAIR_LONG: 'Long',
}


class Service(db.Model):
    __tablename__ = 'services'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    duration_minutes = db.Column(db.Integer, nullable=False)  # Duration in minutes
    image_url = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # "Price from" services are priced by hair length
    is_price_from = db.Column(db.Boolean, default=False)
    price_short_hair = db.Column(db.Numeric(10, 2), nullable=True)
    price_medium_hair = db.Column(db.Numeric(10, 2), nullable=True)
    price_long_hair = db.Column(db.Numeric(10, 2), nullable=True)

    # Optional schedule overriding the salon business hours
    has_custom_schedule = db.Column(db.Boolean, default=False)
    custom_start_time = db.Column(db.Time, nullable=True)
    custom_end_time = db.Column(db.Time, nullable=True)
    custom_working_days = db.Column(db.JSON, nullable=True)

    # Relationships
    appointments = db.relationship('Appointment', backref='service', lazy='dynamic')

    def __init__(self, name, price, duration_minutes, description=None, image_url=None, is_active=True):
        if duration_minutes is None or duration_minutes <= 0:
            raise ValueError('Service duration must be positive')
        if price is None or price < 0:
            raise ValueError('Service price cannot be negative')
        self.name = name
        self.price = price
        self.duration_minutes = duration_minutes
        self.description = description
        self.image_url = image_url
        self.is_active = is_active

    def price_for(self, hair_length=None):
        """Price for a hair length; flat-priced services ignore the length"""
        if not self.is_price_from or hair_length is None:
            return self.price
        tiers = {
            HAIR_SHORT: self.price_short_hair,
            HAIR_MEDIUM: self.price_medium_hair,
            HAIR_LONG: self.price_long_hair,
        }
        tier_price = tiers.get(hair_length)
        return tier_price if tier_price is not None else self.price

    def __repr__(self):
        return f'<Service {self.name}>'
