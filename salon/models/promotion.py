from salon import db
from datetime import datetime
from decimal import Decimal

promotion_services = db.Table(
    'promotion_services',
    db.Column('promotion_id', db.Integer, db.ForeignKey('promotions.id'), primary_key=True),
    db.Column('service_id', db.Integer, db.ForeignKey('services.id'), primary_key=True),
)


class Promotion(db.Model):
    __tablename__ = 'promotions'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=False)
    image_url = db.Column(db.String(255), nullable=True)
    discount_percentage = db.Column(db.Integer, nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    services = db.relationship('Service', secondary=promotion_services, lazy='subquery',
                               backref=db.backref('promotions', lazy=True))

    def __init__(self, name, description, discount_percentage, start_date, end_date, image_url=None):
        self.name = name
        self.description = description
        self.discount_percentage = discount_percentage
        self.start_date = start_date
        self.end_date = end_date
        self.image_url = image_url

    def is_running(self, on_date):
        return self.start_date <= on_date <= self.end_date

    def applies_to(self, service):
        return any(s.id == service.id for s in self.services)

    def discounted(self, price):
        """Apply the discount to a price, rounded to cents"""
        factor = (Decimal(100) - Decimal(self.discount_percentage)) / Decimal(100)
        return (Decimal(price) * factor).quantize(Decimal('0.01'))

    def __repr__(self):
        return f'<Promotion {self.name}>'
