from salon import db
from datetime import time

# Days of the week constants (0 = Monday, 6 = Sunday)
MONDAY = 0
TUESDAY = 1
WEDNESDAY = 2
THURSDAY = 3
FRIDAY = 4
SATURDAY = 5
SUNDAY = 6

DAY_NAMES = {
    MONDAY: 'Monday',
    TUESDAY: 'Tuesday',
    WEDNESDAY: 'Wednesday',
    THURSDAY: 'Thursday',
    FRIDAY: 'Friday',
    SATURDAY: 'Saturday',
    SUNDAY: 'Sunday'
}

SINGLETON_ID = 1


class BusinessHours(db.Model):
    """Salon opening hours; a single row shared by every weekday it lists"""
    __tablename__ = 'business_hours'

    id = db.Column(db.Integer, primary_key=True)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    working_days = db.Column(db.JSON, nullable=False, default=list)

    def __init__(self, start_time=time(9, 0), end_time=time(18, 0), working_days=None):
        self.id = SINGLETON_ID
        self.start_time = start_time
        self.end_time = end_time
        self.working_days = sorted(set(working_days if working_days is not None
                                       else [MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY]))

    @classmethod
    def get(cls):
        """Returns the configured hours, or None when the salon has not set them"""
        return db.session.get(cls, SINGLETON_ID)

    def __repr__(self):
        return f'<BusinessHours: {self.start_time} to {self.end_time} on {self.working_days}>'
