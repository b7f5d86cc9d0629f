from salon import db
from datetime import datetime

# Appointment status constants
STATUS_SCHEDULED = 'scheduled'
STATUS_CONFIRMED = 'confirmed'
STATUS_COMPLETED = 'completed'
STATUS_CANCELLED = 'cancelled'
STATUS_CONTESTED = 'contested'

STATUS_LABELS = {
    STATUS_SCHEDULED: 'Scheduled',
    STATUS_CONFIRMED: 'Confirmed',
    STATUS_COMPLETED: 'Completed',
    STATUS_CANCELLED: 'Cancelled',
    STATUS_CONTESTED: 'Contested',
}

# Contest status constants
CONTEST_PENDING = 'pending'
CONTEST_ACCEPTED = 'accepted'
CONTEST_REJECTED = 'rejected'

# Chat sender roles
SENDER_CLIENT = 'client'
SENDER_ADMIN = 'admin'


class InvalidTransition(Exception):
    """Raised when a status change is not allowed from the current status"""


class Appointment(db.Model):
    __tablename__ = 'appointments'

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    service_id = db.Column(db.Integer, db.ForeignKey('services.id'), nullable=False)
    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)
    status = db.Column(db.String(20), default=STATUS_SCHEDULED)
    client_name = db.Column(db.String(100), nullable=False)
    client_email = db.Column(db.String(120), nullable=False)
    hair_length = db.Column(db.String(10), nullable=True)
    hair_photo_url = db.Column(db.String(255), nullable=True)
    final_price = db.Column(db.Numeric(10, 2), nullable=True)
    viewed_by_admin = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Contest proposed by the salon after seeing the hair photo
    contest_status = db.Column(db.String(10), nullable=True)
    contest_reason = db.Column(db.Text, nullable=True)
    contested_hair_length = db.Column(db.String(10), nullable=True)
    contested_price = db.Column(db.Numeric(10, 2), nullable=True)

    messages = db.relationship('ChatMessage', backref='appointment', lazy='dynamic',
                               order_by='ChatMessage.timestamp')

    def __init__(self, client_id, service_id, start_time, end_time, client_name, client_email,
                 final_price=None, hair_length=None, hair_photo_url=None):
        self.client_id = client_id
        self.service_id = service_id
        self.start_time = start_time
        self.end_time = end_time
        self.client_name = client_name
        self.client_email = client_email
        self.final_price = final_price
        self.hair_length = hair_length
        self.hair_photo_url = hair_photo_url
        self.status = STATUS_SCHEDULED
        self.viewed_by_admin = False

    def is_closed(self):
        return self.status in (STATUS_COMPLETED, STATUS_CANCELLED)

    def confirm(self):
        if self.is_closed() or self.status == STATUS_CONFIRMED:
            raise InvalidTransition(f'Cannot confirm a {self.status} appointment')
        self.status = STATUS_CONFIRMED

    def cancel(self):
        if self.is_closed():
            raise InvalidTransition(f'Cannot cancel a {self.status} appointment')
        self.close_pending_contest()
        self.status = STATUS_CANCELLED

    def complete(self):
        if self.is_closed():
            raise InvalidTransition(f'Cannot complete a {self.status} appointment')
        self.close_pending_contest()
        self.status = STATUS_COMPLETED

    def close_pending_contest(self):
        # A closed appointment cannot be answered any more
        if self.contest_status == CONTEST_PENDING:
            self.contest_status = CONTEST_REJECTED

    def contest(self, reason, hair_length, price):
        if self.is_closed():
            raise InvalidTransition(f'Cannot contest a {self.status} appointment')
        self.status = STATUS_CONTESTED
        self.contest_status = CONTEST_PENDING
        self.contest_reason = reason
        self.contested_hair_length = hair_length
        self.contested_price = price

    def accept_contest(self):
        if self.is_closed():
            raise InvalidTransition(f'Cannot accept a contest on a {self.status} appointment')
        if self.contest_status != CONTEST_PENDING:
            raise InvalidTransition('There is no pending contest to accept')
        self.contest_status = CONTEST_ACCEPTED
        self.hair_length = self.contested_hair_length
        self.final_price = self.contested_price
        self.status = STATUS_CONFIRMED

    def reject_contest(self):
        if self.is_closed():
            raise InvalidTransition(f'Cannot reject a contest on a {self.status} appointment')
        if self.contest_status != CONTEST_PENDING:
            raise InvalidTransition('There is no pending contest to reject')
        self.contest_status = CONTEST_REJECTED
        self.status = STATUS_CANCELLED

    def reschedule(self, start_time, end_time):
        if self.is_closed():
            raise InvalidTransition(f'Cannot reschedule a {self.status} appointment')
        self.start_time = start_time
        self.end_time = end_time
        self.status = STATUS_SCHEDULED
        self.viewed_by_admin = False

    def unread_count(self, reader_role):
        """Unread messages sent by the other party"""
        return self.messages.filter(
            ChatMessage.sender_role != reader_role,
            ChatMessage.is_read.is_(False)
        ).count()

    def __repr__(self):
        return f'<Appointment {self.id}: {self.start_time} - {self.end_time}>'


class ChatMessage(db.Model):
    __tablename__ = 'chat_messages'

    id = db.Column(db.Integer, primary_key=True)
    appointment_id = db.Column(db.Integer, db.ForeignKey('appointments.id'), nullable=False)
    sender_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    sender_name = db.Column(db.String(100), nullable=False)
    sender_role = db.Column(db.String(10), nullable=False)
    text = db.Column(db.Text, nullable=False)
    timestamp = db.Column(db.DateTime, default=datetime.utcnow)
    is_read = db.Column(db.Boolean, default=False)

    def __init__(self, appointment_id, sender_id, sender_name, sender_role, text):
        self.appointment_id = appointment_id
        self.sender_id = sender_id
        self.sender_name = sender_name
        self.sender_role = sender_role
        self.text = text
        self.is_read = False

    def __repr__(self):
        return f'<ChatMessage {self.id} on {self.appointment_id}>'
