from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime
from salon import db, login_manager


class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    photo_url = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Address fields
    address = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(100), nullable=True)
    state = db.Column(db.String(50), nullable=True)
    zip_code = db.Column(db.String(10), nullable=True)
    country = db.Column(db.String(50), nullable=True)

    # Relationships
    appointments = db.relationship('Appointment', backref='client', lazy='dynamic')
    device_tokens = db.relationship('DeviceToken', backref='user', lazy='dynamic',
                                    cascade='all, delete-orphan')
    admin_grant = db.relationship('AdminGrant', backref='user', uselist=False,
                                  foreign_keys='AdminGrant.user_id', cascade='all, delete-orphan')

    def __init__(self, email, name, password):
        self.email = email
        self.name = name
        self.set_password(password)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self):
        return self.admin_grant is not None

    def __repr__(self):
        return f'<User {self.email}>'


class AdminGrant(db.Model):
    """Admin privilege, kept apart from the user's self-editable profile row.

    Rows are only written by the ``grant-admin``/``revoke-admin`` CLI commands.
    """
    __tablename__ = 'admin_grants'

    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), primary_key=True)
    granted_by = db.Column(db.String(120), nullable=True)
    granted_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __init__(self, user_id, granted_by=None):
        self.user_id = user_id
        self.granted_by = granted_by

    def __repr__(self):
        return f'<AdminGrant user={self.user_id}>'


class DeviceToken(db.Model):
    __tablename__ = 'device_tokens'
    __table_args__ = (db.UniqueConstraint('user_id', 'token', name='uq_device_token_user'),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    token = db.Column(db.String(512), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __init__(self, user_id, token):
        self.user_id = user_id
        self.token = token

    def __repr__(self):
        return f'<DeviceToken user={self.user_id}>'


@login_manager.user_loader
def load_user(id):
    return db.session.get(User, int(id))
