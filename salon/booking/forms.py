from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileAllowed
from wtforms import StringField, SelectField, SubmitField, DateField
from wtforms.validators import DataRequired, Email, Length, Optional, Regexp, ValidationError
from datetime import date
from salon.models.service import HAIR_LENGTHS, HAIR_LENGTH_LABELS
from salon.utils.storage import IMAGE_EXTENSIONS


class AppointmentForm(FlaskForm):
    """Form for booking or rescheduling an appointment"""
    service_id = SelectField('Service', validators=[DataRequired()], coerce=int)
    appointment_date = DateField('Date', validators=[DataRequired()])
    appointment_time = StringField('Time', validators=[
        DataRequired(message='Please choose a time.'),
        Regexp(r'^\d{2}:\d{2}$', message='Choose one of the listed times.')
    ])
    hair_length = SelectField('Hair Length', validators=[Optional()],
                              choices=[('', '---')] + [(h, HAIR_LENGTH_LABELS[h]) for h in HAIR_LENGTHS])
    hair_photo = FileField('Reference Photo', validators=[
        FileAllowed(sorted(IMAGE_EXTENSIONS), 'Images only!')
    ])
    client_name = StringField('Name', validators=[DataRequired(), Length(min=2, max=100)])
    client_email = StringField('Email', validators=[DataRequired(), Email(), Length(max=120)])
    submit = SubmitField('Book Appointment')

    def validate_appointment_date(self, appointment_date):
        if appointment_date.data < date.today():
            raise ValidationError('Please select a future date.')
