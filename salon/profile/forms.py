from flask_wtf import FlaskForm
from wtforms import StringField, SubmitField
from wtforms.validators import DataRequired, Length, Optional, Regexp


class ProfileUpdateForm(FlaskForm):
    """Form for updating a customer's name and address"""
    name = StringField('Name', validators=[DataRequired(), Length(min=2, max=100)])
    zip_code = StringField('Postal Code', validators=[
        Optional(),
        Regexp(r'^\d{5}-?\d{3}$', message='Postal code must have 8 digits.')
    ])
    address = StringField('Address', validators=[Optional(), Length(max=255)])
    city = StringField('City', validators=[Optional(), Length(max=100)])
    state = StringField('State', validators=[Optional(), Length(max=50)])
    country = StringField('Country', validators=[Optional(), Length(max=50)])
    submit = SubmitField('Update Profile')
