import re
from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileAllowed, FileRequired
from wtforms import (StringField, TextAreaField, SelectField, SelectMultipleField, SubmitField,
                     BooleanField, DecimalField, IntegerField, DateField, TimeField)
from wtforms.validators import DataRequired, Email, Length, Optional, NumberRange, ValidationError, URL
from wtforms.widgets import ListWidget, CheckboxInput
from salon.models.availability import DAY_NAMES
from salon.models.service import HAIR_LENGTHS, HAIR_LENGTH_LABELS
from salon.utils.storage import IMAGE_EXTENSIONS
from salon.utils.theme import parse_color


class MultiCheckboxField(SelectMultipleField):
    widget = ListWidget(prefix_label=False)
    option_widget = CheckboxInput()


DAY_CHOICES = sorted(DAY_NAMES.items())


class ServiceForm(FlaskForm):
    """Form for creating or updating a salon service"""
    name = StringField('Service Name', validators=[DataRequired(), Length(min=3, max=100)])
    description = TextAreaField('Description', validators=[DataRequired(), Length(min=10, max=500)])
    price = DecimalField('Price', validators=[DataRequired(), NumberRange(min=0)])
    duration_minutes = IntegerField('Duration (minutes)', validators=[
        DataRequired(),
        NumberRange(min=5, message='Service duration must be at least 5 minutes')
    ])
    image = FileField('Image', validators=[FileAllowed(sorted(IMAGE_EXTENSIONS), 'Images only!')])
    is_active = BooleanField('Active', default=True)

    is_price_from = BooleanField('Price depends on hair length')
    price_short_hair = DecimalField('Short hair price', validators=[Optional(), NumberRange(min=0)])
    price_medium_hair = DecimalField('Medium hair price', validators=[Optional(), NumberRange(min=0)])
    price_long_hair = DecimalField('Long hair price', validators=[Optional(), NumberRange(min=0)])

    has_custom_schedule = BooleanField('Use its own schedule')
    custom_start_time = TimeField('Starts at', validators=[Optional()])
    custom_end_time = TimeField('Ends at', validators=[Optional()])
    custom_working_days = MultiCheckboxField('Working days', choices=DAY_CHOICES, coerce=int)

    submit = SubmitField('Save Service')

    def validate(self, extra_validators=None):
        # Tier prices and the custom schedule are only required when switched on
        if not super().validate(extra_validators):
            return False
        valid = True

        if self.is_price_from.data:
            for field in (self.price_short_hair, self.price_medium_hair, self.price_long_hair):
                if field.data is None:
                    field.errors.append('Every hair length needs a price.')
                    valid = False

        if self.has_custom_schedule.data:
            if not self.custom_start_time.data or not self.custom_end_time.data:
                self.custom_end_time.errors.append('Set both the start and end of the schedule.')
                valid = False
            elif self.custom_end_time.data <= self.custom_start_time.data:
                self.custom_end_time.errors.append('Closing time must be after opening time.')
                valid = False
            if not self.custom_working_days.data:
                self.custom_working_days.errors.append('Choose at least one working day.')
                valid = False

        return valid


class PromotionForm(FlaskForm):
    name = StringField('Name', validators=[DataRequired(), Length(min=3, max=100)])
    description = TextAreaField('Description', validators=[DataRequired(), Length(min=10, max=500)])
    discount_percentage = IntegerField('Discount (%)', validators=[
        DataRequired(),
        NumberRange(min=1, max=100, message='Discount must be between 1 and 100')
    ])
    start_date = DateField('Starts', validators=[DataRequired()])
    end_date = DateField('Ends', validators=[DataRequired()])
    service_ids = MultiCheckboxField('Services', coerce=int)
    image = FileField('Image', validators=[FileAllowed(sorted(IMAGE_EXTENSIONS), 'Images only!')])
    submit = SubmitField('Save Promotion')

    def validate_end_date(self, end_date):
        if self.start_date.data and end_date.data < self.start_date.data:
            raise ValidationError('The promotion must end after it starts.')

    def validate_service_ids(self, service_ids):
        if not service_ids.data:
            raise ValidationError('Choose at least one service.')


class BusinessHoursForm(FlaskForm):
    """Form for updating business hours"""
    start_time = TimeField('Opens at', validators=[DataRequired()])
    end_time = TimeField('Closes at', validators=[DataRequired()])
    working_days = MultiCheckboxField('Working days', choices=DAY_CHOICES, coerce=int)
    submit = SubmitField('Update Business Hours')

    def validate_end_time(self, end_time):
        if self.start_time.data and end_time.data <= self.start_time.data:
            raise ValidationError('Closing time must be after opening time.')

    def validate_working_days(self, working_days):
        if not working_days.data:
            raise ValidationError('Choose at least one working day.')


class StatusContestForm(FlaskForm):
    """Revised hair length and price proposed to the client"""
    hair_length = SelectField('Hair Length', validators=[DataRequired()],
                              choices=[(h, HAIR_LENGTH_LABELS[h]) for h in HAIR_LENGTHS])
    price = DecimalField('New Price', validators=[DataRequired(), NumberRange(min=0)])
    reason = TextAreaField('Reason', validators=[DataRequired(), Length(min=5, max=500)])
    submit = SubmitField('Send to Client')


class ThemeForm(FlaskForm):
    """Colours as "H S% L%" or hex"""
    primary = StringField('Primary', validators=[DataRequired()])
    secondary = StringField('Secondary', validators=[DataRequired()])
    accent = StringField('Accent', validators=[DataRequired()])
    background = StringField('Background', validators=[DataRequired()])
    submit = SubmitField('Save Theme')

    def validate(self, extra_validators=None):
        if not super().validate(extra_validators):
            return False
        valid = True
        for field in (self.primary, self.secondary, self.accent, self.background):
            try:
                parse_color(field.data)
            except ValueError:
                field.errors.append('Use "H S% L%" (e.g. 271 76% 34%) or a hex colour.')
                valid = False
        return valid


class HeroBannerForm(FlaskForm):
    large_text = StringField('Headline', validators=[DataRequired(), Length(min=5, max=150)])
    small_text = TextAreaField('Text', validators=[DataRequired(), Length(min=10, max=300)])
    button_text = StringField('Button', validators=[DataRequired(), Length(min=3, max=50)])
    image = FileField('Background Image', validators=[FileAllowed(sorted(IMAGE_EXTENSIONS), 'Images only!')])
    submit = SubmitField('Save Banner')


class SocialLinksForm(FlaskForm):
    facebook = StringField('Facebook', validators=[Optional(), URL(), Length(max=255)])
    instagram = StringField('Instagram', validators=[Optional(), URL(), Length(max=255)])
    twitter = StringField('Twitter', validators=[Optional(), URL(), Length(max=255)])
    submit = SubmitField('Save Links')


class GalleryImageForm(FlaskForm):
    image = FileField('Image', validators=[
        FileRequired(),
        FileAllowed(sorted(IMAGE_EXTENSIONS), 'Images only!')
    ])
    description = StringField('Description', validators=[Optional(), Length(max=255)])
    submit = SubmitField('Upload')


class LocationForm(FlaskForm):
    zip_code = StringField('Postal Code', validators=[DataRequired(), Length(min=8, max=9)])
    address = StringField('Address', validators=[DataRequired(), Length(max=255)])
    city = StringField('City', validators=[DataRequired(), Length(max=100)])
    state = StringField('State', validators=[DataRequired(), Length(max=50)])
    country = StringField('Country', validators=[DataRequired(), Length(max=50)])
    submit = SubmitField('Save Location')


class NotificationSettingsForm(FlaskForm):
    notification_email = StringField('Email', validators=[Optional(), Email(), Length(max=120)])
    notification_whatsapp = StringField('WhatsApp', validators=[Optional(), Length(max=20)])
    submit = SubmitField('Save Contacts')

    def validate_notification_whatsapp(self, field):
        if len(re.sub(r'\D', '', field.data)) < 10:
            raise ValidationError('WhatsApp number needs at least 10 digits.')
