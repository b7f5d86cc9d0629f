"""Site colour theme.

Colours are kept as hue/saturation/lightness triples and rendered as CSS
custom properties by ``templates/base.html``.
"""
import colorsys
import re
from collections import namedtuple
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from salon import db
from salon.models.site_config import ThemeSettings

HSL_PATTERN = re.compile(r'^(\d{1,3})\s(\d{1,3})%\s(\d{1,3})%$')
HEX_PATTERN = re.compile(r'^#?([0-9a-fA-F]{6}|[0-9a-fA-F]{3})$')


class HSLColor(namedtuple('HSLColor', ['hue', 'saturation', 'lightness'])):
    __slots__ = ()

    def css_value(self):
        return f'{self.hue} {self.saturation}% {self.lightness}%'

    def to_hex(self):
        return hsl_to_hex(self)


def parse_hsl(value):
    """Parse "H S% L%" (e.g. "271 76% 34%")"""
    match = HSL_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f'Invalid HSL colour: {value!r}')
    hue, saturation, lightness = (int(part) for part in match.groups())
    if hue > 360 or saturation > 100 or lightness > 100:
        raise ValueError(f'HSL component out of range: {value!r}')
    return HSLColor(hue, saturation, lightness)


def hex_to_hsl(value):
    match = HEX_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f'Invalid hex colour: {value!r}')
    digits = match.group(1)
    if len(digits) == 3:
        digits = ''.join(ch * 2 for ch in digits)
    red, green, blue = (int(digits[i:i + 2], 16) / 255.0 for i in (0, 2, 4))
    hue, lightness, saturation = colorsys.rgb_to_hls(red, green, blue)
    return HSLColor(round(hue * 360) % 360, round(saturation * 100), round(lightness * 100))


def hsl_to_hex(color):
    red, green, blue = colorsys.hls_to_rgb(color.hue / 360.0, color.lightness / 100.0,
                                           color.saturation / 100.0)
    return '#{:02x}{:02x}{:02x}'.format(round(red * 255), round(green * 255), round(blue * 255))


def parse_color(value):
    """Accept either "H S% L%" or a hex colour"""
    value = (value or '').strip()
    if value.startswith('#') or HEX_PATTERN.match(value):
        return hex_to_hsl(value)
    return parse_hsl(value)


class Theme(object):
    """Colours handed to templates; built once per render"""

    FIELDS = ('primary', 'secondary', 'accent', 'background')

    def __init__(self, primary, secondary, accent, background):
        self.primary = primary
        self.secondary = secondary
        self.accent = accent
        self.background = background

    def css_variables(self):
        return {f'--{name}-hsl': getattr(self, name).css_value() for name in self.FIELDS}

    def __eq__(self, other):
        return isinstance(other, Theme) and all(
            getattr(self, name) == getattr(other, name) for name in self.FIELDS)

    def __repr__(self):
        return '<Theme {}>'.format(' '.join(getattr(self, n).css_value() for n in self.FIELDS))


DEFAULT_THEME = Theme(
    primary=HSLColor(271, 76, 34),
    secondary=HSLColor(271, 50, 80),
    accent=HSLColor(330, 100, 71),
    background=HSLColor(0, 0, 100),
)


def theme_from_settings(settings):
    """Build a Theme from the stored row; bad or missing values fall back to defaults"""
    if settings is None:
        return DEFAULT_THEME
    colors = {}
    for name in Theme.FIELDS:
        raw = getattr(settings, name, None)
        try:
            colors[name] = parse_color(raw) if raw else getattr(DEFAULT_THEME, name)
        except ValueError:
            current_app.logger.warning(f"Ignoring malformed theme colour {name}={raw!r}")
            colors[name] = getattr(DEFAULT_THEME, name)
    return Theme(**colors)


def load_theme():
    try:
        return theme_from_settings(ThemeSettings.get())
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Could not load theme settings: {e}")
        return DEFAULT_THEME
