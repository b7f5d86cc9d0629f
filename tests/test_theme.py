import pytest

from salon import db
from salon.models.site_config import ThemeSettings
from salon.utils.theme import (parse_hsl, parse_color, hex_to_hsl, hsl_to_hex, load_theme, HSLColor,
                               DEFAULT_THEME)


def test_parse_hsl():
    color = parse_hsl('271 76% 34%')
    assert color == HSLColor(271, 76, 34)
    assert color.css_value() == '271 76% 34%'


@pytest.mark.parametrize('value', ['271 76 34', '271, 76%, 34%', '400 10% 10%', 'purple', ''])
def test_parse_hsl_rejects_malformed_values(value):
    with pytest.raises(ValueError):
        parse_hsl(value)


def test_hex_conversion():
    assert hex_to_hsl('#ff0000') == HSLColor(0, 100, 50)
    assert hex_to_hsl('fff') == HSLColor(0, 0, 100)
    assert hsl_to_hex(HSLColor(0, 100, 50)) == '#ff0000'


def test_parse_color_accepts_both_notations():
    assert parse_color('#000000') == HSLColor(0, 0, 0)
    assert parse_color(' 330 100% 71% ') == HSLColor(330, 100, 71)


def test_css_variables():
    assert DEFAULT_THEME.css_variables() == {
        '--primary-hsl': '271 76% 34%',
        '--secondary-hsl': '271 50% 80%',
        '--accent-hsl': '330 100% 71%',
        '--background-hsl': '0 0% 100%',
    }


def test_stored_theme_falls_back_per_colour(app):
    with app.app_context():
        assert load_theme() == DEFAULT_THEME

        settings = ThemeSettings.get_or_create()
        settings.primary = '10 20% 30%'
        settings.accent = 'not a colour'
        db.session.commit()

        theme = load_theme()
        assert theme.primary == HSLColor(10, 20, 30)
        assert theme.accent == DEFAULT_THEME.accent


def test_pages_render_theme_variables(client):
    html = client.get('/').get_data(as_text=True)
    assert '--primary-hsl: 271 76% 34%;' in html
