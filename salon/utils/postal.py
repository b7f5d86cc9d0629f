"""Address autofill from a Brazilian postal code (CEP) via ViaCEP.

Best effort only: a failed lookup never blocks saving an address.
"""
import logging
import re
from collections import namedtuple

import httpx
from flask import current_app

logger = logging.getLogger(__name__)

PostalAddress = namedtuple('PostalAddress', ['address', 'city', 'state'])


class PostalLookupError(Exception):
    """The lookup service could not be reached or answered with garbage"""


def normalize_postal_code(value):
    """Digits only; returns None unless exactly eight digits remain"""
    digits = re.sub(r'\D', '', value or '')
    return digits if len(digits) == 8 else None


def lookup_postal_code(value):
    """
    Resolve a postal code to street/city/state

    Returns a PostalAddress, or None when the code is malformed or unknown.
    Raises PostalLookupError on network or protocol failures.
    """
    code = normalize_postal_code(value)
    if code is None:
        return None

    url = current_app.config['POSTAL_LOOKUP_URL'].format(code=code)
    try:
        response = httpx.get(url, timeout=current_app.config['POSTAL_LOOKUP_TIMEOUT'])
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPError as e:
        logger.error(f"Postal code lookup failed for {code}: {e}")
        raise PostalLookupError(str(e)) from e
    except ValueError as e:
        logger.error(f"Postal code lookup returned invalid JSON for {code}: {e}")
        raise PostalLookupError('Invalid response from postal code service') from e

    if data.get('erro'):
        logger.info(f"Postal code {code} not found")
        return None

    return PostalAddress(
        address=data.get('logradouro', ''),
        city=data.get('localidade', ''),
        state=data.get('uf', ''),
    )
