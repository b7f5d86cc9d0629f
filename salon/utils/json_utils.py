import json
from datetime import date, datetime, time
from decimal import Decimal


class DecimalEncoder(json.JSONEncoder):
    """
    JSON encoder for audit details: money values become floats and
    dates/times become ISO strings
    """
    def default(self, obj):
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, (datetime, date, time)):
            return obj.isoformat()
        return super(DecimalEncoder, self).default(obj)
