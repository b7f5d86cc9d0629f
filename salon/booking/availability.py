"""Bookable start times for a single day.

Everything here is a pure function of its arguments so the booking page can
recompute availability on every request.
"""
from collections import namedtuple
from datetime import datetime, time, timedelta

from salon.models.appointment import STATUS_CANCELLED

SLOT_MINUTES = 30

TimeSlot = namedtuple('TimeSlot', ['time', 'available'])


def to_minutes(value):
    """Minutes since midnight for a time, datetime or "HH:MM" string"""
    if isinstance(value, str):
        value = datetime.strptime(value, '%H:%M').time()
    return value.hour * 60 + value.minute


def format_minutes(minutes):
    return f'{minutes // 60:02d}:{minutes % 60:02d}'


def generate_slots(open_time, close_time, step=SLOT_MINUTES):
    """Candidate start times from opening (inclusive) to closing (exclusive)"""
    open_minutes = to_minutes(open_time)
    close_minutes = to_minutes(close_time)
    return [format_minutes(m) for m in range(open_minutes, close_minutes, step)]


def booked_slots(candidates, appointments, service_durations, exclude_appointment_id=None):
    """
    Slot labels covered by existing appointments.

    Cancelled appointments, the appointment being rescheduled and appointments
    whose service no longer exists do not block anything.
    """
    booked = set()
    for appointment in appointments:
        if exclude_appointment_id is not None and appointment.id == exclude_appointment_id:
            continue
        if appointment.status == STATUS_CANCELLED:
            continue
        duration = service_durations.get(appointment.service_id)
        if duration is None:
            continue

        start = to_minutes(appointment.start_time)
        end = start + duration
        for label in candidates:
            if start <= to_minutes(label) < end:
                booked.add(label)
    return booked


def compute_availability(hours, service_duration, appointments, service_durations,
                         exclude_appointment_id=None, step=SLOT_MINUTES):
    """
    Ordered list of TimeSlot for one day.

    Parameters:
    - hours: object with start_time/end_time, or None when not configured
    - service_duration: minutes of the requested service, None if unknown
    - appointments: that day's appointments (id, service_id, start_time, status)
    - service_durations: service_id -> duration in minutes
    - exclude_appointment_id: the appointment being rescheduled
    """
    if hours is None:
        return []

    candidates = generate_slots(hours.start_time, hours.end_time, step)
    if service_duration is None:
        return [TimeSlot(label, False) for label in candidates]

    booked = booked_slots(candidates, appointments, service_durations, exclude_appointment_id)
    close_minutes = to_minutes(hours.end_time)

    return [
        TimeSlot(label, label not in booked and to_minutes(label) + service_duration <= close_minutes)
        for label in candidates
    ]


class ServiceHours(object):
    """Opening hours taken from a service's own schedule"""

    def __init__(self, start_time, end_time, working_days):
        self.start_time = start_time
        self.end_time = end_time
        self.working_days = working_days or []


def effective_hours(business_hours, service=None):
    """The service's custom schedule if it has one, else the salon hours"""
    if (service is not None and service.has_custom_schedule
            and service.custom_start_time and service.custom_end_time):
        return ServiceHours(service.custom_start_time, service.custom_end_time,
                            service.custom_working_days)
    return business_hours


def is_working_day(hours, day):
    """Whether bookings can be made on this date (Monday = 0)"""
    if hours is None:
        return False
    return day.weekday() in (hours.working_days or [])


def day_bounds(day):
    """Start and end datetimes of a calendar day, end exclusive"""
    start = datetime.combine(day, time(0, 0))
    return start, start + timedelta(days=1)


def slot_datetime(day, label):
    return datetime.combine(day, datetime.strptime(label, '%H:%M').time())
