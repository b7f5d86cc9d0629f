from collections import namedtuple
from datetime import date, datetime, time

from salon.booking.availability import (generate_slots, compute_availability, effective_hours,
                                        is_working_day, slot_datetime, TimeSlot)
from salon.models.appointment import STATUS_SCHEDULED, STATUS_CANCELLED

Hours = namedtuple('Hours', ['start_time', 'end_time', 'working_days'])
Booked = namedtuple('Booked', ['id', 'service_id', 'start_time', 'status'])
Custom = namedtuple('Custom', ['has_custom_schedule', 'custom_start_time', 'custom_end_time',
                               'custom_working_days'])

DAY = date(2030, 3, 4)
SALON = Hours(time(9, 0), time(18, 0), [0, 1, 2, 3, 4])
DURATIONS = {1: 30, 2: 60}


def at(hour, minute=0):
    return datetime.combine(DAY, time(hour, minute))


def available(slots):
    return [s.time for s in slots if s.available]


def test_slots_cover_opening_hours_in_half_hours():
    slots = generate_slots(time(9, 0), time(18, 0))
    assert len(slots) == 18
    assert slots[0] == '09:00'
    assert slots[-1] == '17:30'
    assert slots == sorted(slots)


def test_uneven_close_rounds_slot_count_up():
    assert generate_slots(time(9, 0), time(10, 15)) == ['09:00', '09:30', '10:00']


def test_one_hour_booking_blocks_two_slots():
    booked = [Booked(10, 2, at(10), STATUS_SCHEDULED)]
    slots = compute_availability(SALON, 30, booked, DURATIONS)
    by_time = dict(slots)

    assert by_time['10:00'] is False
    assert by_time['10:30'] is False
    assert by_time['09:00'] and by_time['09:30'] and by_time['11:00']
    assert available(slots)[-1] == '17:30'


def test_cancelled_appointments_do_not_block():
    booked = [Booked(10, 2, at(10), STATUS_CANCELLED)]
    slots = compute_availability(SALON, 30, booked, DURATIONS)
    assert '10:00' in available(slots)


def test_rescheduled_appointment_frees_its_own_slots():
    booked = [Booked(10, 2, at(10), STATUS_SCHEDULED), Booked(11, 1, at(14), STATUS_SCHEDULED)]
    slots = compute_availability(SALON, 30, booked, DURATIONS, exclude_appointment_id=10)
    assert '10:00' in available(slots)
    assert '10:30' in available(slots)
    assert '14:00' not in available(slots)


def test_long_service_must_end_before_closing():
    slots = compute_availability(SALON, 90, [], DURATIONS)
    assert available(slots)[-1] == '16:30'
    assert not dict(slots)['17:00']


def test_appointment_for_unknown_service_is_ignored():
    booked = [Booked(10, 99, at(10), STATUS_SCHEDULED)]
    assert '10:00' in available(compute_availability(SALON, 30, booked, DURATIONS))


def test_unknown_requested_service_shows_grid_without_choices():
    slots = compute_availability(SALON, None, [], DURATIONS)
    assert len(slots) == 18
    assert available(slots) == []


def test_no_hours_means_no_slots():
    assert compute_availability(None, 30, [], DURATIONS) == []


def test_same_inputs_give_same_slots():
    booked = [Booked(10, 2, at(12), STATUS_SCHEDULED)]
    first = compute_availability(SALON, 60, booked, DURATIONS)
    assert compute_availability(SALON, 60, booked, DURATIONS) == first
    assert all(isinstance(s, TimeSlot) for s in first)


def test_custom_schedule_overrides_salon_hours():
    service = Custom(True, time(13, 0), time(15, 0), [5])
    hours = effective_hours(SALON, service)
    assert generate_slots(hours.start_time, hours.end_time) == ['13:00', '13:30', '14:00', '14:30']
    assert is_working_day(hours, date(2030, 3, 9))
    assert not is_working_day(hours, DAY)


def test_service_without_custom_schedule_uses_salon_hours():
    service = Custom(False, None, None, None)
    assert effective_hours(SALON, service) is SALON


def test_working_days_count_from_monday():
    assert is_working_day(SALON, DAY)
    assert not is_working_day(SALON, date(2030, 3, 10))
    assert not is_working_day(None, DAY)


def test_slot_datetime():
    assert slot_datetime(DAY, '17:30') == at(17, 30)
