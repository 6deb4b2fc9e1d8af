"""
Agenda service: personal calendars, recurring events and conflict-free booking.
"""
