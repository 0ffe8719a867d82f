"""
Scheduling settings with defaults.

Reads settings.SCHEDULING; anything missing falls back to DEFAULTS so a
project that never defines the dict still gets 30-minute slots from 09:00.
"""

from django.conf import settings

DEFAULTS = {
    "SLOT_MINUTES": 30,
    "DAY_START": "09:00",
    "DEFAULT_OPEN": "09:00",
    "DEFAULT_CLOSE": "17:00",
    "RECURRENCE_HORIZON_DAYS": 365,
    "CANCEL_CUTOFF_MINUTES": 120,
}


def scheduling_setting(name: str):
    configured = getattr(settings, "SCHEDULING", None) or {}
    if name in configured:
        return configured[name]
    return DEFAULTS[name]
