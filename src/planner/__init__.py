"""Content calendar planning."""

from .calendar import (
    HORIZON_WEEKS,
    build_slots,
    create_series,
    delete_series,
    generate_calendar,
    generate_single,
    lucky_topic,
    platform_breakdown,
)

__all__ = [
    "HORIZON_WEEKS",
    "build_slots",
    "create_series",
    "delete_series",
    "generate_calendar",
    "generate_single",
    "lucky_topic",
    "platform_breakdown",
]
