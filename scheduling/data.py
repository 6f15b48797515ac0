# scheduling/data.py

# Index matches date.weekday(): 0=Mon, 1=Tues....
DAY_KEYS = [
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
]

DEFAULT_AVAILABILITY = {
    "monday": {"available": True, "start_time": "09:00", "end_time": "17:00"},
    "tuesday": {"available": True, "start_time": "09:00", "end_time": "17:00"},
    "wednesday": {"available": True, "start_time": "09:00", "end_time": "17:00"},
    "thursday": {"available": True, "start_time": "09:00", "end_time": "17:00"},
    "friday": {"available": True, "start_time": "09:00", "end_time": "17:00"},
    "saturday": {"available": False, "start_time": "09:00", "end_time": "17:00"},
    "sunday": {"available": False, "start_time": "09:00", "end_time": "17:00"},
}

TERMINAL_BOOKING_STATUSES = {"completed", "cancelled", "refunded"}

engine_settings = {
    "default_timezone": "UTC",
    "default_start_time": "09:00",
    "default_end_time": "17:00",
    "partial_block_threshold_hours": 4,
    "slot_minutes": 30,
    "search_horizon_days": 180,
    "team_search_horizon_days": 90,
    "safety_cap_days": 366 * 2,
    "working_hours_cap_days": 366 * 3,
    "default_min_overlap_percentage": 90,
    "team_search_min_overlap_percentage": 70,
    "earliest_slack_factor": 2,
    "shortest_slack_factor": 1.2,
}
