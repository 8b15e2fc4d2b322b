import math
import re
from datetime import datetime

# --- Constants ---
# "<timestamp>-<camera>.mp4"; the timestamp part is validated separately so
# clips with a broken timestamp are reported instead of silently skipped
clip_filename_pattern = re.compile(
    r"^(.+)-(front|back|left_repeater|right_repeater|left_pillar|right_pillar)\.mp4$"
)

EVENT_FOLDER_TYPES = ('SavedClips', 'SentryClips', 'RecentClips')

REASON_NAMES = {
    'user_interaction_dashcam_launcher_action_tapped': 'Manual Save',
    'sentry_aware_object_detection': 'Sentry: Object Detected',
    'sentry_aware_accel': 'Sentry: Vehicle Bumped',
}


def split_clip_filename(filename):
    """Return (timestamp_text, camera_name) for a clip file name, or None."""
    m = clip_filename_pattern.match(filename)
    if not m:
        return None
    return m.group(1), m.group(2)


def format_time(seconds):
    if seconds is None or not math.isfinite(seconds):
        return "--:--"
    seconds = max(0, int(seconds))
    hours, rem = divmod(seconds, 3600)
    if hours:
        return f"{hours}:{rem // 60:02}:{rem % 60:02}"
    return f"{rem // 60:02}:{rem % 60:02}"


def format_gap_duration(seconds):
    """Short human form of a recording gap, e.g. ``35s``, ``2m 5s``, ``1h 3m``."""
    if seconds < 60:
        return f"{round(seconds)}s"
    if seconds < 3600:
        mins = int(seconds // 60)
        secs = round(seconds % 60)
        return f"{mins}m {secs}s" if secs > 0 else f"{mins}m"
    hours = int(seconds // 3600)
    mins = int((seconds % 3600) // 60)
    return f"{hours}h {mins}m" if mins > 0 else f"{hours}h"


def format_reason(reason):
    """Turn a Tesla ``event.json`` reason code into a display string."""
    if not reason:
        return "Unknown"

    for key, value in REASON_NAMES.items():
        if key in reason:
            if key == 'sentry_aware_accel':
                m = re.search(r"sentry_aware_accel_([\d.]+)", reason)
                if m:
                    return f"{value} ({m.group(1)}g)"
            return value

    return re.sub(r"\b\w", lambda m: m.group(0).upper(), reason.replace("_", " "))


def format_hour_range(hour):
    """``13`` -> ``1:00-1:59 PM``."""
    hour12 = 12 if hour == 0 else (hour - 12 if hour > 12 else hour)
    am_pm = "PM" if hour >= 12 else "AM"
    return f"{hour12}:00-{hour12}:59 {am_pm}"


def format_event_date(day):
    """``datetime(2024, 3, 5)`` -> ``Mar 5, 2024``."""
    if isinstance(day, str):
        day = datetime.strptime(day, "%Y-%m-%d")
    return f"{day.strftime('%b')} {day.day}, {day.year}"
