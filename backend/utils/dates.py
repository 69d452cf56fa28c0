# backend/utils/dates.py
from datetime import datetime, timedelta
from typing import Optional, Tuple

DAY_FORMAT = "%Y-%m-%d"

# Parse a YYYY-MM-DD query value; ValueError on anything else
def parse_day(value: str) -> datetime:
    return datetime.strptime(value.strip(), DAY_FORMAT)

# Half-open [start, end) covering both days in full; either side may be open
def day_range(start: Optional[datetime], end: Optional[datetime]) -> Tuple[Optional[datetime], Optional[datetime]]:
    return start, (end + timedelta(days=1) if end else None)
