from datetime import datetime, timedelta

def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)

def day_window(moment: datetime) -> tuple[datetime, datetime]:
    start = start_of_day(moment)
    return start, start + timedelta(days=1)
