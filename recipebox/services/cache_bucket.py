"""Week-bucketed timestamps for signed image URLs.

The same bucket string is produced for every request in a week, so the
signed download URL's response can be cached by browsers/CDNs even though
the URL is minted per request.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from ..settings import settings

BUCKET_FORMAT = "%Y-%m-%dT%H:%M:%S.000Z"


def week_bucket(now: Optional[datetime] = None, week_start: Optional[int] = None) -> str:
    """Return midnight UTC of the current week start, or the next one.

    week_start uses datetime.weekday() numbering (0=Monday, 6=Sunday).
    If today is the week start it is kept, otherwise the date rolls forward.
    """
    if week_start is None:
        week_start = settings.cache_week_start
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    else:
        now = now.astimezone(timezone.utc)

    days_ahead = (week_start - now.weekday()) % 7
    bucket = (now + timedelta(days=days_ahead)).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    return bucket.strftime(BUCKET_FORMAT)


def bucket_datetime(bucket: str) -> datetime:
    return datetime.strptime(bucket, BUCKET_FORMAT).replace(tzinfo=timezone.utc)
