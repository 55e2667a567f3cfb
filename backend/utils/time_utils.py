from datetime import date, datetime
import os

import pytz
from dotenv import load_dotenv

load_dotenv()

FARM_TIMEZONE = os.getenv("FARM_TIMEZONE", "Asia/Kolkata")


def local_now() -> datetime:
    """Timezone-aware 'now' in the farm's timezone."""
    return datetime.now(pytz.timezone(FARM_TIMEZONE))


def local_today() -> date:
    """Calendar date used for trailing windows and stock-out projections."""
    return local_now().date()
