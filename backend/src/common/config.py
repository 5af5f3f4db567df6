import os
from typing import Final

ANALYTICS_URL: Final[str] = os.environ["ANALYTICS_URL"]
ANALYTICS_TOKEN_SECRET_NAME: Final[str] = os.environ.get("ANALYTICS_TOKEN_SECRET_NAME", "")
MEASURES_TABLE: Final[str] = os.environ.get("MEASURES_TABLE", "measures")
COMMIT_SHA: Final[str] = os.environ.get("COMMIT_SHA", "") or "development"
QUERY_TIMEOUT_SECS: Final[float] = float(os.environ.get("QUERY_TIMEOUT_SECS", "15"))
DEFAULT_WINDOW_SECS: Final[int] = int(os.environ.get("DEFAULT_WINDOW_SECS", "3600"))
