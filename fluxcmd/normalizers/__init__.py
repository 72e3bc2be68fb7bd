"""Term normalizers: free text to canonical values.

Pure functions with no I/O. None of them raise: alias lookups fall back to a
documented default and date parsing returns the ``UNPARSEABLE`` sentinel.
"""

from fluxcmd.normalizers.aliases import (
    DEFAULT_PRIORITY,
    DEFAULT_SEVERITY,
    DEFAULT_THEME,
    PAGE_TABLE,
    PRIORITY_LEVELS,
    PRIORITY_TABLE,
    SEVERITY_LEVELS,
    SEVERITY_TABLE,
    THEME_TABLE,
    THEMES,
    VALID_PAGES,
    AliasTable,
    Priority,
    Severity,
    Theme,
    compact_key,
    dashed_key,
    is_valid_page,
    normalize_page,
    normalize_priority,
    normalize_severity,
    normalize_theme,
)
from fluxcmd.normalizers.dates import (
    DATE_FORMAT_HELP,
    TIME_FORMAT_HELP,
    UNPARSEABLE,
    Unparseable,
    combine_date_time,
    parse_duration,
    parse_natural_date,
    parse_time_of_day,
)

__all__ = [
    "AliasTable",
    "Priority",
    "Severity",
    "Theme",
    "PRIORITY_LEVELS",
    "SEVERITY_LEVELS",
    "THEMES",
    "VALID_PAGES",
    "DEFAULT_PRIORITY",
    "DEFAULT_SEVERITY",
    "DEFAULT_THEME",
    "PRIORITY_TABLE",
    "SEVERITY_TABLE",
    "THEME_TABLE",
    "PAGE_TABLE",
    "compact_key",
    "dashed_key",
    "normalize_priority",
    "normalize_severity",
    "normalize_theme",
    "normalize_page",
    "is_valid_page",
    "UNPARSEABLE",
    "Unparseable",
    "DATE_FORMAT_HELP",
    "TIME_FORMAT_HELP",
    "parse_natural_date",
    "parse_time_of_day",
    "combine_date_time",
    "parse_duration",
]
