"""Construction of empty timetable grids."""

import logging

from ..exceptions import ConfigurationError
from .models import SchoolConfiguration, TimetableGrid, TimetableSlot

logger = logging.getLogger(__name__)


def build_grid(config: SchoolConfiguration | None) -> TimetableGrid:
    """Create an empty grid with one slot per (day, period, grade, section).

    Saturday gets ``saturday_periods`` periods, every other day
    ``daily_periods``.

    Raises:
        ConfigurationError: If the configuration is missing or yields no slots
    """
    if config is None:
        raise ConfigurationError("no configuration provided")
    if not config.days:
        raise ConfigurationError("no days configured")

    class_sections = config.class_sections()
    if not class_sections:
        raise ConfigurationError("no class sections configured")

    cells = [
        [
            [
                TimetableSlot(grade=grade, section=section, day=day, period=period)
                for grade, section in class_sections
            ]
            for period in range(1, config.periods_for_day(day) + 1)
        ]
        for day in config.days
    ]
    grid = TimetableGrid(days=list(config.days), cells=cells)
    logger.debug(f"Built grid with {grid.total_slots} slots")
    return grid
