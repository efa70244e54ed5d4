"""Level curve derived from the number of captured zones."""


def level_for(zone_count: int, zones_per_level: int = 5) -> int:
    """0-4 zones is level 1, 5-9 is level 2, and so on."""
    return zone_count // zones_per_level + 1


def progress_for(zone_count: int, zones_per_level: int = 5) -> float:
    """Fraction of the current level completed, in ``[0.0, 1.0)``."""
    return (zone_count % zones_per_level) / zones_per_level
