import enum


class AlertLevel(str, enum.Enum):
    """Alert tier of an item, derived from its stock and minimum level"""
    LOW = "LOW"
    WARNING = "WARNING"
    HEALTHY = "HEALTHY"


# Stock above the minimum but within this factor of it is a warning
WARNING_FACTOR = 1.5


def classify(current_stock: int, min_stock_level: int) -> AlertLevel:
    """Classify a stock level against its minimum.

    LOW up to and including the minimum, WARNING above the minimum up to and
    including ``min_stock_level * 1.5`` (compared unrounded), HEALTHY beyond.
    """
    if current_stock <= min_stock_level:
        return AlertLevel.LOW
    if current_stock <= min_stock_level * WARNING_FACTOR:
        return AlertLevel.WARNING
    return AlertLevel.HEALTHY
