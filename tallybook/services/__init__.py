from .amount_parser import AmountParser
from .export import ExportFormat, ExportService
from .notifications import (
    DiscordWebhookNotifier,
    LogNotifier,
    Notifier,
    RecordingNotifier,
)
from .trends import Timeframe, TrendPoint, TrendService

__all__ = [
    "AmountParser",
    "DiscordWebhookNotifier",
    "ExportFormat",
    "ExportService",
    "LogNotifier",
    "Notifier",
    "RecordingNotifier",
    "Timeframe",
    "TrendPoint",
    "TrendService",
]
