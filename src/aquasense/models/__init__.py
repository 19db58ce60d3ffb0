"""Data models for tank readings and channel payloads."""

from aquasense.models.commands import MotorCommand, ReadingCommand, parse_command
from aquasense.models.messages import ChannelMessage
from aquasense.models.reading import Reading, clamp_percentage, level_for_percentage

__all__ = [
    "ChannelMessage",
    "MotorCommand",
    "Reading",
    "ReadingCommand",
    "clamp_percentage",
    "level_for_percentage",
    "parse_command",
]
