"""PingScope: network health reports from plain `ping` output."""

__version__ = "1.0.0"
