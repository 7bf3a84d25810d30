"""check-reboot — monitoring plugin that detects a pending Windows reboot."""

__version__ = "0.1.0"
