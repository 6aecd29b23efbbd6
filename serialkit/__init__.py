"""Serial port access and configuration on Unix-like systems, with USB port discovery."""

__version__ = "0.1.0"
__all__ = ["base", "unixutils", "termios_settings", "unix_port", "enumerator", "device_id", "portlist"]