"""Packet format, inter-thread queue, buffered output, sockets, TLS, logging and PID files."""

__version__ = "0.1.0"

__all__ = [
    "background",
    "dates",
    "itq",
    "log",
    "net",
    "packet",
    "tls",
    "writebuf",
]