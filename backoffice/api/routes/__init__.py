from . import employees, metrics, ping, tickets

__all__ = ["employees", "metrics", "ping", "tickets"]
