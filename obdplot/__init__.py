"""Poll live engine parameters from an ECU over a K-line serial link, log them and compute strip-chart geometry."""

__version__ = "1.3.2"

__all__ = ["chart", "cli", "logfile", "parameters", "protocol", "session"]