"""Application wiring: configuration, logging and the periodic overdue check."""
