"""lesson-spine: lesson publication state machine and scheduled-publish coordinator."""

__version__ = "0.1.0"
