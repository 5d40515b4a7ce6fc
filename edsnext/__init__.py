"""edsnext - current and next event from Evolution Data Server calendars."""

__version__ = "0.1.0"
__author__ = "edsnext contributors"
