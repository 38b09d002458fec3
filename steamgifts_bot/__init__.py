"""Parsing, scoring, configuration, logging, notification, metrics, state, service and update support for a steamgifts.com giveaway bot."""

__version__ = "0.1.0"