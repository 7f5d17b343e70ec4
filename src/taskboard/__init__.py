"""Taskboard: a multi-user task board API (``taskboard.api``) and its client (``taskboard.client``)."""

__version__ = "0.1.0"
