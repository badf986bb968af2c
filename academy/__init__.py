"""Academy access control: permission evaluation, route guarding and decision auditing."""

__version__ = "0.3.0"
