"""threadkeep - persistent AI coding context across assistants and sessions."""

__version__ = "0.1.0"
