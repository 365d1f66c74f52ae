"""Core console package"""

from .console import CommandConsole, create_log_port

__all__ = ['CommandConsole', 'create_log_port']
