"""
Command line interface for LADS
"""

from .main import cli, main

__all__ = ['cli', 'main']
