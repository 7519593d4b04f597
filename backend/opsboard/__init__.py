"""
OpsBoard backend.

Reporting aggregator and admin API for the engagement & billing
dashboard and the WhatsApp clinic panel.
"""

__version__ = "1.0.0"
