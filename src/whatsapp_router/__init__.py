"""
WhatsApp Router

Routes WhatsApp Business conversations to the external project each
phone number belongs to, and keeps conversation and message history.
"""

__version__ = "1.0.0"
