"""
Insurance AI - policy assistant service

This package provides policy document intelligence using:
- Fireworks AI for document extraction, chat and tool calling
- MongoDB (collections + GridFS) for customer, insurer and policy records
- SMTP email for insurer inquiries and expiry reminders
"""

__version__ = "1.0.0"
