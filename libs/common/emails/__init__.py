"""
Email package.

Modules:
- client: EmailClient for sending templated emails via the Communications Service API

Templates live in the Communications Service. Services send through
EmailClient (client.py) and never render email bodies themselves.
"""
