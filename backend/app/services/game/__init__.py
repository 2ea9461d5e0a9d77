"""Game domain services: reactions, scoring, challenges and presence.

This package contains the domain logic imported by HTTP routes and
socket handlers, keeping transport concerns separated from the core
game mechanics. Services raise the errors in ``app.errors``.
"""
