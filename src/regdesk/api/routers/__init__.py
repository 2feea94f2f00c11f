"""
regdesk.api.routers

HTTP routers: health, credential verification, identity-provider emulation, registrations.
"""

# Package marker.
