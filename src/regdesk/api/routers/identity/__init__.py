"""
regdesk.api.routers.identity

Identity-provider emulation.

Responsibilities:
- Group the `/auth/v1` (accounts + sessions) and `/rest/v1/rpc` (role grants) routers.
"""

# Package marker.
