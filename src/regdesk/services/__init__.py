"""
regdesk.services

Service-layer package.

Responsibilities:
- Server side: credential verification against provisioned admin hashes.
- Client side: the Session/Role Provider that owns admin login state.
"""
