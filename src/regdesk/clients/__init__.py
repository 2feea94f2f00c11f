"""
regdesk.clients

Client-side capability interfaces and their HTTP implementations.

Responsibilities:
- Identity provider (sessions + change notifications).
- Role store (grant query/assignment).
- Admin credential verifier.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# `services.admin_auth.AuthProvider` depends on the Protocols here, never on httpx directly;
# any backend that implements them is substitutable.
