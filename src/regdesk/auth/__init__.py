"""
regdesk.auth

Authentication primitives shared by the API and the admin client.

Responsibilities:
- JWT issuing and validation for identity-provider sessions.
- bcrypt password hashing and checking.
- Synthetic admin identity emails.
- FastAPI bearer/admin dependencies.
"""
