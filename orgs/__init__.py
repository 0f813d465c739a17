"""orgs/ -- Organisation ownership, management, and member invites.

Layer rule: orgs/ imports from core/, auth/, and mail/. It does NOT import
from api/.
"""
