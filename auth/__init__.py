"""auth/ -- Identity package for OrgKeeper: hashing, tokens, storage, login.

Layer rule: auth/ imports only core/, stdlib, and third-party libraries.
It does NOT import from api/, orgs/, or mail/ at runtime (auth/dependencies.py
names OwnershipGuard for type checking only).
orgs/ and api/ import from auth/, not the other way around.
"""
