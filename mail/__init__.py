"""mail/ -- Outbound mail for OrgKeeper: SMTP transport and invite content.

Layer rule: mail/ imports only core/, stdlib, and third-party libraries.
"""
