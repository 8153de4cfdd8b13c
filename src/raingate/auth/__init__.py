"""Authentication and authorization.

Request → CredentialExtractor → TokenService.verify → AuthGate (Identity)
→ AdminGate (admin routes only) → route logic.

Credentials are self-contained signed tokens; verifying one needs no
database lookup. Admin capability comes from the elevation policy.
"""
