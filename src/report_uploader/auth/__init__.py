"""
Authentication package for the report uploader.

Implements Microsoft Entra ID sign-in via MSAL (OAuth2 authorization-code flow)
and an optional e-mail domain allowlist.
"""
