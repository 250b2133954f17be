"""
Microsoft Graph access for the report uploader.

Contains the delegated REST client, the simple/chunked transfer helpers and the
upload destination resolution used by the upload endpoints.
"""
