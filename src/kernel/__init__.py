"""Plugin kernel: GitHub webhook entry point.

This package provides:
- Verification of GitHub webhook deliveries (HMAC-SHA256 signatures)
- Dispatch of verified events to registered handlers
- Plugin chains configured per repository, with state kept in a
  key-value store between deliveries
- GitHub App authentication for acting on installations
"""
