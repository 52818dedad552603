"""Signed webhook receiver that drives operator-authored template scripts.

This package implements the hookscript service:
- HMAC signature verification of GitHub webhook deliveries
- Event classification into typed payload models
- A small template language evaluated once per event
- Control functions (env, exec, log, logf) exposed to scripts
- A FastAPI application and a click command line entry point
"""

__version__ = "1.0.0"
