"""
Cache Verifier: Functional Checks for Remote Key-Value Cache Endpoints

Drives put/get/remove/update sequences, topology membership checks,
sustained writes and eviction-boundary probes against a live cache cluster
over TLS with optional authentication.
"""

__version__ = "1.0.0"
