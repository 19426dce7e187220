"""
Bulk data loader for SimpleDB.

Shards records across a fixed set of domains and writes them in
batches from a bounded thread pool, easing the request rate up
over time so the service does not throttle us as a bursty writer.
"""

__version__ = "1.0.0"
