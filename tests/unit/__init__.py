"""
Unit tests for the search admin client.

Test individual components in isolation:
- Data models (defaults, immutability, credentials rule)
- Retry decision engine (already-exists override, default policy)
- Retryable transport (retry loop, backoff, error mapping)
- Request executor (request construction, auth, response decoding)
"""
