"""
Integration tests for the search admin client.

Full admin workflows (create index, update mapping, delete) run through the
real transport and executor against an in-memory cluster behind
httpx.MockTransport.
"""
