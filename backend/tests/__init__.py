"""
Test suite for the Kilo Thrift backend.

Test categories:
- Unit tests: services and helpers with providers mocked out
- API tests: FastAPI app over httpx ASGITransport with in-memory SQLite
- Integration tests: checkout → webhook / callback → order state
"""
