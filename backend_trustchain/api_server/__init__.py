"""
API server: FastAPI app exposing wallet integrity verification.

Run: uvicorn backend_trustchain.api_server.server:app --host 0.0.0.0 --port 8000
"""
