"""API server: FastAPI app exposing transaction analysis and wallet history."""
