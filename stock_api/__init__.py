"""HTTP surface of the stock ledger (FastAPI)."""

from stock_api.app import create_app

__all__ = ["create_app"]
