"""Main entry point for the Orders API."""

import os

import uvicorn

from orders_api.server import app

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "3000")))
