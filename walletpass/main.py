from fastapi import FastAPI

from .config import configure_logging, load_settings
from .routes import router

configure_logging(load_settings().log_level)

app = FastAPI(title="walletpass")

@app.get("/health")
def health():
    return {"ok": True}

app.include_router(router)
